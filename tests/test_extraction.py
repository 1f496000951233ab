"""Tests for cascade evaluation and identity field extraction."""

import re

import pytest

from carnet_ocr.extraction.cascade import Rule, first_group, rule, run_cascade
from carnet_ocr.extraction.field_extractor import (
    BACK_FIELDS,
    FRONT_FIELDS,
    FieldExtractor,
    apply_corrections,
    format_date,
    split_full_name,
)
from carnet_ocr.models import Face
from carnet_ocr.utils.config import ExtractionConfig

from conftest import BACK_TEXT, FRONT_TEXT


class TestCascade:
    """Tests for first-match-wins rule evaluation."""

    def test_first_matching_rule_wins(self) -> None:
        rules = [rule("word", r"([a-z]+)"), rule("digits", r"(\d+)")]
        hit = run_cascade(rules, "123 abc")
        assert hit is not None
        assert hit.value == "abc"
        assert hit.rule_name == "word"

    def test_rejected_value_falls_through(self) -> None:
        rules = [
            Rule("rejecting", re.compile(r"(\d+)"), lambda m: None),
            rule("accepting", r"(\d+)"),
        ]
        hit = run_cascade(rules, "value 42")
        assert hit is not None
        assert hit.rule_name == "accepting"

    def test_only_first_match_per_rule(self) -> None:
        def even(match: re.Match) -> str | None:
            return match.group(1) if int(match.group(1)) % 2 == 0 else None

        rules = [rule("even", r"(\d+)", normalize=even)]
        assert run_cascade(rules, "3 4") is None

    def test_no_match(self) -> None:
        assert run_cascade([rule("x", r"(zzz)")], "abc") is None

    def test_first_group_strips_and_rejects_blank(self) -> None:
        assert first_group(re.search(r"(\s*ab\s*)", " ab ")) == "ab"
        assert first_group(re.search(r"(\s*)", "   ")) is None
        assert first_group(re.search(r"ab", "xaby")) == "ab"


class TestHelpers:
    """Tests for dates, corrections and name splitting."""

    def test_format_date_pads(self) -> None:
        assert format_date("5", "3", "2001") == "05/03/2001"

    @pytest.mark.parametrize(("day", "month"), [("0", "3"), ("32", "3"), ("5", "13")])
    def test_format_date_rejects_impossible(self, day: str, month: str) -> None:
        assert format_date(day, month, "2001") is None

    def test_corrections(self) -> None:
        assert apply_corrections("MARIA CAI LISAYA MAT EO") == "MARIA CALLISAYA MATEO"
        assert apply_corrections("JUAN MÁTEO") == "JUAN MATEO"

    def test_split_four_words(self) -> None:
        assert split_full_name("DIEGO CESAR ALVARADO CALLISAYA") == (
            "DIEGO CESAR",
            "ALVARADO CALLISAYA",
        )

    def test_split_five_words(self) -> None:
        assert split_full_name("ANA MARIA DE LA CRUZ") == ("ANA MARIA", "DE LA CRUZ")

    def test_split_three_words(self) -> None:
        assert split_full_name("LUIS MAMANI QUISPE") == ("LUIS", "MAMANI QUISPE")


class TestCIExtraction:
    """Tests for the identity number cascade."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    @pytest.mark.parametrize(
        "text",
        [
            "CI 5847291",
            "C.I.: 5847291",
            "CEDULA DE IDENTIDAD No. 5847291",
            "carnet 5847291",
        ],
    )
    def test_labeled(self, text: str) -> None:
        assert self.extractor.extract_field("ci", text) == "5847291"

    def test_department_suffix(self) -> None:
        assert self.extractor.extract_field("ci", "12345678 LP") == "12345678"
        assert self.extractor.extract_field("ci", "1234567-CB") == "1234567"

    def test_bare_number(self) -> None:
        assert self.extractor.extract_field("ci", "numero\n4567890\n") == "4567890"

    @pytest.mark.parametrize("text", ["CI 123456789", "numero 123456789 emitido"])
    def test_nine_digits_rejected(self, text: str) -> None:
        assert self.extractor.extract_field("ci", text) is None

    def test_parent_numbers_ignored(self) -> None:
        text = "Padre JUAN PEREZ/CI:2542147\nMadre ROSA QUISPE/CI:3456328"
        assert self.extractor.extract_field("ci", text) is None

    @pytest.mark.parametrize(
        "text",
        [
            "Padre JUAN PEREZ TICONA/CI: 2542147\nSerie 43333",
            "Madre ROSA QUISPE/C1:  3456328 LP",
        ],
    )
    def test_spaced_parent_numbers_ignored(self, text: str) -> None:
        assert self.extractor.extract_field("ci", text) is None

    def test_holder_number_after_parent_reference(self) -> None:
        text = "Padre JUAN PEREZ/CI: 2542147\n5847291\n"
        assert self.extractor.extract_field("ci", text) == "5847291"

    def test_front_text(self) -> None:
        assert self.extractor.extract_field("ci", FRONT_TEXT) == "5847291"


class TestNameExtraction:
    """Tests for given names and surnames."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_anchored_full_name(self) -> None:
        result = self.extractor.extract_full_name("A: DIEGO CESAR ALVARADO CALLISAYA")
        assert result == ("DIEGO CESAR", "ALVARADO CALLISAYA")

    def test_three_word_name(self) -> None:
        assert self.extractor.extract_full_name("A: LUIS MAMANI QUISPE\n") == (
            "LUIS",
            "MAMANI QUISPE",
        )

    def test_trailing_noise_removed(self) -> None:
        text = "A: JUAN CARLOS MENDEZ DESIDERIO É\n"
        result = self.extractor.extract_full_name(text)
        assert result == ("JUAN CARLOS", "MENDEZ DESIDERIO")

    def test_corrections_applied(self) -> None:
        result = self.extractor.extract_full_name("A: ROSA ANA CAI LISAYA MAMANI\n")
        assert result == ("ROSA ANA", "CALLISAYA MAMANI")

    def test_two_words_not_enough(self) -> None:
        assert self.extractor.extract_full_name("A: LUIS MAMANI\n") is None

    def test_no_anchor(self) -> None:
        text = "DIEGO CESAR ALVARADO CALLISAYA"
        assert self.extractor.extract_full_name(text) is None

    def test_uppercase_trailing_noise_removed(self) -> None:
        text = "A: DIEGO CESAR ALVARADO CALLISAYA NACIDO EL 15 DE MARZO DE 2001"
        fields = self.extractor.extract(text, Face.BACK)
        assert fields["nombres"] == "DIEGO CESAR"
        assert fields["apellidos"] == "ALVARADO CALLISAYA"
        assert fields["fecha_nacimiento"] == "15/03/2001"

    def test_uppercase_des_token_removed(self) -> None:
        result = self.extractor.extract_full_name("A: LUIS MAMANI QUISPE DES\n")
        assert result == ("LUIS", "MAMANI QUISPE")

    def test_labels_same_line(self) -> None:
        text = "NOMBRES: JUAN CARLOS\nAPELLIDOS: PEREZ MAMANI"
        assert self.extractor.extract_field("nombres", text) == "JUAN CARLOS"
        assert self.extractor.extract_field("apellidos", text) == "PEREZ MAMANI"

    def test_labels_line_above(self) -> None:
        text = "NOMBRES\nJUAN CARLOS\nAPELLIDOS\nPEREZ MAMANI"
        assert self.extractor.extract_field("nombres", text) == "JUAN CARLOS"
        assert self.extractor.extract_field("apellidos", text) == "PEREZ MAMANI"


class TestDateExtraction:
    """Tests for the birth date cascade."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_spelled_date(self) -> None:
        text = "Nacido el 15 de marzo de 2001"
        assert self.extractor.extract_field("fecha_nacimiento", text) == "15/03/2001"

    def test_spelled_date_case_insensitive(self) -> None:
        text = "NACIDO EL 3 DE DICIEMBRE DE 1985"
        assert self.extractor.extract_field("fecha_nacimiento", text) == "03/12/1985"

    def test_labeled_numeric(self) -> None:
        text = "Fecha de nacimiento: 05/11/1990"
        assert self.extractor.extract_field("fecha_nacimiento", text) == "05/11/1990"

    def test_bare_numeric_padded(self) -> None:
        text = "emitido 1-2-2003"
        assert self.extractor.extract_field("fecha_nacimiento", text) == "01/02/2003"

    def test_unknown_month(self) -> None:
        text = "Nacido el 15 de brumario de 2001"
        assert self.extractor.extract_field("fecha_nacimiento", text) is None

    def test_impossible_date_falls_through(self) -> None:
        text = "Nacido el 45 de marzo de 2001\nvalido hasta 10/10/2030"
        assert self.extractor.extract_field("fecha_nacimiento", text) == "10/10/2030"


class TestBackFieldExtraction:
    """Tests for place, address, parents and serial number."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_place_after_en(self) -> None:
        assert self.extractor.extract_field("lugar_nacimiento", BACK_TEXT) == "LA PAZ"

    def test_place_labeled(self) -> None:
        text = "LUGAR DE NACIMIENTO: COCHABAMBA"
        assert self.extractor.extract_field("lugar_nacimiento", text) == "COCHABAMBA"

    def test_place_department_name(self) -> None:
        text = "DEPARTAMENTO ORURO"
        assert self.extractor.extract_field("lugar_nacimiento", text) == "ORURO"

    def test_address_until_zone(self) -> None:
        address = self.extractor.extract_field("domicilio", BACK_TEXT)
        assert address == "C. LOS PINOS 123"

    def test_address_number_noise(self) -> None:
        text = "Domicilio AV. ARCE N° 25"
        assert self.extractor.extract_field("domicilio", text) == "AV. ARCE"

    def test_address_labeled(self) -> None:
        text = "DIRECCION: CALLE JUNIN 2450"
        assert self.extractor.extract_field("domicilio", text) == "CALLE JUNIN"

    def test_father(self) -> None:
        assert self.extractor.extract_field("padre", BACK_TEXT) == (
            "CESAR SILVIO ALVARADO TICONA"
        )

    def test_father_trailing_e(self) -> None:
        text = "Padre JUAN PEREZ e\n"
        assert self.extractor.extract_field("padre", text) == "JUAN PEREZ"

    def test_father_name_starting_with_e_kept(self) -> None:
        text = "Padre ESTEBAN MENDEZ\n"
        assert self.extractor.extract_field("padre", text) == "ESTEBAN MENDEZ"

    def test_mother_with_correction(self) -> None:
        assert self.extractor.extract_field("madre", BACK_TEXT) == (
            "MARIA AURORA CALLISAYA MATEO"
        )

    def test_mother_trailing_uu(self) -> None:
        text = "Madre ROSA QUISPE uu 3456"
        assert self.extractor.extract_field("madre", text) == "ROSA QUISPE"

    def test_serie_digits(self) -> None:
        assert self.extractor.extract_field("serie", BACK_TEXT) == "43333"

    def test_serie_word_then_digits(self) -> None:
        assert self.extractor.extract_field("serie", "Serie A 12345") == "12345"

    def test_serie_code(self) -> None:
        assert self.extractor.extract_field("serie", "Serie AB12") == "AB12"

    def test_serie_letters_digits(self) -> None:
        text = "Documento LP1234567"
        assert self.extractor.extract_field("serie", text) == "LP1234567"

    def test_serie_denylisted(self) -> None:
        assert self.extractor.extract_field("serie", "Serie 2026") is None

    def test_serie_custom_denylist(self) -> None:
        extractor = FieldExtractor(ExtractionConfig(serie_denylist=[]))
        assert extractor.extract_field("serie", "Serie 2026") == "2026"


class TestFaceExtraction:
    """Tests for whole-face extraction."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_back_face(self) -> None:
        fields = self.extractor.extract(BACK_TEXT, Face.BACK)
        assert tuple(fields) == BACK_FIELDS
        assert fields == {
            "ci": None,
            "nombres": "DIEGO CESAR",
            "apellidos": "ALVARADO CALLISAYA",
            "fecha_nacimiento": "15/03/2001",
            "lugar_nacimiento": "LA PAZ",
            "domicilio": "C. LOS PINOS 123",
            "padre": "CESAR SILVIO ALVARADO TICONA",
            "madre": "MARIA AURORA CALLISAYA MATEO",
            "serie": "43333",
        }

    def test_front_face(self) -> None:
        fields = self.extractor.extract(FRONT_TEXT, Face.FRONT)
        assert tuple(fields) == FRONT_FIELDS
        assert fields["ci"] == "5847291"
        assert fields["nombres"] is None

    @pytest.mark.parametrize("face", list(Face))
    @pytest.mark.parametrize("text", ["", None, "%%%% ~~~~ \n\n"])
    def test_empty_or_garbage_text(self, text: str | None, face: Face) -> None:
        fields = self.extractor.extract(text, face)
        assert all(value is None for value in fields.values())

    def test_unknown_field(self) -> None:
        with pytest.raises(KeyError):
            self.extractor.extract_field("email", "x")
