"""Rule-based identity field extraction from raw OCR text.

Each field owns a cascade of patterns ordered from the most anchored to the
most generic. After a match, field-specific cleanup trims recognizer noise
that tends to trail the real value, and a small correction table repairs
misreads the engine makes systematically on these cards.
"""

import re

from carnet_ocr.models import FIELD_NAMES, Face
from carnet_ocr.utils.config import ExtractionConfig
from carnet_ocr.utils.logger import get_logger

from .cascade import Rule, first_group, rule, run_cascade

logger = get_logger(__name__)

_UPPER = "A-ZÁÉÍÓÚÑ"
_LETTERS = "A-Za-záéíóúñÁÉÍÓÚÑ"
_ADDRESS_CHARS = _LETTERS + r"0-9 ,#.\-*°"

FRONT_FIELDS: tuple[str, ...] = (
    "ci",
    "nombres",
    "apellidos",
    "fecha_nacimiento",
    "serie",
)
BACK_FIELDS: tuple[str, ...] = FIELD_NAMES

MONTHS: dict[str, str] = {
    "enero": "01",
    "febrero": "02",
    "marzo": "03",
    "abril": "04",
    "mayo": "05",
    "junio": "06",
    "julio": "07",
    "agosto": "08",
    "septiembre": "09",
    "octubre": "10",
    "noviembre": "11",
    "diciembre": "12",
}

# (misread, fix) pairs observed on names printed on the card.
NAME_CORRECTIONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"CAI\s+LISAYA", re.IGNORECASE), "CALLISAYA"),
    (re.compile(r"MAT\s+EO", re.IGNORECASE), "MATEO"),
    (re.compile(r"MÁTEO", re.IGNORECASE), "MATEO"),
]

_NAME_NOISE = re.compile(r"\s+(?:Des|ME|Nacido|[EeÉÈË])\b.*$", re.IGNORECASE)
_NAME_STRAY_TAIL = re.compile(r"\s+[A-Z]?e?s?$")
_PLACE_NOISE = [
    re.compile(r"\s*-\s*MURILLO.*$", re.IGNORECASE),
    re.compile(r"\s*-\s*NUESTRA.*$", re.IGNORECASE),
]
_ADDRESS_NOISE = [
    re.compile(r"\s*\*?\s*\d{4}\s*\.?\s*$"),
    re.compile(r"\s+N[°º]?\.?\s*\d+\s*$"),
    re.compile(r"\s*\*\s*$"),
]
_FATHER_NOISE = re.compile(r"\s+e(?:\s+\S*)?$")
_MOTHER_NOISE = re.compile(r"\s+uu?(?:\s+\S*)?$")
_WHITESPACE = re.compile(r"\s+")


def collapse(value: str) -> str:
    """Single-space a value and strip it."""
    return _WHITESPACE.sub(" ", value).strip()


def apply_corrections(value: str) -> str:
    for pattern, fix in NAME_CORRECTIONS:
        value = pattern.sub(fix, value)
    return value


def format_date(day: str, month: str, year: str) -> str | None:
    """Zero-padded ``DD/MM/YYYY``, or ``None`` for impossible dates."""
    if not (1 <= int(day) <= 31 and 1 <= int(month) <= 12):
        return None
    return f"{int(day):02d}/{int(month):02d}/{year}"


def _numeric_date(match: re.Match) -> str | None:
    parts = re.split(r"[/\-.]", match.group(1))
    if len(parts) != 3:
        return None
    return format_date(*parts)


def _spelled_date(match: re.Match) -> str | None:
    month = MONTHS.get(match.group(2).lower())
    if month is None:
        return None
    return format_date(match.group(1), month, match.group(3))


def _full_name(match: re.Match) -> str | None:
    value = collapse(match.group(1))
    value = _NAME_NOISE.sub("", value)
    value = _NAME_STRAY_TAIL.sub("", value)
    value = apply_corrections(value)
    parts = [p for p in value.split() if len(p) > 1]
    if len(parts) < 3:
        return None
    return " ".join(parts)


def _labeled_name(match: re.Match) -> str | None:
    value = collapse(match.group(1))
    return _NAME_NOISE.sub("", value).strip() or None


def _place(match: re.Match) -> str | None:
    value = first_group(match) or ""
    for noise in _PLACE_NOISE:
        value = noise.sub("", value)
    return collapse(value).strip(" -,") or None


def _address(match: re.Match) -> str | None:
    value = collapse(match.group(1))
    for noise in _ADDRESS_NOISE:
        value = noise.sub("", value)
    return value.strip() or None


def _father(match: re.Match) -> str | None:
    value = _FATHER_NOISE.sub("", match.group(1).strip())
    return collapse(value) or None


def _mother(match: re.Match) -> str | None:
    value = _MOTHER_NOISE.sub("", match.group(1).strip())
    return apply_corrections(collapse(value)) or None


# Parent references print as "/CI: 2542147", sometimes with stray spaces.
_NOT_PARENT_CI = r"(?<!/C[I1]:)(?<!/C[I1]:\s)(?<!/C[I1]:\s{2})(?<!/C[I1]:\s{3})"

CI_RULES: list[Rule] = [
    rule(
        "ci_labeled",
        r"(?<![/\w])(?:CI|C\.I\.?|CARNET|C[EÉ]DULA|No\.)[\s:]*(\d{7,8})(?!\d)",
        re.IGNORECASE,
    ),
    rule(
        "ci_department_suffix",
        rf"(?<!\d){_NOT_PARENT_CI}(\d{{7,8}})\s*-?\s*[A-Z]{{2}}\b",
    ),
    rule(
        "ci_bare",
        rf"(?:^|(?<=\s)){_NOT_PARENT_CI}(\d{{7,8}})(?=\s|$)",
        re.MULTILINE,
    ),
]

FULL_NAME_RULES: list[Rule] = [
    rule(
        "name_anchor_words",
        rf"(?<![A-Za-z])A:\s*([{_UPPER}]+(?:[ \t]+[{_UPPER}]+){{2,4}})(?=\s|$)",
        normalize=_full_name,
    ),
    rule(
        "name_anchor_until_marker",
        rf"(?<![A-Za-z])A:\s*([{_UPPER}][{_LETTERS} ]+?)(?=\s*(?:[ÉËÈ]|\n|(?i:nacido)))",
        normalize=_full_name,
    ),
    rule(
        "name_anchor_span",
        rf"(?<![A-Za-z])A:\s*([{_UPPER} ]{{15,50}}?)(?=\s*(?:[ÉÈË]|\d|\n|$))",
        normalize=_full_name,
    ),
]

NOMBRES_RULES: list[Rule] = [
    rule(
        "nombres_labeled",
        rf"\b(?:NOMBRES?|NAME)\b[ \t]*:?[ \t]*(?!APELLIDO)([{_UPPER}][{_LETTERS} ]*?)[ \t]*(?=\bAPELLIDOS?\b|$)",
        re.IGNORECASE | re.MULTILINE,
        _labeled_name,
    ),
    rule(
        "nombres_label_above",
        rf"^[ \t]*(?:NOMBRES?|NAME)[ \t]*:?[ \t]*\n[ \t]*([{_UPPER}][{_LETTERS} ]*?)[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
        _labeled_name,
    ),
]

APELLIDOS_RULES: list[Rule] = [
    rule(
        "apellidos_labeled",
        rf"\b(?:APELLIDOS?|SURNAME)\b[ \t]*:?[ \t]*([{_UPPER}][{_LETTERS} ]*)",
        re.IGNORECASE,
        _labeled_name,
    ),
    rule(
        "apellidos_label_above",
        rf"^[ \t]*(?:APELLIDOS?|SURNAME)[ \t]*:?[ \t]*\n[ \t]*([{_UPPER}][{_LETTERS} ]*?)[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
        _labeled_name,
    ),
]

FECHA_RULES: list[Rule] = [
    rule(
        "fecha_spelled",
        rf"Nacido\s*el\s+(\d{{1,2}})\s+de\s+([{_LETTERS}]+)\s+de\s+(\d{{4}})",
        re.IGNORECASE,
        _spelled_date,
    ),
    rule(
        "fecha_labeled",
        r"(?:NACIMIENTO|NAC|BORN)[\s:.]*(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{4})(?!\d)",
        re.IGNORECASE,
        _numeric_date,
    ),
    rule(
        "fecha_numeric",
        r"(?<!\d)(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{4})(?!\d)",
        normalize=_numeric_date,
    ),
]

LUGAR_RULES: list[Rule] = [
    rule(
        "lugar_en",
        rf"\bEn[ \t]+([{_UPPER} ]+?(?:-[ \t]*[{_UPPER} ]+?)*?)(?=[ \t]+Domicilio|[ \t]+\d|[ \t]*$)",
        re.IGNORECASE | re.MULTILINE,
        _place,
    ),
    rule(
        "lugar_labeled",
        rf"\b(?:LUGAR DE NACIMIENTO|NACIMIENTO|BORN IN)[ \t]*:?[ \t]*([{_LETTERS} ,\-]+)",
        re.IGNORECASE,
        _place,
    ),
    rule(
        "lugar_department",
        r"\b(LA PAZ|COCHABAMBA|SANTA CRUZ|ORURO|POT[OÓ]S[IÍ]|TARIJA|CHUQUISACA|BENI|PANDO)\b",
        re.IGNORECASE,
        _place,
    ),
]

DOMICILIO_RULES: list[Rule] = [
    rule(
        "domicilio_until_zone",
        rf"\bDomicilio[ \t:]+([{_ADDRESS_CHARS}]+?)(?=[ \t]+ZONA\b|[ \t]+Padre\b|[ \t]*$)",
        re.IGNORECASE | re.MULTILINE,
        _address,
    ),
    rule(
        "domicilio_labeled",
        rf"\b(?:DOMICILIO|DIRECCI[OÓ]N|ADDRESS)[ \t:]*([{_ADDRESS_CHARS}]+)",
        re.IGNORECASE,
        _address,
    ),
]

PADRE_RULES: list[Rule] = [
    rule(
        "padre_until_ci",
        rf"\b(?i:Padre)[ \t]+([{_UPPER}][{_LETTERS} ]+?)(?=/C[I1]:|[ \t]+e[ \t]|[ \t]+Madre|[ \t]*$)",
        re.MULTILINE,
        _father,
    ),
    rule(
        "padre_colon",
        rf"\bPADRE[ \t]*:[ \t]*([{_UPPER}][{_LETTERS} ]+?)(?=/C[I1]:|[ \t]*$)",
        re.IGNORECASE | re.MULTILINE,
        _father,
    ),
    rule(
        "padre_generic",
        rf"\b(?:Padre|PADRE)[\s:]*([{_UPPER}][{_LETTERS} ]+)",
        normalize=_father,
    ),
]

MADRE_RULES: list[Rule] = [
    rule(
        "madre_until_ci",
        rf"\b(?i:Madre)[ \t]+([{_UPPER}][{_LETTERS} ]+?)(?=/C[I1]:|[ \t]+uu|[ \t]+u[ \t]|[ \t]*$)",
        re.MULTILINE,
        _mother,
    ),
    rule(
        "madre_colon",
        rf"\bMADRE[ \t]*:[ \t]*([{_UPPER}][{_LETTERS} ]+?)(?=/C[I1]:|[ \t]*$)",
        re.IGNORECASE | re.MULTILINE,
        _mother,
    ),
    rule(
        "madre_generic",
        rf"\b(?:Madre|MADRE)[\s:]*([{_UPPER}][{_LETTERS} ]+)",
        normalize=_mother,
    ),
]

_SERIE_PATTERNS: list[tuple[str, str, int]] = [
    ("serie_digits", r"serie\s*(\d+)", re.IGNORECASE),
    ("serie_word_digits", r"serie\s*[A-Za-z]*\s*(\d{4,6})", re.IGNORECASE),
    ("serie_code", r"(?i:serie)\s+([A-Z]+\d*)\b", 0),
    ("serie_nearby", r"(?:serie|BIO)[\s\S]{0,50}?(?<!\d)(\d{4,6})(?!\d)", re.IGNORECASE),
    ("serie_letters_digits", r"\b([A-Z]{2}\d{6,8})\b", 0),
]


class FieldExtractor:
    """Extracts identity fields from the raw text of one card face.

    Args:
        config: Extraction settings (serial denylist).
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.cascades: dict[str, list[Rule]] = {
            "ci": CI_RULES,
            "nombres": NOMBRES_RULES,
            "apellidos": APELLIDOS_RULES,
            "fecha_nacimiento": FECHA_RULES,
            "lugar_nacimiento": LUGAR_RULES,
            "domicilio": DOMICILIO_RULES,
            "padre": PADRE_RULES,
            "madre": MADRE_RULES,
            "serie": [
                rule(name, pattern, flags, self._serie)
                for name, pattern, flags in _SERIE_PATTERNS
            ],
        }

    def extract(self, text: str | None, face: Face) -> dict[str, str | None]:
        """Extract every field a face can carry. Never raises.

        The back face takes names from the ``A:`` line; the front face from
        its ``NOMBRES``/``APELLIDOS`` labels.

        Returns:
            Mapping of field name to value, ``None`` where nothing matched.
        """
        text = text or ""
        names = FRONT_FIELDS if face is Face.FRONT else BACK_FIELDS
        fields: dict[str, str | None] = {}

        if face is Face.BACK:
            full = self.extract_full_name(text)
            fields["nombres"], fields["apellidos"] = full if full else (None, None)

        for name in names:
            if name not in fields:
                fields[name] = self.extract_field(name, text)

        found = sum(1 for v in fields.values() if v)
        logger.info("Extracted %d/%d fields from %s face", found, len(fields), face)
        return {name: fields[name] for name in names}

    def extract_field(self, name: str, text: str) -> str | None:
        """Run the cascade of a single field.

        Raises:
            KeyError: If ``name`` is not a known field.
        """
        hit = run_cascade(self.cascades[name], text or "")
        if hit is None:
            logger.debug("No match for %s", name)
            return None
        logger.debug("%s matched by %s: %s", name, hit.rule_name, hit.value)
        return hit.value

    def extract_full_name(self, text: str) -> tuple[str, str] | None:
        """Split the anchored ``A:`` name line into given names and surnames.

        Four or more words: two given names, the rest surnames. Three words:
        one given name, two surnames.
        """
        hit = run_cascade(FULL_NAME_RULES, text or "")
        if hit is None:
            return None
        return split_full_name(hit.value)

    def _serie(self, match: re.Match) -> str | None:
        value = first_group(match)
        if value is None or not 2 <= len(value) <= 10:
            return None
        if value in self.config.serie_denylist:
            logger.debug("Ignoring denylisted serial capture %s", value)
            return None
        return value


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if len(parts) >= 4:
        return " ".join(parts[:2]), " ".join(parts[2:])
    return parts[0], " ".join(parts[1:])
