"""Combines the extractions of both card faces into one record.

Every field has a fixed source in ``FIELD_SOURCES``. The routed source
always wins: values from both faces are never reconciled.
"""

from enum import StrEnum

from carnet_ocr.models import FIELD_NAMES, FaceResult
from carnet_ocr.utils.logger import get_logger

from .field_extractor import FieldExtractor

logger = get_logger(__name__)


class SourcePolicy(StrEnum):
    """Where a merged field takes its value from."""

    FRONT = "front"
    BACK = "back"
    BOTH = "both"
    BACK_THEN_FRONT = "back_then_front"


FIELD_SOURCES: dict[str, SourcePolicy] = {
    "ci": SourcePolicy.BOTH,
    "nombres": SourcePolicy.BACK_THEN_FRONT,
    "apellidos": SourcePolicy.BACK_THEN_FRONT,
    "fecha_nacimiento": SourcePolicy.BOTH,
    "lugar_nacimiento": SourcePolicy.BACK,
    "domicilio": SourcePolicy.BACK,
    "padre": SourcePolicy.BACK,
    "madre": SourcePolicy.BACK,
    "serie": SourcePolicy.BOTH,
}


class RecordMerger:
    """Applies the static per-field routing table.

    ``BOTH`` fields are extracted again from the front text followed by the
    back text, since either face may print them.

    Args:
        extractor: Extractor used for ``BOTH`` fields.
        sources: Routing table; defaults to ``FIELD_SOURCES``.
    """

    def __init__(
        self,
        extractor: FieldExtractor | None = None,
        sources: dict[str, SourcePolicy] | None = None,
    ) -> None:
        self.extractor = extractor or FieldExtractor()
        self.sources = sources or FIELD_SOURCES

    def merge(self, front: FaceResult, back: FaceResult) -> dict[str, str | None]:
        """Build the merged field mapping for all known fields."""
        combined_text = f"{front.raw_text}\n{back.raw_text}"
        merged: dict[str, str | None] = {}

        for name in FIELD_NAMES:
            policy = self.sources[name]
            if policy is SourcePolicy.FRONT:
                value = front.fields.get(name)
            elif policy is SourcePolicy.BACK:
                value = back.fields.get(name)
            elif policy is SourcePolicy.BACK_THEN_FRONT:
                value = back.fields.get(name) or front.fields.get(name)
            else:
                value = self.extractor.extract_field(name, combined_text)
            merged[name] = value

        logger.debug("Merged record: %s", merged)
        return merged
