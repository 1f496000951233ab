"""Completeness and validity verdict for merged identity records."""

from collections.abc import Mapping

from carnet_ocr.models import (
    FIELD_NAMES,
    ValidationSummary,
    is_populated,
    round_half_up,
)
from carnet_ocr.utils.config import ValidationConfig
from carnet_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class RecordValidator:
    """Scores how complete a record is and whether it can be trusted.

    A record is valid when its completeness reaches ``min_completeness``
    and every required field is populated.

    Args:
        config: Threshold and required fields.
    """

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self.config = config or ValidationConfig()

    def validate(self, fields: Mapping[str, str | None]) -> ValidationSummary:
        """Validate a mapping holding any subset of the known fields.

        Fields absent from the mapping count as missing.
        """
        missing = [name for name in FIELD_NAMES if not is_populated(fields.get(name))]
        populated = len(FIELD_NAMES) - len(missing)
        completeness = round_half_up(100 * populated / len(FIELD_NAMES))

        has_required = all(
            is_populated(fields.get(name)) for name in self.config.required_fields
        )
        is_valid = completeness >= self.config.min_completeness and has_required

        logger.info(
            "Validation %s: completeness %d%%, missing %s",
            "PASSED" if is_valid else "FAILED",
            completeness,
            ", ".join(missing) or "none",
        )
        return ValidationSummary(
            is_valid=is_valid,
            completeness=completeness,
            missing_fields=missing,
        )
