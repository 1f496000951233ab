"""Data model shared across the pipeline stages."""

import math
from dataclasses import dataclass, field
from enum import StrEnum

import numpy as np


class Face(StrEnum):
    """Physical side of the identity card."""

    FRONT = "front"
    BACK = "back"


class IssueTag(StrEnum):
    """Quality problems detected before recognition."""

    LOW_RESOLUTION = "low_resolution"
    LOW_CONTRAST = "low_contrast"
    BLUR = "blur"
    BAD_LIGHTING = "bad_lighting"
    DECODE_ERROR = "decode_error"


FIELD_NAMES: tuple[str, ...] = (
    "ci",
    "nombres",
    "apellidos",
    "fecha_nacimiento",
    "lugar_nacimiento",
    "domicilio",
    "padre",
    "madre",
    "serie",
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def is_populated(value: str | None) -> bool:
    """Whether a field value counts as present."""
    return value is not None and bool(value.strip())


@dataclass
class RawImage:
    """Decoded pixels of one uploaded photograph."""

    pixels: np.ndarray
    width: int
    height: int


@dataclass
class QualityReport:
    """Recognition-readiness diagnostics for one image."""

    score: int
    resolution: tuple[int, int]
    issues: list[IssueTag] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RecognitionResult:
    """Raw engine output for one face."""

    raw_text: str
    confidence: float
    face: Face


@dataclass
class FaceResult:
    """Everything one face pipeline produced."""

    face: Face
    quality: QualityReport | None
    recognition: RecognitionResult | None = None
    fields: dict[str, str | None] = field(default_factory=dict)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.recognition is None

    @property
    def raw_text(self) -> str:
        return self.recognition.raw_text if self.recognition else ""

    @property
    def confidence(self) -> float:
        return self.recognition.confidence if self.recognition else 0.0


@dataclass
class ValidationSummary:
    """Completeness and validity verdict for a merged record."""

    is_valid: bool
    completeness: int
    missing_fields: list[str] = field(default_factory=list)


@dataclass
class IdentityRecord:
    """Merged identity fields of both faces."""

    fields: dict[str, str | None]
    average_confidence: int
    validation: ValidationSummary

    def get(self, name: str) -> str | None:
        return self.fields.get(name)


@dataclass
class DocumentResult:
    """Complete result of processing both faces of a card."""

    record: IdentityRecord
    average_confidence: int
    quality: dict[Face, QualityReport | None]
    diagnostics: list[str]
    front: FaceResult
    back: FaceResult
