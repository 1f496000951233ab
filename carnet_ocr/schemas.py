"""Pydantic models for the JSON the CLI emits."""

from pydantic import BaseModel

from carnet_ocr.models import DocumentResult, FaceResult, QualityReport


class QualityResponse(BaseModel):
    """Quality report of one image."""

    score: int
    resolution: str
    issues: list[str]
    recommendations: list[str]

    @classmethod
    def from_report(cls, report: QualityReport) -> "QualityResponse":
        width, height = report.resolution
        return cls(
            score=report.score,
            resolution=f"{width}x{height}",
            issues=[str(issue) for issue in report.issues],
            recommendations=list(report.recommendations),
        )

    @classmethod
    def from_optional(cls, report: QualityReport | None) -> "QualityResponse | None":
        """Like ``from_report``; a face that timed out has no report."""
        return None if report is None else cls.from_report(report)


class ValidationResponse(BaseModel):
    """Validity verdict of the merged record."""

    is_valid: bool
    completeness: int
    missing_fields: list[str]


class FaceResponse(BaseModel):
    """Outcome of a single face pipeline."""

    face: str
    success: bool
    confidence: float
    raw_text: str
    fields: dict[str, str | None]
    quality: QualityResponse | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: FaceResult) -> "FaceResponse":
        return cls(
            face=str(result.face),
            success=not result.failed,
            confidence=result.confidence,
            raw_text=result.raw_text,
            fields=dict(result.fields),
            quality=QualityResponse.from_optional(result.quality),
            error=result.error,
        )


class ExtractionResponse(BaseModel):
    """Response for a complete two-face extraction."""

    success: bool
    fields: dict[str, str | None]
    average_confidence: int
    validation: ValidationResponse
    quality: dict[str, QualityResponse | None]
    diagnostics: list[str]
    front_text: str
    back_text: str
    front_confidence: float
    back_confidence: float

    @classmethod
    def from_result(cls, result: DocumentResult) -> "ExtractionResponse":
        validation = result.record.validation
        return cls(
            success=True,
            fields=dict(result.record.fields),
            average_confidence=result.average_confidence,
            validation=ValidationResponse(
                is_valid=validation.is_valid,
                completeness=validation.completeness,
                missing_fields=list(validation.missing_fields),
            ),
            quality={
                str(face): QualityResponse.from_optional(report)
                for face, report in result.quality.items()
            },
            diagnostics=list(result.diagnostics),
            front_text=result.front.raw_text,
            back_text=result.back.raw_text,
            front_confidence=result.front.confidence,
            back_confidence=result.back.confidence,
        )


class ErrorResponse(BaseModel):
    """Response for a request that failed as a whole."""

    success: bool = False
    message: str
    error: str
