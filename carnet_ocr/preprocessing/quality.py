"""Pre-recognition quality gate for identity card photographs.

Scores an image from 0 to 100 on resolution, contrast, sharpness and
brightness, and turns every detected issue into one remediation hint.
"""

import numpy as np

from carnet_ocr.errors import DecodeError
from carnet_ocr.models import IssueTag, QualityReport
from carnet_ocr.utils.config import QualityConfig
from carnet_ocr.utils.logger import get_logger

from .decode import decode_image

logger = get_logger(__name__)

RECOMMENDATIONS: dict[IssueTag, str] = {
    IssueTag.LOW_RESOLUTION: "Take the photo closer to the card or use a better camera",
    IssueTag.LOW_CONTRAST: "Improve the lighting and avoid shadows",
    IssueTag.BLUR: "Hold the camera steady and focus on the card",
    IssueTag.BAD_LIGHTING: "Adjust the lighting, avoid very strong or very dim light",
    IssueTag.DECODE_ERROR: "Check that the file is a valid image",
}


def channel_stats(image: np.ndarray) -> tuple[float, float, float]:
    """Range, standard deviation and mean of the first image channel.

    Args:
        image: RGB/BGR or greyscale image.

    Returns:
        Tuple of ``(max - min, std, mean)``.
    """
    channel = image if image.ndim == 2 else image[:, :, 0]
    if channel.size == 0:
        return 0.0, 0.0, 0.0
    spread = float(channel.max()) - float(channel.min())
    return spread, float(channel.std()), float(channel.mean())


def recommendations_for(issues: list[IssueTag]) -> list[str]:
    """Map issues to hints, one per issue class, in detection order."""
    seen: list[IssueTag] = []
    for issue in issues:
        if issue not in seen:
            seen.append(issue)
    return [RECOMMENDATIONS[issue] for issue in seen]


def decode_error_report() -> QualityReport:
    """Report for an image that could not be decoded at all."""
    issues = [IssueTag.DECODE_ERROR]
    return QualityReport(
        score=0,
        resolution=(0, 0),
        issues=issues,
        recommendations=recommendations_for(issues),
    )


class QualityAssessor:
    """Scores photographs for recognition readiness.

    Args:
        config: Thresholds and penalties. Defaults to ``QualityConfig()``.
    """

    def __init__(self, config: QualityConfig | None = None) -> None:
        self.config = config or QualityConfig()

    def assess(self, data: bytes) -> QualityReport:
        """Score raw image bytes. Never raises.

        Undecodable input yields ``score=0`` with ``DECODE_ERROR``.
        """
        try:
            image = decode_image(data)
        except DecodeError as exc:
            logger.warning("Quality check could not decode image: %s", exc)
            return decode_error_report()
        return self.assess_array(image.pixels)

    def assess_array(self, image: np.ndarray) -> QualityReport:
        """Score an already decoded image."""
        cfg = self.config
        height, width = image.shape[:2]
        score = 100
        issues: list[IssueTag] = []

        if width < cfg.min_width or height < cfg.min_height:
            score -= cfg.resolution_penalty
            issues.append(IssueTag.LOW_RESOLUTION)

        spread, stdev, mean = channel_stats(image)
        if spread < cfg.min_contrast:
            score -= cfg.contrast_penalty
            issues.append(IssueTag.LOW_CONTRAST)

        if stdev < cfg.min_stdev:
            score -= cfg.blur_penalty
            issues.append(IssueTag.BLUR)

        if mean < cfg.min_brightness or mean > cfg.max_brightness:
            score -= cfg.lighting_penalty
            issues.append(IssueTag.BAD_LIGHTING)

        report = QualityReport(
            score=max(0, score),
            resolution=(width, height),
            issues=issues,
            recommendations=recommendations_for(issues),
        )
        logger.info(
            "Quality %d/100 for %dx%d image (%s)",
            report.score,
            width,
            height,
            ", ".join(issues) or "no issues",
        )
        return report
