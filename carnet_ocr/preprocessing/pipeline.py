"""Deterministic normalization chain that prepares photos for recognition.

Upscale, contrast stretch, sharpen, denoise, intensity normalization and
greyscale conversion, always in that order.
"""

from collections.abc import Callable

import numpy as np

from carnet_ocr.utils.config import NormalizationConfig
from carnet_ocr.utils.logger import get_logger

from .enhance import (
    median_denoise,
    normalize_intensity,
    sharpen,
    stretch_contrast,
    target_width,
    to_grayscale,
    upscale,
)

logger = get_logger(__name__)

Step = tuple[str, Callable[[np.ndarray], np.ndarray]]


class ImageNormalizer:
    """Recognition-oriented image normalization.

    ``normalize`` never raises. With ``on_step_error="original"`` a failing
    step makes it return the untouched input; with ``"skip"`` the failing
    step is skipped and the chain continues on the image as it was before
    that step.

    Args:
        config: Normalization parameters.
    """

    def __init__(self, config: NormalizationConfig | None = None) -> None:
        self.config = config or NormalizationConfig()

    def steps(self) -> list[Step]:
        """The transform chain in execution order."""
        cfg = self.config
        return [
            ("upscale", self._upscale),
            ("contrast", lambda img: stretch_contrast(img, cfg.contrast_gain)),
            (
                "sharpen",
                lambda img: sharpen(img, cfg.sharpen_sigma, cfg.sharpen_amount),
            ),
            ("denoise", lambda img: median_denoise(img, cfg.median_kernel)),
            ("normalize", normalize_intensity),
            ("grayscale", to_grayscale),
        ]

    def normalize(self, image: np.ndarray) -> np.ndarray:
        """Run the chain on a copy of ``image``.

        Args:
            image: Decoded RGB or greyscale image.

        Returns:
            Single-channel image ready for recognition, or the original
            image if the chain could not complete.
        """
        result = image.copy()

        for name, step in self.steps():
            try:
                result = step(result)
            except Exception as exc:
                if self.config.on_step_error == "skip":
                    logger.warning(
                        "Normalization step %s failed, skipping: %s", name, exc
                    )
                    continue
                logger.warning(
                    "Normalization step %s failed, using original image: %s", name, exc
                )
                return image

        logger.info(
            "Normalized image %dx%d -> %dx%d",
            image.shape[1],
            image.shape[0],
            result.shape[1],
            result.shape[0],
        )
        return result

    def _upscale(self, image: np.ndarray) -> np.ndarray:
        cfg = self.config
        width = target_width(
            image.shape[1],
            small_width=cfg.small_width,
            small_target=cfg.small_target_width,
            min_target=cfg.min_target_width,
            factor=cfg.upscale_factor,
        )
        return upscale(image, width)
