"""Individual image transforms of the normalization chain.

Each transform returns a new array and leaves its input untouched.
Images are RGB or greyscale ``uint8`` arrays.
"""

import cv2
import numpy as np

from carnet_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def target_width(
    width: int,
    small_width: int = 800,
    small_target: int = 1600,
    min_target: int = 1200,
    factor: float = 1.5,
) -> int:
    """Width the image is resampled to before recognition.

    Small photos go to a fixed width; larger ones grow by ``factor`` but
    never below ``min_target``.
    """
    if width < small_width:
        return small_target
    return int(max(min_target, width * factor))


def upscale(image: np.ndarray, width: int) -> np.ndarray:
    """Resize to ``width`` keeping the aspect ratio, with Lanczos resampling."""
    h, w = image.shape[:2]
    if w == 0 or h == 0:
        raise ValueError("Cannot resize an empty image")
    height = max(1, round(h * width / w))
    result = cv2.resize(image, (width, height), interpolation=cv2.INTER_LANCZOS4)
    logger.debug("Upscaled %dx%d -> %dx%d", w, h, width, height)
    return result


def stretch_contrast(image: np.ndarray, gain: float = 1.2) -> np.ndarray:
    """Linear contrast stretch around mid-grey.

    The bias ``128 - 128 * gain`` keeps intensity 128 fixed.
    """
    bias = 128.0 - 128.0 * gain
    stretched = image.astype(np.float32) * gain + bias
    return np.clip(stretched, 0, 255).astype(np.uint8)


def sharpen(image: np.ndarray, sigma: float = 1.0, amount: float = 1.0) -> np.ndarray:
    """Unsharp mask with a Gaussian blur of the given sigma."""
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    return cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)


def median_denoise(image: np.ndarray, kernel_size: int = 3) -> np.ndarray:
    """Median filter; removes salt-and-pepper noise while keeping strokes."""
    return cv2.medianBlur(image, kernel_size)


def normalize_intensity(image: np.ndarray) -> np.ndarray:
    """Stretch the intensity range to the full 0-255 span."""
    return cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to a single channel; greyscale passes through."""
    if image.ndim == 2:
        return image.copy()
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
