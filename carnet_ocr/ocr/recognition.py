"""Boundary between the pipeline and the text recognition engine."""

import io
from collections.abc import Iterator
from contextlib import contextmanager

import numpy as np
from PIL import Image

from carnet_ocr.errors import RecognitionUnavailable
from carnet_ocr.models import Face, RecognitionResult
from carnet_ocr.utils.config import OCRConfig
from carnet_ocr.utils.logger import get_logger

from .tesseract_engine import TextRecognizer

logger = get_logger(__name__)


@contextmanager
def staged_image(image: np.ndarray) -> Iterator[bytes]:
    """Encode an image as uncompressed PNG for the lifetime of the block.

    PNG is lossless, so staging adds no artifacts the recognizer could
    misread. The buffer is released when the block exits.
    """
    buffer = io.BytesIO()
    try:
        Image.fromarray(image).save(buffer, format="PNG", compress_level=0)
        yield buffer.getvalue()
    finally:
        buffer.close()


class RecognitionAdapter:
    """Runs the configured engine on a normalized image.

    Args:
        engine: Any ``TextRecognizer``; tests pass scripted fakes.
        config: Language and character whitelist for the engine.
    """

    def __init__(self, engine: TextRecognizer, config: OCRConfig | None = None) -> None:
        self.engine = engine
        self.config = config or OCRConfig()

    def recognize(self, image: np.ndarray, face: Face) -> RecognitionResult:
        """Recognize the text of one face.

        Raises:
            RecognitionError: If the engine is unavailable or timed out.
        """
        try:
            with staged_image(image) as image_bytes:
                text, confidence = self.engine.recognize(
                    image_bytes, self.config.language, self.config.char_whitelist
                )
        except (TypeError, ValueError) as exc:
            raise RecognitionUnavailable(f"Could not stage image: {exc}") from exc

        confidence = min(100.0, max(0.0, float(confidence)))
        logger.info("Recognized %s face: confidence %.1f", face, confidence)
        return RecognitionResult(raw_text=text or "", confidence=confidence, face=face)
