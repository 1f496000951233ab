"""Tesseract OCR engine wrapper.

Implements the narrow ``TextRecognizer`` interface the pipeline depends on:
image bytes in, ``(text, confidence)`` out.
"""

import io
from typing import Protocol

import pytesseract
from PIL import Image

from carnet_ocr.errors import RecognitionTimeout, RecognitionUnavailable
from carnet_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class TextRecognizer(Protocol):
    """Anything that turns image bytes into text and a 0-100 confidence."""

    def recognize(
        self, image_bytes: bytes, language: str, char_whitelist: str
    ) -> tuple[str, float]: ...


def build_tesseract_config(psm: int, oem: int, char_whitelist: str) -> str:
    """Command-line options for a single text block, LSTM only.

    The whitelist is quoted so that the space it contains survives the
    shell-style splitting pytesseract applies to ``config``.
    """
    options = [f"--psm {psm}", f"--oem {oem}", "-c preserve_interword_spaces=1"]
    if char_whitelist:
        options.append(f'-c "tessedit_char_whitelist={char_whitelist}"')
    return " ".join(options)


class TesseractEngine:
    """Tesseract-backed ``TextRecognizer``.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        psm: Page segmentation mode (6 = single uniform block).
        oem: OCR engine mode (1 = LSTM only).
        timeout_s: Seconds before a Tesseract call is killed; 0 disables it.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        psm: int = 6,
        oem: int = 1,
        timeout_s: float = 30.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.psm = psm
        self.oem = oem
        self.timeout_s = timeout_s

    def is_available(self) -> bool:
        """Whether the Tesseract binary can be executed."""
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            logger.warning("Tesseract executable not found")
            return False
        logger.debug("Tesseract version %s", version)
        return True

    def recognize(
        self, image_bytes: bytes, language: str, char_whitelist: str
    ) -> tuple[str, float]:
        """Recognize text in an encoded image.

        Args:
            image_bytes: Encoded image (PNG recommended).
            language: Tesseract language code, e.g. ``"spa"``.
            char_whitelist: Characters the recognizer may emit.

        Returns:
            Tuple of (text, mean word confidence in 0-100).

        Raises:
            RecognitionTimeout: If Tesseract exceeded ``timeout_s``.
            RecognitionUnavailable: If Tesseract is missing or failed.
        """
        config = build_tesseract_config(self.psm, self.oem, char_whitelist)

        try:
            with Image.open(io.BytesIO(image_bytes)) as pil_image:
                text = pytesseract.image_to_string(
                    pil_image, lang=language, config=config, timeout=self.timeout_s
                )
                data = pytesseract.image_to_data(
                    pil_image,
                    lang=language,
                    config=config,
                    timeout=self.timeout_s,
                    output_type=pytesseract.Output.DICT,
                )
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionUnavailable("Tesseract is not installed") from exc
        except pytesseract.TesseractError as exc:
            raise RecognitionUnavailable(f"Tesseract failed: {exc}") from exc
        except RuntimeError as exc:
            # pytesseract signals a killed process with a bare RuntimeError
            if "timeout" in str(exc).lower():
                raise RecognitionTimeout(
                    f"Tesseract timed out after {self.timeout_s}s"
                ) from exc
            raise RecognitionUnavailable(f"Tesseract failed: {exc}") from exc

        confidence = mean_word_confidence(data)
        logger.info(
            "Tesseract recognized %d characters with confidence %.1f",
            len(text),
            confidence,
        )
        return text, confidence


def mean_word_confidence(data: dict) -> float:
    """Average confidence (0-100) over non-empty words with a positive score."""
    total = 0.0
    count = 0
    for word, conf in zip(data.get("text", []), data.get("conf", []), strict=False):
        try:
            score = float(conf)
        except (TypeError, ValueError):
            continue
        if score > 0 and str(word).strip():
            total += score
            count += 1
    return total / count if count else 0.0
