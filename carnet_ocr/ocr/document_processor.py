"""Two-face identity card processing pipeline.

Each face runs quality check, decoding, normalization, recognition and
extraction independently; both faces run concurrently and meet only at the
join, where their results are merged and validated.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone

from carnet_ocr import __version__
from carnet_ocr.errors import (
    DecodeError,
    ProcessingCancelled,
    ProcessingError,
    RecognitionError,
)
from carnet_ocr.extraction.field_extractor import FieldExtractor
from carnet_ocr.extraction.merger import RecordMerger
from carnet_ocr.models import (
    DocumentResult,
    Face,
    FaceResult,
    IdentityRecord,
    QualityReport,
    round_half_up,
)
from carnet_ocr.preprocessing.decode import (
    MAX_IMAGE_BYTES,
    decode_base64_image,
    decode_image,
)
from carnet_ocr.preprocessing.pipeline import ImageNormalizer
from carnet_ocr.preprocessing.quality import QualityAssessor, decode_error_report
from carnet_ocr.utils.config import AppConfig
from carnet_ocr.utils.logger import get_logger
from carnet_ocr.validation.record_validator import RecordValidator

from .recognition import RecognitionAdapter
from .tesseract_engine import TesseractEngine, TextRecognizer

logger = get_logger(__name__)

SUPPORTED_FORMATS = ["jpg", "jpeg", "png", "tiff", "bmp", "webp"]
_POLL_INTERVAL_S = 0.05


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ProcessingCancelled("Request cancelled")


class DocumentProcessor:
    """End-to-end extraction for both faces of an identity card.

    Configuration is fixed at construction; the processor keeps no state
    between requests.

    Args:
        config: Application configuration. Defaults to ``AppConfig()``.
        engine: Text recognizer. Defaults to a ``TesseractEngine`` built
            from ``config.ocr``.
    """

    def __init__(
        self, config: AppConfig | None = None, engine: TextRecognizer | None = None
    ) -> None:
        self.config = config or AppConfig()
        self.engine = engine or TesseractEngine(
            tesseract_cmd=self.config.ocr.tesseract_cmd,
            psm=self.config.ocr.psm,
            oem=self.config.ocr.oem,
            timeout_s=self.config.ocr.timeout_s,
        )
        self.quality = QualityAssessor(self.config.quality)
        self.normalizer = ImageNormalizer(self.config.normalization)
        self.recognizer = RecognitionAdapter(self.engine, self.config.ocr)
        self.extractor = FieldExtractor(self.config.extraction)
        self.merger = RecordMerger(self.extractor)
        self.validator = RecordValidator(self.config.validation)

    def process_complete_document(
        self,
        front: bytes,
        back: bytes,
        cancel_event: threading.Event | None = None,
    ) -> DocumentResult:
        """Extract a validated identity record from both card faces.

        Args:
            front: Encoded image of the front face.
            back: Encoded image of the back face.
            cancel_event: Set it to abandon the request; in-flight faces stop
                at their next stage and all partial results are dropped.

        Returns:
            Merged record with quality reports and diagnostics.

        Raises:
            ProcessingError: If neither face could be recognized.
            ProcessingCancelled: If ``cancel_event`` was set.
        """
        logger.info("Processing identity card (%d + %d bytes)", len(front), len(back))
        executor = ThreadPoolExecutor(
            max_workers=self.config.processing.max_workers,
            thread_name_prefix="carnet-face",
        )
        try:
            futures = {
                face: executor.submit(self.process_face, data, face, cancel_event)
                for face, data in ((Face.FRONT, front), (Face.BACK, back))
            }
            self._join(list(futures.values()), cancel_event)
            front_result = self._collect(futures[Face.FRONT], Face.FRONT)
            back_result = self._collect(futures[Face.BACK], Face.BACK)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if front_result.failed and back_result.failed:
            message = (
                f"Both faces failed recognition "
                f"(front: {front_result.error}; back: {back_result.error})"
            )
            logger.error(message)
            raise ProcessingError(message)

        return self._assemble(front_result, back_result)

    def process_complete_document_base64(
        self,
        front_b64: str,
        back_b64: str,
        cancel_event: threading.Event | None = None,
    ) -> DocumentResult:
        """Same as ``process_complete_document`` for base64 or data-URI payloads.

        Raises:
            InvalidImageData: If a payload fails validation.
        """
        front = decode_base64_image(front_b64)
        back = decode_base64_image(back_b64)
        return self.process_complete_document(front, back, cancel_event)

    def process_face(
        self,
        data: bytes,
        face: Face,
        cancel_event: threading.Event | None = None,
    ) -> FaceResult:
        """Run the pipeline for a single face.

        Recognition failures and undecodable images are reported in the
        returned ``FaceResult`` instead of being raised.

        Raises:
            ProcessingCancelled: If ``cancel_event`` was set.
        """
        _check_cancelled(cancel_event)
        try:
            image = decode_image(data)
        except DecodeError as exc:
            logger.warning("Cannot decode %s face: %s", face, exc)
            return FaceResult(
                face=face, quality=decode_error_report(), error=f"DecodeError: {exc}"
            )

        quality = self.quality.assess_array(image.pixels)
        _check_cancelled(cancel_event)

        normalized = self.normalizer.normalize(image.pixels)
        _check_cancelled(cancel_event)

        try:
            recognition = self.recognizer.recognize(normalized, face)
        except RecognitionError as exc:
            logger.warning("Recognition failed for %s face: %s", face, exc)
            return FaceResult(
                face=face, quality=quality, error=f"{type(exc).__name__}: {exc}"
            )
        _check_cancelled(cancel_event)

        if recognition.confidence < self.config.processing.confidence_threshold:
            logger.warning(
                "Low confidence on %s face: %.1f%%", face, recognition.confidence
            )

        fields = self.extractor.extract(recognition.raw_text, face)
        return FaceResult(
            face=face, quality=quality, recognition=recognition, fields=fields
        )

    def assess_quality(self, data: bytes) -> QualityReport:
        """Check an image without recognizing it."""
        return self.quality.assess(data)

    def service_info(self) -> dict[str, object]:
        """Static description of the service and its configuration."""
        return {
            "service": "carnet-ocr",
            "version": __version__,
            "language": self.config.ocr.language,
            "confidence_threshold": self.config.processing.confidence_threshold,
            "supported_formats": SUPPORTED_FORMATS,
            "max_image_bytes": MAX_IMAGE_BYTES,
            "status": "active",
        }

    def health_check(self) -> dict[str, str]:
        """Probe the recognition engine."""
        probe = getattr(self.engine, "is_available", None)
        available = probe() if callable(probe) else True
        return {
            "status": "healthy" if available else "unhealthy",
            "engine": "operational" if available else "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _join(
        self, futures: list[Future], cancel_event: threading.Event | None
    ) -> None:
        """Wait for both faces until they finish, time out or get cancelled."""
        deadline = time.monotonic() + self.config.processing.face_timeout_s
        pending = set(futures)
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                for future in futures:
                    future.cancel()
                logger.info("Request cancelled, discarding face results")
                raise ProcessingCancelled("Request cancelled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("%d face pipeline(s) timed out", len(pending))
                return
            _, pending = wait(pending, timeout=min(remaining, _POLL_INTERVAL_S))
        _check_cancelled(cancel_event)

    def _collect(self, future: Future, face: Face) -> FaceResult:
        if not future.done():
            future.cancel()
            timeout = self.config.processing.face_timeout_s
            return FaceResult(
                face=face,
                quality=None,
                error=f"RecognitionTimeout: {face} face exceeded {timeout}s",
            )
        return future.result()

    def _assemble(self, front: FaceResult, back: FaceResult) -> DocumentResult:
        fields = self.merger.merge(front, back)
        validation = self.validator.validate(fields)
        average = round_half_up((front.confidence + back.confidence) / 2)
        record = IdentityRecord(
            fields=fields, average_confidence=average, validation=validation
        )
        diagnostics = self._diagnostics(front, back, average)

        logger.info(
            "Identity card processed: confidence %d%%, completeness %d%%",
            average,
            validation.completeness,
        )
        return DocumentResult(
            record=record,
            average_confidence=average,
            quality={Face.FRONT: front.quality, Face.BACK: back.quality},
            diagnostics=diagnostics,
            front=front,
            back=back,
        )

    def _diagnostics(
        self, front: FaceResult, back: FaceResult, average: int
    ) -> list[str]:
        processing = self.config.processing
        messages: list[str] = []

        for result in (front, back):
            if result.error:
                messages.append(f"{result.face} face failed: {result.error}")
            elif result.confidence < processing.confidence_threshold:
                messages.append(
                    f"Low recognition confidence on {result.face} face: "
                    f"{result.confidence:.1f}%"
                )
            if result.quality is not None:
                messages.extend(
                    f"{result.face} image: {hint}"
                    for hint in result.quality.recommendations
                )

        if average < processing.low_confidence_advisory:
            advisory = (
                f"Average confidence {average}% is below "
                f"{processing.low_confidence_advisory:.0f}%: "
                "improve image quality for better results"
            )
            logger.warning(advisory)
            messages.append(advisory)
        return messages
