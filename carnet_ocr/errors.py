"""Exception hierarchy for the identity card OCR pipeline.

Only recognition failures travel as exceptions between components. Quality
and extraction problems are represented as data (degraded scores, ``None``
fields) and never raised to the caller.
"""


class CarnetOCRError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(CarnetOCRError):
    """Image bytes could not be decoded into pixels."""


class InvalidImageData(CarnetOCRError, ValueError):
    """A base64 image payload is empty, malformed or out of size bounds."""


class RecognitionError(CarnetOCRError):
    """The text recognition engine failed for one face."""


class RecognitionTimeout(RecognitionError):
    """The recognition engine did not answer within its time budget."""


class RecognitionUnavailable(RecognitionError):
    """The recognition engine is missing or errored out."""


class ProcessingError(CarnetOCRError):
    """Neither face of the document could be recognized."""


class ProcessingCancelled(ProcessingError):
    """The caller cancelled the request while faces were in flight."""
