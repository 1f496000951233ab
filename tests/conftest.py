"""Shared test fixtures for the identity card OCR test suite."""

import io
import threading
import time

import numpy as np
import pytest
from PIL import Image

# Normalized widths of the fixture images: 700px -> 1600px, 1000px -> 1500px.
FRONT_WIDTH = 1600
BACK_WIDTH = 1500

FRONT_TEXT = (
    "ESTADO PLURINACIONAL DE BOLIVIA\n"
    "CEDULA DE IDENTIDAD\n"
    "No. 5847291 LP\n"
)

BACK_TEXT = (
    "Nacido el 15 de marzo de 2001\n"
    "En LA PAZ - MURILLO - NUESTRA SEÑORA DE LA PAZ\n"
    "Domicilio C. LOS PINOS 123 ZONA SOPOCACHI\n"
    "Padre CESAR SILVIO ALVARADO TICONA/CI:2542147\n"
    "Madre MARIA AURORA CALLISAYA MAT EO/CI:3456328\n"
    "A: DIEGO CESAR ALVARADO CALLISAYA\n"
    "Serie 43333\n"
)


def encode_png(image: np.ndarray) -> bytes:
    """Encode an array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="PNG")
    return buffer.getvalue()


def noise_image(width: int, height: int, seed: int = 0) -> np.ndarray:
    """High-contrast RGB noise: passes every quality check when large enough."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class ScriptedEngine:
    """Fake recognizer returning scripted responses keyed by image width.

    A response is either a ``(text, confidence)`` tuple or an exception to
    raise. Start and end timestamps of every call are recorded per width.
    """

    def __init__(
        self,
        responses: dict | None = None,
        default: tuple[str, float] = ("", 0.0),
        delays: dict[int, float] | None = None,
        barrier: threading.Barrier | None = None,
        gate: threading.Event | None = None,
    ) -> None:
        self.responses = responses or {}
        self.default = default
        self.delays = delays or {}
        self.barrier = barrier
        self.gate = gate
        self.calls: list[dict] = []
        self.timings: dict[int, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def recognize(self, image_bytes: bytes, language: str, char_whitelist: str):
        start = time.monotonic()
        with Image.open(io.BytesIO(image_bytes)) as img:
            width = img.width
            mode = img.mode
        with self._lock:
            self.calls.append(
                {
                    "width": width,
                    "mode": mode,
                    "language": language,
                    "whitelist": char_whitelist,
                }
            )

        if self.barrier is not None:
            self.barrier.wait()
        if self.gate is not None:
            self.gate.wait(5)
        if width in self.delays:
            time.sleep(self.delays[width])

        response = self.responses.get(width, self.default)
        with self._lock:
            self.timings[width] = (start, time.monotonic())
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def front_image() -> np.ndarray:
    return noise_image(700, 500, seed=1)


@pytest.fixture
def back_image() -> np.ndarray:
    return noise_image(1000, 700, seed=2)


@pytest.fixture
def front_bytes(front_image: np.ndarray) -> bytes:
    return encode_png(front_image)


@pytest.fixture
def back_bytes(back_image: np.ndarray) -> bytes:
    return encode_png(back_image)


@pytest.fixture
def card_engine() -> ScriptedEngine:
    """Engine reading a complete card: front at 90%, back at 80% confidence."""
    return ScriptedEngine(
        {FRONT_WIDTH: (FRONT_TEXT, 90.0), BACK_WIDTH: (BACK_TEXT, 80.0)}
    )


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image
