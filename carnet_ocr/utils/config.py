"""Configuration for the identity card OCR pipeline.

Every section is a pydantic model with working defaults, so the pipeline
runs without any file. The CLI loads a YAML file and hands the resulting
``AppConfig`` to ``DocumentProcessor``; the core never reads files itself.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CHAR_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    "ÁÉÍÓÚáéíóúÑñ0123456789 .,:-/"
)


class QualityConfig(BaseModel):
    """Thresholds and penalties used to score recognition readiness."""

    min_width: int = 600
    min_height: int = 400
    min_contrast: int = 100
    min_stdev: float = 30.0
    min_brightness: float = 50.0
    max_brightness: float = 200.0
    resolution_penalty: int = 30
    contrast_penalty: int = 20
    blur_penalty: int = 20
    lighting_penalty: int = 15


class NormalizationConfig(BaseModel):
    """Parameters of the fixed image normalization chain."""

    small_width: int = 800
    small_target_width: int = 1600
    min_target_width: int = 1200
    upscale_factor: float = 1.5
    contrast_gain: float = 1.2
    sharpen_sigma: float = 1.0
    sharpen_amount: float = 1.0
    median_kernel: int = 3
    on_step_error: Literal["original", "skip"] = "original"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract engine."""

    tesseract_cmd: str | None = None
    language: str = "spa"
    psm: int = 6
    oem: int = 1
    char_whitelist: str = DEFAULT_CHAR_WHITELIST
    timeout_s: float = 30.0


class ExtractionConfig(BaseModel):
    """Configuration for field extraction."""

    # Serial captures observed to belong to other printed fields.
    serie_denylist: list[str] = Field(
        default_factory=lambda: ["8446290", "21222", "2026", "2002"]
    )


class ValidationConfig(BaseModel):
    """Configuration for the record validity verdict."""

    min_completeness: int = 70
    required_fields: list[str] = Field(default_factory=lambda: ["ci", "nombres"])


class ProcessingConfig(BaseModel):
    """Configuration for the two-face orchestration."""

    confidence_threshold: float = 60.0
    low_confidence_advisory: float = 50.0
    face_timeout_s: float = 120.0
    max_workers: int = 2


class AppConfig(BaseModel):
    """Top-level application configuration."""

    quality: QualityConfig = Field(default_factory=QualityConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
