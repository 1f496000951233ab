"""Command-line interface for identity card extraction.

Subcommands process both faces of a card, a single face, or only check
image quality, and print JSON results.
"""

import argparse
import json
import sys
from pathlib import Path

from pydantic import BaseModel

from carnet_ocr.errors import ProcessingError
from carnet_ocr.models import Face
from carnet_ocr.ocr.document_processor import DocumentProcessor
from carnet_ocr.schemas import (
    ErrorResponse,
    ExtractionResponse,
    FaceResponse,
    QualityResponse,
)
from carnet_ocr.utils.config import load_config
from carnet_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _read_image(path: Path) -> bytes:
    if not path.is_file():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)
    return path.read_bytes()


def _emit(payload: BaseModel | dict, output: Path | None = None) -> None:
    """Print a JSON payload or write it to ``output``."""
    if isinstance(payload, BaseModel):
        output_str = payload.model_dump_json(indent=2)
    else:
        output_str = json.dumps(payload, indent=2, ensure_ascii=False)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def extract_document(
    processor: DocumentProcessor,
    front_path: Path,
    back_path: Path,
    output: Path | None = None,
) -> int:
    """Process both faces of a card and emit the merged record.

    Returns:
        Process exit code.
    """
    front = _read_image(front_path)
    back = _read_image(back_path)

    try:
        result = processor.process_complete_document(front, back)
    except ProcessingError as exc:
        logger.error(
            "Failed to process %s / %s: %s", front_path.name, back_path.name, exc
        )
        _emit(
            ErrorResponse(message="Error processing identity card", error=str(exc)),
            output,
        )
        return 1

    _emit(ExtractionResponse.from_result(result), output)
    return 0


def extract_face(
    processor: DocumentProcessor,
    image_path: Path,
    face: Face,
    output: Path | None = None,
) -> int:
    """Process one face of a card."""
    result = processor.process_face(_read_image(image_path), face)
    _emit(FaceResponse.from_result(result), output)
    return 1 if result.failed else 0


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Identity card OCR field extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: configs/config.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser(
        "extract", help="Process both faces of an identity card"
    )
    extract_parser.add_argument("front", type=Path, help="Image of the front face")
    extract_parser.add_argument("back", type=Path, help="Image of the back face")
    extract_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    face_parser = subparsers.add_parser("face", help="Process a single face")
    face_parser.add_argument("image", type=Path, help="Image of one face")
    face_parser.add_argument(
        "-s",
        "--side",
        choices=[f.value for f in Face],
        default=Face.FRONT.value,
        help="Which face the image shows (default: front)",
    )
    face_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    quality_parser = subparsers.add_parser(
        "quality", help="Check image quality without recognition"
    )
    quality_parser.add_argument("image", type=Path, help="Image to check")

    subparsers.add_parser("health", help="Check that the OCR engine is available")
    subparsers.add_parser("info", help="Show service information")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    processor = DocumentProcessor(config)

    if args.command == "extract":
        sys.exit(extract_document(processor, args.front, args.back, args.output))
    elif args.command == "face":
        sys.exit(extract_face(processor, args.image, Face(args.side), args.output))
    elif args.command == "quality":
        report = processor.assess_quality(_read_image(args.image))
        _emit(QualityResponse.from_report(report))
    elif args.command == "health":
        health = processor.health_check()
        _emit(health)
        sys.exit(0 if health["status"] == "healthy" else 1)
    elif args.command == "info":
        _emit(processor.service_info())


if __name__ == "__main__":
    main()
