"""
Full End-to-End Pipeline

Validates one or more stamp photos against the expiry date expected for a
reference date's production week:

    expiry-validate photo1.jpg photo2.jpg --crop 120,340,900,260 \\
        --reference-date 2025-09-01 --output results/validation.json
"""

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from src.enhancement.types import CropRect, SourceImage
from src.utils.io import save_json
from src.utils.logging_config import setup_logging
from src.validation.config_loader import Config, get_default_config, load_config
from src.validation.processor import ExpiryValidator
from src.validation.session import ValidationSession
from src.validation.types import ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)

# Plant-local calendar day
PLANT_TIMEZONE = timezone(timedelta(hours=-3))


def today_in_plant_timezone() -> date:
    return datetime.now(PLANT_TIMEZONE).date()


def run_validation(
    image_paths: Sequence[Path],
    config: Config,
    reference_date: date,
    now: date,
    crop: Optional[CropRect] = None,
    profile: Optional[str] = None,
    debug_dir: Optional[Path] = None,
    validator: Optional[ExpiryValidator] = None,
) -> Dict[Path, ValidationResult]:
    """
    Validate a batch of image files concurrently.

    Args:
        image_paths: Photos of the stamp.
        config: Root configuration.
        reference_date: Date whose production week sets the target.
        now: Current date for the expiry check.
        crop: Region of interest applied to every image.
        profile: Extraction profile override.
        debug_dir: Directory for enhanced debug images.
        validator: Pre-built validator (built from config if None).

    Returns:
        Result per image path, in input order. A file that cannot be decoded
        gets an ERROR result; the other images are still validated.
    """
    validator = validator or ExpiryValidator(config=config, profile=profile, debug_dir=debug_dir)
    session = ValidationSession(validator, reference_date, now)

    ids: Dict[Path, str] = {}
    unreadable: Dict[Path, ValidationResult] = {}
    for path in image_paths:
        try:
            image = SourceImage.from_file(path)
        except ValueError as e:
            logger.error(f"Skipping {path}: {e}")
            unreadable[path] = _load_error_result(e)
            continue
        ids[path] = session.add_image(image, crop)

    if ids:
        asyncio.run(session.process_pending())
    return {
        path: unreadable[path] if path in unreadable else session.result(ids[path])
        for path in image_paths
    }


def _load_error_result(error: Exception) -> ValidationResult:
    result = ValidationResult(image_id=uuid.uuid4().hex)
    result.transition(ValidationStatus.PROCESSING)
    result.transition(ValidationStatus.ERROR, f"Could not load image: {error}")
    return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate expiry-date/lot-code stamps against the weekly schedule"
    )
    parser.add_argument("images", nargs="+", type=Path, help="Stamp photos")
    parser.add_argument("--crop", type=str, default=None, help="Region of interest as x,y,w,h")
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=None,
        help="Production date YYYY-MM-DD (default: today, UTC-3)",
    )
    parser.add_argument(
        "--now",
        type=date.fromisoformat,
        default=None,
        help="Date used for the expiry check YYYY-MM-DD (default: today, UTC-3)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Configuration file")
    parser.add_argument(
        "--engine", choices=["tesseract", "rapidocr"], default=None, help="OCR engine override"
    )
    parser.add_argument(
        "--profile",
        choices=["standard", "strict", "permissive"],
        default=None,
        help="Extraction profile override",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write results as JSON")
    parser.add_argument("--debug-dir", type=Path, default=None, help="Save enhanced images")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config) if args.config else get_default_config()
    if args.engine:
        config.ocr.engine.type = args.engine

    max_images = config.validation.session.max_images
    if max_images and len(args.images) > max_images:
        parser.error(f"At most {max_images} images can be validated at once")

    try:
        crop = CropRect.from_string(args.crop) if args.crop else None
    except ValueError as e:
        parser.error(str(e))

    today = today_in_plant_timezone()
    reference_date = args.reference_date or today
    now = args.now or today

    try:
        results = run_validation(
            args.images,
            config,
            reference_date,
            now,
            crop=crop,
            profile=args.profile,
            debug_dir=args.debug_dir,
        )
    except ValueError as e:
        logger.error(str(e))
        return 2

    for path, result in results.items():
        print(f"{path.name}: {result.status.value.upper()} - {result.message}")
        if result.fields.formatted():
            print(f"  read: {result.fields.formatted()}")

    if args.output:
        save_json(
            {
                "reference_date": reference_date.isoformat(),
                "now": now.isoformat(),
                "results": [
                    {"image": str(path), **result.to_dict()} for path, result in results.items()
                ],
            },
            args.output,
        )
        print(f"✓ Saved results to {args.output}")

    all_valid = all(result.status.value == "valid" for result in results.values())
    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
