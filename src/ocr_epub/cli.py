#!/usr/bin/env python
"""
Command-line interface for OCR EPUB.

Usage:
    ocr-epub --input <document> --output <output_dir> [options]

Examples:
    # OCR a PDF and build the bundle
    ocr-epub --input paper.pdf --output ./output

    # Rebuild the bundle from a saved OCR response (no network)
    ocr-epub --input paper.pdf --ocr-json paper.ocr.json --output ./output

    # Store the API key for later runs
    ocr-epub --api-key sk-... --save-key
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from ocr_epub import __version__
from ocr_epub.config import API_KEY_NAME, default_key_store, get_config

logger = logging.getLogger("ocr_epub")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="OCR EPUB - Convert documents to Markdown, HTML and EPUB via OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  OCR a PDF and write <name>-ocr.zip:
    ocr-epub --input paper.pdf --output ./output

  Skip the OCR call and reuse a saved response:
    ocr-epub --input paper.pdf --ocr-json paper.ocr.json --output ./output

  Drop running headers and footers:
    ocr-epub --input paper.pdf --output ./output --exclude-headers --exclude-footers
        """
    )

    parser.add_argument(
        "--input", "-i",
        help="Input document (PDF, DOCX, PPTX, image, ...)"
    )

    parser.add_argument(
        "--output", "-o",
        default=".",
        help="Output directory for the generated archive (default: current directory)"
    )

    parser.add_argument(
        "--ocr-json",
        default=None,
        help="Use a saved OCR response instead of calling the OCR API"
    )

    parser.add_argument(
        "--save-ocr-json",
        default=None,
        help="Save the OCR response to this JSON file"
    )

    parser.add_argument(
        "--api-key",
        default=None,
        help=f"OCR API key (default: ${API_KEY_NAME} or the saved key)"
    )

    parser.add_argument(
        "--save-key",
        action="store_true",
        help="Store --api-key in the settings file for later runs"
    )

    parser.add_argument(
        "--exclude-headers",
        action="store_true",
        help="Ask the OCR provider to keep page headers out of the text"
    )

    parser.add_argument(
        "--exclude-footers",
        action="store_true",
        help="Ask the OCR provider to keep page footers out of the text"
    )

    parser.add_argument(
        "--math-engine",
        choices=["mathtext", "none"],
        default=None,
        help="Math rendering engine (default: mathtext, falls back to source)"
    )

    parser.add_argument(
        "--inline-math",
        choices=["anchored", "strict", "off"],
        default=None,
        help="Inline $...$ detection policy (default: anchored)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a traceback"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    try:
        import markdown
    except ImportError:
        missing.append("markdown")

    try:
        import requests
    except ImportError:
        missing.append("requests")

    try:
        import matplotlib
    except ImportError:
        optional_missing.append("matplotlib (for SVG math rendering)")

    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install ocr-epub")
        return False

    if optional_missing:
        logger.warning("Missing optional dependencies (some features may be limited):")
        for dep in optional_missing:
            logger.warning(f"  - {dep}")

    return True


def run_pipeline(args, key_store=None) -> int:
    """Run the conversion pipeline."""
    from ocr_epub.utils.assembler import DocumentAssembler, output_name_for
    from ocr_epub.utils.io import ensure_dir, load_json, save_json, write_bytes
    from ocr_epub.utils.models import OcrOptions, OcrResult

    start_time = time.time()
    key_store = key_store or default_key_store()

    if args.save_key:
        if not args.api_key:
            logger.error("--save-key requires --api-key")
            return 1
        key_store.set(args.api_key, API_KEY_NAME)
        if not args.input:
            return 0

    if not args.input:
        logger.error("--input is required")
        return 1

    config = get_config()
    if args.math_engine:
        config.render.math_engine = args.math_engine
    if args.inline_math:
        config.render.inline_math = args.inline_math
    if args.debug:
        config.debug_mode = True

    options = OcrOptions(
        exclude_headers=args.exclude_headers,
        exclude_footers=args.exclude_footers
    )

    input_path = Path(args.input)
    output_dir = ensure_dir(args.output)
    assembler = DocumentAssembler(config=config)

    # Obtain the OCR result
    if args.ocr_json:
        logger.info(f"Loading OCR response: {args.ocr_json}")
        ocr_result = OcrResult.from_dict(load_json(args.ocr_json))
    else:
        if not input_path.exists():
            logger.error(f"Input file not found: {input_path}")
            return 1
        api_key = args.api_key or key_store.get(API_KEY_NAME)
        if not api_key:
            logger.error(f"No API key. Pass --api-key or set {API_KEY_NAME}.")
            return 1
        ocr_result = assembler.ocr_client.perform_ocr(
            input_path.read_bytes(), input_path.name, api_key, options
        )

    if args.save_ocr_json:
        save_json(ocr_result.to_dict(), args.save_ocr_json)
        logger.info(f"Saved OCR response: {args.save_ocr_json}")

    archive = assembler.assemble_output(ocr_result, input_path.name, options)
    output_path = write_bytes(archive, output_dir / output_name_for(input_path.name, config.output_suffix))

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("CONVERSION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_path}")
        print(f"Pages: {len(ocr_result.pages)}")
        print(f"Archive size: {len(archive)} bytes")
        print(f"Processing time: {elapsed:.2f}s")
        print("=" * 60)

    return 0


def main():
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    if not check_dependencies():
        sys.exit(1)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Conversion failed: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
