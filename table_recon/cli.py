#!/usr/bin/env python
"""
Command-line interface for the Table Reconstruction Pipeline.

Usage:
    table-recon --input <zones.json> --output <output_dir> [options]

Examples:
    # Reconstruct tables from detected zones and OCR text
    table-recon --input page.json --output ./output

    # Keep split tables apart
    table-recon --input page.json --output ./output --no-merge

    # Debug mode with cell overlay image
    table-recon --input page.json --output ./output --debug --image page.png
"""

import sys
import argparse
import logging
import time
from pathlib import Path

from table_recon import __version__
from table_recon.config import get_config

logger = logging.getLogger("table_recon")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="table-recon",
        description="Table Reconstruction Pipeline - Rebuild table structure from detected rulings and OCR text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input format:
  {"zones": [{"x": 0, "y": 0, "width": 100, "height": 40, "kind": "table",
              "lines": [{"orientation": "horizontal", "x1": 0, "y1": 20,
                         "x2": 100, "y2": 20, "confidence": 0.9}]}],
   "text": "flat blob" | [{"text": "...", "bbox": [x1, y1, x2, y2], "confidence": 0.9}]}
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input JSON file with zones and optional OCR text"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--merge-strategy",
        choices=["geometric", "content"],
        default=None,
        help="Strategy used to join tables split across zones (default: geometric)"
    )

    parser.add_argument(
        "--no-merge",
        action="store_true",
        help="Do not merge tables across zones"
    )

    parser.add_argument(
        "--span-tolerance",
        type=float,
        default=None,
        help="Geometry tolerance for merged-cell inference (default: 5.0)"
    )

    parser.add_argument(
        "--no-spans",
        action="store_true",
        help="Disable merged-cell inference"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Reconstruct zones on this many threads (default: 1)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (outputs an overlay image of the reconstructed cells)"
    )

    parser.add_argument(
        "--image",
        default=None,
        help="Page image to draw the debug overlay on (default: blank canvas)"
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


def build_config(args):
    """Pipeline configuration from environment defaults and CLI flags."""
    config = get_config()
    if args.debug:
        config.debug_mode = True
    if args.merge_strategy:
        config.merge.strategy = args.merge_strategy
    if args.no_merge:
        config.merge.enabled = False
    if args.span_tolerance is not None:
        config.spans.tolerance = args.span_tolerance
    if args.no_spans:
        config.spans.enabled = False
    if args.workers is not None:
        config.max_workers = args.workers
    return config


def run_pipeline(args) -> int:
    """Run the table reconstruction pipeline."""
    from table_recon.utils.io import (
        ensure_dir, load_image, load_json, load_text, load_zones, output_stem, save_json
    )
    from table_recon.utils.assembler import TableAssembler

    start_time = time.time()

    output_dir = ensure_dir(args.output)
    input_path = Path(args.input)

    try:
        data = load_json(input_path)
        zones = load_zones(data)
        text = load_text(data)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return 1

    logger.info(f"Loaded {len(zones)} zone(s) from {input_path}")

    config = build_config(args)
    assembler = TableAssembler(config)
    tables = assembler.reconstruct(zones, text)

    json_path = output_dir / f"{output_stem(input_path, 'tables')}.json"
    save_json(
        {
            "source_file": str(input_path),
            "tables": [t.to_dict() for t in tables]
        },
        json_path
    )
    logger.info(f"Saved JSON: {json_path}")

    if config.debug_mode:
        from table_recon.utils.debug import save_debug_image

        image = load_image(args.image) if args.image else None
        debug_path = save_debug_image(
            tables,
            output_dir / f"{output_stem(input_path, 'debug')}.png",
            image=image,
            zones=zones
        )
        logger.info(f"Saved debug image: {debug_path}")

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("TABLE RECONSTRUCTION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        print(f"Zones: {len(zones)}")
        print(f"Tables: {len(tables)}")
        print(f"Processing time: {elapsed:.2f}s")
        for table in tables:
            print(
                f"  {table.table_id}: {table.row_count}x{table.col_count} "
                f"quality={table.quality:.2f} confidence={table.confidence:.2f} "
                f"({table.extraction_method})"
            )
        print("=" * 60)

    return 0


def main(argv=None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
