#!/usr/bin/env python3
"""
Material Ingestion Script

Turn study materials into content blocks and learning units.

Two commands are available:
1. parse  - Offline: recover blocks (and optionally units) from model
            responses saved to disk. No API key needed.
2. ingest - Online: run the full ingestion pipeline against the model.

Setup:
    1. Copy .env.example to .env in the project root and fill in API keys
    2. Run any command below

Usage:
    # Recover blocks from a saved block-extraction response
    python scripts/run_ingestion.py parse response.txt --material-category exercise

    # Recover blocks and synthesize units from a saved unit-generation response
    python scripts/run_ingestion.py parse blocks.txt --units-file units.txt

    # Ingest one material with rendered page images
    python scripts/run_ingestion.py ingest 三年级语文真题.pdf \\
        --page 1=https://cdn.example.com/p1.png --page 2=https://cdn.example.com/p2.png

    # Ingest from metadata only (text-only model call)
    python scripts/run_ingestion.py ingest 古诗词背诵.pdf --notes "第三单元"

    # Save the full result as JSON
    python scripts/run_ingestion.py ingest 套卷.pdf --page 1=... -o result.json

Environment Variables (set in .env or environment):
    - OPENAI_API_KEY / GEMINI_API_KEY / ANTHROPIC_API_KEY: For model calls
    - TEXT_MODEL, VISION_MODEL: Model identifiers in LiteLLM format
    - PROCESSING_MAX_PAGE_CONCURRENCY: Pages processed at once (default 1)
    - DEBUG: Enable verbose logging
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add backend to path for imports (must be before studykit.* imports)
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from dotenv import load_dotenv

# Load environment variables from project root .env
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

from studykit.enums.content import MaterialCategory
from studykit.errors import ServiceError
from studykit.models.content import PageImage
from studykit.models.processing import IngestionRequest, IngestionResult
from studykit.pipelines.material_ingestion import (
    MaterialIngestionPipeline,
    create_resource,
)
from studykit.pipelines.utils.text_utils import as_object_list, recover_json
from studykit.services.processing.stages.blocks import (
    ensure_unique_block_ids,
    normalize_block,
)
from studykit.services.processing.stages.units import synthesize_units
from studykit.services.processing.validation import validate_ingestion_result


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # Reduce noise from httpx and LiteLLM (unless --debug)
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("LiteLLM").setLevel(logging.WARNING)


# =============================================================================
# Output
# =============================================================================


def print_result(result: IngestionResult, output_format: str = "summary") -> None:
    """Print an ingestion result as a summary or JSON."""
    if output_format == "json":
        print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    resource = result.resource
    print("\n" + "=" * 70)
    print(f"📚 {resource.title} ({resource.material_category.value})")
    print("=" * 70)

    print(f"\n🧱 Blocks ({len(result.blocks)}):")
    for block in result.blocks:
        pages = f" p.{block.page_start}" if block.page_start else ""
        print(f"  [{block.category.value}] {block.title}{pages}  ({block.id})")

    print(f"\n📝 Units ({len(result.units)}):")
    for unit in result.units:
        kind = unit.exercise_kind.value if unit.exercise_kind else "generic"
        print(f"  [{kind}] {unit.title}  ({unit.id})")

    if result.failures:
        print(f"\n❌ Failed pages ({len(result.failures)}):")
        for failure in result.failures:
            print(f"  p.{failure.page_number} {failure.error_code}: {failure.message}")

    if result.quality_issues:
        print(f"\n⚠️  Quality issues ({len(result.quality_issues)}):")
        for issue in result.quality_issues:
            print(f"  - {issue}")
    print()


def save_result(result: IngestionResult, output_file: Optional[str]) -> None:
    if not output_file:
        return
    path = Path(output_file)
    path.write_text(
        json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    print(f"💾 Saved result to {path}")


# =============================================================================
# Parse Command
# =============================================================================


def parse_saved_responses(
    blocks_file: str,
    units_file: Optional[str] = None,
    material_category: Optional[str] = None,
) -> IngestionResult:
    """Recover blocks (and units) from saved model responses."""
    path = Path(blocks_file)
    resource = create_resource(
        path.name,
        material_category=MaterialCategory(material_category)
        if material_category
        else None,
    )

    recovered = recover_json(path.read_text(encoding="utf-8"))
    if recovered.is_partial:
        print(f"⚠️  Discarded {len(recovered.discarded)} malformed objects")
    raw_blocks = as_object_list(recovered.value, ("blocks", "items", "data"))
    blocks = ensure_unique_block_ids(
        [
            normalize_block(raw, resource.material_category, resource.id, index=i)
            for i, raw in enumerate(raw_blocks)
        ]
    )

    units = []
    if units_file:
        intents = as_object_list(
            recover_json(Path(units_file).read_text(encoding="utf-8")).value,
            ("units", "data"),
        )
        units = synthesize_units(blocks, intents)

    result = IngestionResult(resource=resource, blocks=blocks, units=units)
    return result.model_copy(
        update={"quality_issues": validate_ingestion_result(result)}
    )


# =============================================================================
# Ingest Command
# =============================================================================


def parse_page_arg(value: str) -> PageImage:
    """Parse a --page argument of the form N=URL."""
    number, sep, url = value.partition("=")
    if not sep or not number.strip().isdigit() or not url.strip():
        raise argparse.ArgumentTypeError(f"Expected N=URL, got '{value}'")
    return PageImage(page_number=int(number), url=url.strip())


async def ingest_material(args: argparse.Namespace) -> IngestionResult:
    request = IngestionRequest(
        file_name=args.file_name,
        notes=args.notes,
        material_category=MaterialCategory(args.material_category)
        if args.material_category
        else None,
        pages=args.page or [],
    )
    pipeline = MaterialIngestionPipeline(max_concurrency=args.concurrency)
    return await pipeline.ingest(request)


# =============================================================================
# CLI Setup
# =============================================================================


def add_output_args(parser: argparse.ArgumentParser) -> None:
    """Add common output arguments to a parser."""
    parser.add_argument(
        "--format",
        "-f",
        choices=["summary", "json"],
        default="summary",
        help="Output format (default: summary)",
    )
    parser.add_argument(
        "--output-file",
        "-o",
        metavar="FILE",
        help="Save full result to JSON file",
    )
    parser.add_argument(
        "--material-category",
        choices=[c.value for c in MaterialCategory],
        default=None,
        help="Material category (default: inferred from the file name)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Turn study materials into content blocks and learning units",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse", help="Recover blocks and units from saved model responses"
    )
    parse_parser.add_argument("blocks_file", help="Saved block-extraction response")
    parse_parser.add_argument(
        "--units-file",
        metavar="FILE",
        help="Saved unit-generation response",
    )
    add_output_args(parse_parser)

    # Ingest command
    ingest_parser = subparsers.add_parser(
        "ingest", help="Run the ingestion pipeline against the model"
    )
    ingest_parser.add_argument("file_name", help="Original file name of the material")
    ingest_parser.add_argument("--notes", default=None, help="Uploader notes")
    ingest_parser.add_argument(
        "--page",
        action="append",
        type=parse_page_arg,
        metavar="N=URL",
        help="Rendered page image (repeatable)",
    )
    ingest_parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Pages processed at once (default: PROCESSING_MAX_PAGE_CONCURRENCY)",
    )
    add_output_args(ingest_parser)

    return parser


async def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.debug)

    try:
        if args.command == "parse":
            result = parse_saved_responses(
                args.blocks_file,
                units_file=args.units_file,
                material_category=args.material_category,
            )
        else:
            result = await ingest_material(args)
    except ServiceError as e:
        print(f"❌ {e.error_code}: {e.message}")
        if e.details:
            print(json.dumps(e.details, indent=2, ensure_ascii=False, default=str))
        sys.exit(1)

    print_result(result, args.format)
    save_result(result, args.output_file)


if __name__ == "__main__":
    asyncio.run(main())
