"""
Command-line interface for progressive schema inference.

Usage:
    python -m progressive_schema.cli.schema_cli infer --input <file> [options]
    python -m progressive_schema.cli.schema_cli diff --previous <schema.json> --current <schema.json>
"""

import argparse
import json
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from progressive_schema.core.config import (
    BuilderConfig,
    BuilderConfigLoader,
    ConfigurationError,
    config_from_env,
)
from progressive_schema.core.schema import (
    ProgressiveSchemaBuilder,
    SchemaStateError,
    compare_schemas,
    detect_transforms,
    generate_change_summary,
)
from progressive_schema.cli.readers import iter_batches, read_records
from progressive_schema.observability.logger import get_logger

logger = get_logger(__name__)


def _load_json(file_path: str):
    with open(file_path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(file_path: str, data) -> None:
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str)
        f.write("\n")


def _load_config(args) -> BuilderConfig:
    if args.config:
        config = BuilderConfigLoader(args.config).load()
    else:
        config = config_from_env()
    if args.genson:
        config = config.model_copy(update={"use_inference_engine": True})
    return config


def infer_command(args) -> int:
    """
    Infer a schema from one or more input files.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    try:
        config = _load_config(args)
        initial_state = _load_json(args.state) if args.state else None
        builder = ProgressiveSchemaBuilder(initial_state=initial_state, config=config)
    except (
        FileNotFoundError,
        ConfigurationError,
        SchemaStateError,
        ValidationError,
        ValueError,
        yaml.YAMLError,
    ) as e:
        logger.error(f"Cannot initialize schema builder: {e}")
        return 2

    try:
        for input_path in args.input:
            logger.info(f"Reading records from: {input_path}")
            for batch in iter_batches(read_records(input_path, args.format), args.batch_size):
                result = builder.process_batch(batch)
                if result.schema_changed:
                    logger.info(
                        f"Schema changed (version {builder.state.version}): "
                        f"{len(result.changes)} change(s)"
                    )
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error reading input: {e}")
        return 2

    schema = builder.get_schema()
    summary = builder.get_summary()

    if args.output:
        _write_json(args.output, schema)
        logger.info(f"Schema written to: {args.output}")
    else:
        print(json.dumps(schema, indent=2, default=str))

    if args.save_state:
        _write_json(args.save_state, builder.get_state().model_dump(mode="json"))
        logger.info(f"State written to: {args.save_state}")

    print(json.dumps(summary, indent=2, default=str), file=sys.stderr)
    return 0


def diff_command(args) -> int:
    """
    Compare two schema documents and suggest renames.

    Returns:
        1 when the diff is breaking, 0 otherwise, 2 on input errors
    """
    try:
        previous = _load_json(args.previous)
        current = _load_json(args.current)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read schema documents: {e}")
        return 2

    comparison = compare_schemas(previous, current)
    print(generate_change_summary(comparison))

    suggestions = [
        suggestion
        for suggestion in detect_transforms(previous, current, comparison.changes)
        if suggestion.confidence >= args.min_confidence
    ]
    if suggestions:
        print("")
        print("Suggested Renames:")
        for suggestion in suggestions:
            print(
                f"  - {suggestion.from_path} -> {suggestion.to_path} "
                f"({suggestion.confidence}%): {suggestion.reason}"
            )

    return 1 if comparison.is_breaking else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Progressive schema inference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Infer a schema from a JSON Lines file in batches of 500
  python -m progressive_schema.cli.schema_cli infer --input data/events.jsonl --batch-size 500

  # Resume from a saved state and keep it up to date
  python -m progressive_schema.cli.schema_cli infer --input data/new.csv \\
      --state state.json --save-state state.json --output schema.json

  # Compare two schema generations
  python -m progressive_schema.cli.schema_cli diff --previous v1.json --current v2.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Infer command
    infer_parser = subparsers.add_parser("infer", help="Infer a schema from data files")
    infer_parser.add_argument(
        "--input",
        required=True,
        action="append",
        help="Input file (JSON array, JSON Lines or CSV); repeat for several files"
    )
    infer_parser.add_argument(
        "--format",
        choices=["json", "jsonl", "csv"],
        help="Input format (default: detected from file suffix)"
    )
    infer_parser.add_argument(
        "--batch-size",
        type=int,
        default=1000,
        help="Records per batch (default: 1000)"
    )
    infer_parser.add_argument("--state", help="Resume from a saved state JSON file")
    infer_parser.add_argument("--save-state", help="Write the updated state to this JSON file")
    infer_parser.add_argument("--output", help="Write the schema to this file instead of stdout")
    infer_parser.add_argument("--config", help="YAML file with a schema_builder section")
    infer_parser.add_argument(
        "--genson",
        action="store_true",
        help="Infer structure with genson instead of field statistics"
    )

    # Diff command
    diff_parser = subparsers.add_parser("diff", help="Compare two schema documents")
    diff_parser.add_argument("--previous", required=True, help="Earlier schema JSON file")
    diff_parser.add_argument("--current", required=True, help="Newer schema JSON file")
    diff_parser.add_argument(
        "--min-confidence",
        type=int,
        default=70,
        help="Only show rename suggestions at or above this confidence (default: 70)"
    )

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "infer":
        if args.batch_size <= 0:
            parser.error("--batch-size must be positive")
        return infer_command(args)
    return diff_command(args)


if __name__ == "__main__":
    sys.exit(main())
