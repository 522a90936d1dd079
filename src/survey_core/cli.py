"""Offline schema checker: ``survey-schema check FILE [FILE ...]``.

Loads each YAML or JSON schema file, runs parsing and normalization (and,
with ``--previous``, the update-time category check against an older
revision), then prints the normalized schema or the path-qualified error.

Usage::

    # Check and print the normalized form
    survey-schema check surveys/feedback.yaml

    # Check an edit against the revision currently in production
    survey-schema check feedback-v2.yaml --previous feedback-v1.yaml

Exits 1 if any file fails.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape

from survey_core.errors import SchemaInvalid
from survey_core.models.schema import SurveySchema
from survey_core.normalizer import (
    check_category_compatibility,
    normalize_and_verify,
    parse_schema,
    schema_to_dict,
)

logger = logging.getLogger(__name__)


def load_document(path: Path | str) -> Any:
    """Load a YAML or JSON schema file (JSON is parsed as YAML)."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing schema file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def check_file(path: Path, previous: SurveySchema | None = None) -> SurveySchema:
    """Parse and normalize one schema file.

    Raises:
        SchemaInvalid: the schema is defective or changes a question's
            category relative to ``previous``.
    """
    document = load_document(path)
    if not isinstance(document, dict):
        raise SchemaInvalid("", "schema document must be a mapping")
    schema = normalize_and_verify(parse_schema(document))
    if previous is not None:
        check_category_compatibility(previous, schema)
    return schema


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="survey-schema",
        description="Validate survey schema files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Parse, normalize and print schema files")
    check.add_argument("files", nargs="+", type=Path, help="YAML or JSON schema files")
    check.add_argument(
        "--previous",
        type=Path, default=None,
        help="Earlier revision to check category compatibility against",
    )
    check.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only report failures; do not print normalized schemas",
    )
    check.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    console = Console()
    errors = Console(stderr=True, soft_wrap=True)

    previous: SurveySchema | None = None
    if args.previous is not None:
        try:
            previous = check_file(args.previous)
        except (OSError, yaml.YAMLError, SchemaInvalid) as exc:
            errors.print(
                f"[red]{escape(str(args.previous))}[/]: previous revision is invalid: "
                f"{escape(str(exc))}"
            )
            return 1

    failed = 0
    for path in args.files:
        try:
            schema = check_file(path, previous)
        except (OSError, yaml.YAMLError, SchemaInvalid) as exc:
            failed += 1
            logger.debug("Check failed for %s", path, exc_info=True)
            errors.print(f"[red]{escape(str(path))}[/]: {escape(str(exc))}")
            continue
        if args.quiet:
            continue
        console.print(f"[green]{escape(str(path))}[/]: ok")
        console.print_json(json.dumps(schema_to_dict(schema), ensure_ascii=False))

    return 1 if failed else 0


def cli() -> None:
    """Console-script entry point: ``survey-schema``."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
