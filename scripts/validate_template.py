"""Standalone quality template validation script.

Loads a template from JSON and prints a validation report.

Usage:
    python -m scripts.validate_template path/to/template.json
    python -m scripts.validate_template --tolerance 0.05 path/to/template.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.config.logging_setup import configure_logging
from src.config.settings import get_settings
from src.models.common import TemplateValidationResult
from src.templates.config import TemplateValidationConfig
from src.templates.validator import validate_template_payload


def _print_header(path: Path, payload: dict) -> None:
    w = 60
    name = payload.get("name")
    if isinstance(name, dict):
        name = name.get("en")
    print("=" * w)
    print("  Quality Template Validation")
    print(f"  {path}")
    print("=" * w)
    print(f"  Name:    {name or '?'}")
    print(f"  Origin:  {payload.get('origin') or '?'}")
    print(f"  Version: {payload.get('version', 1)}")


def _print_result(result: TemplateValidationResult) -> None:
    if result.warnings:
        print()
        print(f"  Warnings ({len(result.warnings)}):")
        for w in result.warnings:
            print(f"    - {w}")

    if result.errors:
        print()
        print(f"  ERRORS ({len(result.errors)}):")
        for e in result.errors:
            print(f"    ! {e}")


def main(argv: list[str] | None = None) -> int:
    """Validate a template file; returns the process exit code."""
    parser = argparse.ArgumentParser(
        description="Validate a quality template JSON file",
    )
    parser.add_argument("template_path", type=Path, help="Path to template JSON")
    parser.add_argument(
        "--tolerance", type=float, default=None,
        help="Score matching tolerance (defaults to SCORE_TOLERANCE)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    log = configure_logging(settings)

    try:
        payload = json.loads(args.template_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.error("template_load_failed", path=str(args.template_path), error=str(exc))
        print(f"  Cannot read {args.template_path}: {exc}")
        return 2
    if not isinstance(payload, dict):
        print("  Template JSON must be an object")
        return 2

    config = TemplateValidationConfig(
        score_tolerance=args.tolerance or settings.SCORE_TOLERANCE,
    )
    result = validate_template_payload(payload, config)
    log.info(
        "template_validated",
        path=str(args.template_path),
        valid=result.valid,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )

    _print_header(args.template_path, payload)
    _print_result(result)

    print()
    print("=" * 60)
    if result.valid:
        print("  RESULT: PASS")
        print("=" * 60)
        return 0
    print(f"  RESULT: FAIL ({len(result.errors)} errors)")
    print("=" * 60)
    return 1


if __name__ == "__main__":
    sys.exit(main())
