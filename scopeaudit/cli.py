"""
Run the deviation engine over a JSON input file and print the analysis.

Input document:
  {
    "estimate": {"estimateId": "...", "lineItems": [...], "parseConfidence": 0.95},
    "report":   {"directives": [...], "confidence": 0.9},      (optional)
    "rooms":    [{"name": "Kitchen", "length": 12, "width": 10, "height": 8}, ...]
  }

Usage:
  scopeaudit --input claim.json --out analysis.json
  scopeaudit --input claim.json --log-level DEBUG --json-logs

Exit codes: 0 success, 1 validation error (error JSON on stdout),
2 unreadable or malformed input.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from scopeaudit.config.errors import ErrorCode, ScopeAuditError
from scopeaudit.config.settings import settings
from scopeaudit.models.directive import ParsedReport
from scopeaudit.models.estimate import Estimate
from scopeaudit.models.room import Room
from scopeaudit.services.deviation_engine import analyze_deviations
from scopeaudit.utils.analysis_logger import configure_logging


def _load_input(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _parse_document(document: Dict[str, Any]):
    """Build engine inputs from the raw document.

    Raises:
        ScopeAuditError: MISSING_FIELD when `estimate` is absent.
        pydantic.ValidationError: for schema violations.
    """
    if "estimate" not in document:
        raise ScopeAuditError(
            code=ErrorCode.MISSING_FIELD,
            message="Input document has no 'estimate' section",
            details={"field": "estimate"},
        )
    estimate = Estimate.model_validate(document["estimate"])
    report: Optional[ParsedReport] = None
    if document.get("report") is not None:
        report = ParsedReport.model_validate(document["report"])
    rooms: List[Room] = [Room.model_validate(room) for room in document.get("rooms") or []]
    return estimate, report, rooms


def _write(payload: Dict[str, Any], out_path: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        print(f"Wrote {out_path}")
    else:
        print(text)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compare an estimate against report directives and room dimensions")
    parser.add_argument("--input", required=True, help="Input JSON path ('-' for stdin)")
    parser.add_argument("--out", required=False, help="Output file path (defaults to stdout)")
    parser.add_argument("--log-level", required=False, help="Logging level (defaults to LOG_LEVEL or INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    args = parser.parse_args(argv)

    configure_logging(args.log_level or settings.log_level, json_output=args.json_logs)

    try:
        document = _load_input(args.input)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read input {args.input}: {e}", file=sys.stderr)
        return 2

    try:
        estimate, report, rooms = _parse_document(document)
    except PydanticValidationError as e:
        error = ScopeAuditError(
            code=ErrorCode.INVALID_SCHEMA,
            message="Input document failed schema validation",
            details={"errors": json.loads(e.json())},
        )
        _write({"error": error.to_dict()}, None)
        return 2
    except ScopeAuditError as e:
        _write({"error": e.to_dict()}, None)
        return 2

    try:
        analysis = analyze_deviations(estimate, report=report, rooms=rooms)
    except ScopeAuditError as e:
        _write({"error": e.to_dict()}, None)
        return 1

    _write(analysis.to_dict(), args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
