from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .core.config import FALLBACK_POLICIES, TOLERANT, EngineConfig
from .core.errors import RakeCurveError
from .report.schemas import ReportRequest
from .report.service import build_report_from_request


def _add_report_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("input", type=Path, help="JSON file with 'hands' and 'sessions' arrays")
    p.add_argument("--rake-pct", type=float, default=None, help="Rake as a fraction of the estimated pot")
    p.add_argument("--rake-cap-bb", type=float, default=None, help="Rake cap in big blinds")
    p.add_argument(
        "--tolerant",
        action="store_true",
        help="Assign unmatchable hands through --fallback instead of failing",
    )
    p.add_argument(
        "--fallback",
        choices=sorted(FALLBACK_POLICIES),
        default=None,
        help="Fallback policy for tolerant matching",
    )
    p.add_argument("--indent", type=int, default=2, help="JSON indentation (0 for compact output)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log matching diagnostics to stderr")


def _config(args: argparse.Namespace) -> EngineConfig:
    # Environment supplies defaults; explicit flags win. Validated once, after merging.
    values: dict[str, object] = dict(EngineConfig.env_values())
    if args.rake_pct is not None:
        values["rake_percentage"] = args.rake_pct
    if args.rake_cap_bb is not None:
        values["rake_cap_bb"] = args.rake_cap_bb
    if args.tolerant:
        values["matching_mode"] = TOLERANT
    if args.fallback:
        values["fallback_policy"] = args.fallback
    return EngineConfig(**values).validate()  # type: ignore[arg-type]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="rakecurve", description="Rake-adjusted results per session stake")
    _add_report_args(parser)
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        payload = json.loads(args.input.read_text(encoding="utf-8"))
        request = ReportRequest.model_validate(payload)
        report = build_report_from_request(request, _config(args))
    except (OSError, json.JSONDecodeError, ValidationError, RakeCurveError) as exc:
        print(f"rakecurve: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(report.to_dict(), indent=args.indent or None))
    return 0


if __name__ == "__main__":
    sys.exit(main())
