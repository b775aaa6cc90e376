"""
Tool: Dayline CLI
Purpose: Run synthesis steps over a JSON request and print JSON results

Usage:
    # Location blocks for one day
    dayline --action blocks --input day.json

    # Blocks plus the unified timeline
    dayline --action timeline --input day.json --now 2026-03-02T14:30:00+00:00

    # Several days in parallel ({"days": [...]})
    dayline --action synthesize --input week.json --workers 4

    # Pattern insights ({"today": {...}, "history": [{...}, ...]})
    cat insights.json | dayline --action insights --input -

    # Infer home/work/frequent places ({"rows": [...]})
    dayline --action infer-places --input history.json

Output:
    {"success": true, "data": {...}} on stdout, or
    {"success": false, "error": "..."} with exit status 1
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from dayline.config_models import load_config
from dayline.errors import MalformedInputError
from dayline.logging_config import setup_logging
from dayline.models import parse_datetime
from dayline.patterns.analyzer import analyze_patterns
from dayline.places.inference import LocationHistoryRow, infer_places_from_history
from dayline.presentation import block_display, event_display
from dayline.synthesis import (
    DEFAULT_MAX_WORKERS,
    DayRequest,
    DaySynthesis,
    synthesize_day,
    synthesize_days,
)


ACTIONS = ["blocks", "timeline", "synthesize", "insights", "infer-places"]


def _read_input(path: str) -> dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def _day_request(data: dict[str, Any], now_override) -> DayRequest:
    request = DayRequest.from_dict(data)
    if now_override is not None:
        request.now = now_override
    return request


def _event_output(event) -> dict:
    return {**event.to_dict(), "display": event_display(event)}


def _block_output(block) -> dict:
    data = {**block.to_dict(), "display": block_display(block)}
    if block.timeline_events is not None:
        data["timeline_events"] = [_event_output(e) for e in block.timeline_events]
    return data


def _day_output(result: DaySynthesis) -> dict:
    data = result.to_dict()
    data["blocks"] = [_block_output(b) for b in result.blocks]
    data["events"] = [_event_output(e) for e in result.events]
    return data


def run_action(action: str, payload: dict[str, Any], now=None, workers: int = DEFAULT_MAX_WORKERS) -> dict:
    config = load_config()

    if action == "blocks":
        result = synthesize_day(_day_request(payload, now), config)
        return {"success": True, "data": {"blocks": [_block_output(b) for b in result.blocks]}}

    if action == "timeline":
        result = synthesize_day(_day_request(payload, now), config)
        return {"success": True, "data": _day_output(result)}

    if action == "synthesize":
        days = payload.get("days")
        if days is None:
            days = [payload]
        requests = [_day_request(d, now) for d in days]
        results = synthesize_days(requests, max_workers=workers, config=config)
        return {"success": True, "data": {"days": [_day_output(r) for r in results]}}

    if action == "insights":
        if "today" not in payload:
            return {"success": False, "error": "insights input needs a 'today' day request"}
        today = _day_request(payload["today"], now)
        history = [_day_request(d, None) for d in payload.get("history") or []]
        results = synthesize_days([today] + history, max_workers=workers, config=config)
        insight = analyze_patterns(
            results[0].to_timeline(),
            [r.to_timeline() for r in results[1:]],
            today.now,
            config=config,
        )
        return {"success": True, "data": insight.to_dict()}

    if action == "infer-places":
        rows = [LocationHistoryRow.from_dict(r) for r in payload.get("rows") or []]
        return {"success": True, "data": infer_places_from_history(rows).to_dict()}

    return {"success": False, "error": f"Unknown action: {action}"}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Dayline - Timeline & location-block synthesis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    dayline --action blocks --input day.json
    dayline --action timeline --input day.json --now 2026-03-02T14:30:00+00:00
    dayline --action insights --input - < insights.json
        """,
    )
    parser.add_argument("--action", required=True, choices=ACTIONS, help="Action to perform")
    parser.add_argument("--input", required=True, help="JSON request file ('-' for stdin)")
    parser.add_argument("--now", help="Evaluation time (ISO-8601) for past/future decisions")
    parser.add_argument(
        "--workers", type=int, default=DEFAULT_MAX_WORKERS, help="Parallel days for batch actions"
    )
    parser.add_argument("--log-level", help="Log level (default: DAYLINE_LOG_LEVEL or INFO)")

    args = parser.parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        payload = _read_input(args.input)
        now = parse_datetime(args.now) if args.now else None
        result = run_action(args.action, payload, now=now, workers=args.workers)
    except MalformedInputError as e:
        result = {"success": False, "error": str(e), "details": e.to_dict()}
    except (OSError, ValueError, KeyError, TypeError) as e:
        result = {"success": False, "error": str(e)}

    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
