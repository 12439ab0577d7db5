#!/usr/bin/env python3
"""
Generate a single review from the command line, without the HTTP layer.

    python -m backend.reviewgen.review_cli --good "料理がおいしい" --neutral-none --bad-none

Usage is logged the same way the API does it (webhook when configured).
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .errors import ReviewServiceError
from .generator import ReviewGenerator
from .languages import SUPPORTED_LANGUAGES
from .logging_config import configure_structlog
from .models import AgeBand, Gender, PersonaAttributes, VisitFrequency
from .prompts import compose
from .selection import SubmittedSelection
from .style import select_style


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a store review from tags")
    parser.add_argument("--good", action="append", default=[], help="Good tag (repeatable)")
    parser.add_argument("--neutral", action="append", default=[], help="Neutral tag (repeatable)")
    parser.add_argument("--bad", action="append", default=[], help="Bad tag (repeatable)")
    parser.add_argument("--good-none", action="store_true", help="Nothing was good")
    parser.add_argument("--neutral-none", action="store_true", help="Nothing was neutral")
    parser.add_argument("--bad-none", action="store_true", help="Nothing was bad")
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, default=None)
    parser.add_argument("--category", default=None, help="Store category, e.g. ラーメン")
    parser.add_argument("--store", default="cli", help="Label written to the usage record")
    parser.add_argument("--gender", choices=[g.value for g in Gender], default=None)
    parser.add_argument("--age", choices=[a.value for a in AgeBand], default=None)
    parser.add_argument(
        "--visit-frequency", choices=[v.value for v in VisitFrequency], default=None
    )
    parser.add_argument(
        "--show-prompt", action="store_true", help="Print the composed prompt and exit"
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of plain text")
    return parser


def _selection(args: argparse.Namespace) -> SubmittedSelection:
    return SubmittedSelection(
        good=tuple(args.good),
        neutral=tuple(args.neutral),
        bad=tuple(args.bad),
        good_is_none=args.good_none,
        neutral_is_none=args.neutral_none,
        bad_is_none=args.bad_none,
    )


async def run(args: argparse.Namespace) -> int:
    selection = _selection(args)
    persona = PersonaAttributes.from_raw(args.gender, args.age, args.visit_frequency)

    if args.show_prompt:
        prompt = compose(args.language, select_style(), args.category, selection.effective(), persona)
        print(prompt.system_instructions)
        print("---")
        print(prompt.user_content)
        return 0

    generator = ReviewGenerator()
    result = await generator.generate(selection, persona, args.language, args.category, args.store)
    if args.json:
        payload = {
            "review": result.text,
            "tone": result.style.value,
            "language": result.language,
            "tokenCount": result.token_estimate,
            "cost": str(result.cost_estimate),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(result.text)
        print(
            f"\n[{result.style.value} / {result.language} / "
            f"{result.token_estimate} tokens / ${result.cost_estimate}]"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_structlog(json_logs=False)
    try:
        return asyncio.run(run(args))
    except ReviewServiceError as exc:
        print(f"error: {exc.public_message} ({exc})", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
