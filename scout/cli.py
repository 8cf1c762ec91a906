#!/usr/bin/env python3
"""
Scout command line.

    scout search "lightweight laptop for students" --max-price 5000
    scout research "Compare gaming laptops under RM6000" --json

Exit codes: 0 ok, 1 unexpected error, 2 invalid argument, 3 embedding
service unavailable.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from .common.config import load_config
from .common.errors import EmbeddingUnavailable, InvalidArgument, ScoutError
from .retriever.filters import build_filter
from .retriever.pipeline import build_pipeline

logger = logging.getLogger("scout.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGUMENT = 2
EXIT_EMBEDDING_UNAVAILABLE = 3


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--category", help="Only items in this category")
    parser.add_argument("--tier", help="Only items in this tier")
    parser.add_argument("--min-price", type=float, help="Minimum price (inclusive)")
    parser.add_argument("--max-price", type=float, help="Maximum price (inclusive)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scout", description="Catalog search and deep research")
    parser.add_argument("--catalog", help="Path to the catalog JSON file (overrides config)")
    parser.add_argument(
        "--log-level",
        default=os.getenv("SCOUT_LOG_LEVEL", "WARNING"),
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Single-pass similarity search")
    search.add_argument("query", help="Natural language query")
    _add_filter_args(search)
    search.add_argument("--top-k", type=int, help="Maximum number of results")
    search.add_argument("--min-similarity", type=float, help="Similarity threshold")
    search.add_argument("--answer", action="store_true", help="Also generate a grounded recommendation")
    search.add_argument("--json", action="store_true", help="Print raw JSON")

    research = sub.add_parser("research", help="Multi-step deep research")
    research.add_argument("query", help="Complex question to research")
    _add_filter_args(research)
    research.add_argument("--max-sub-questions", type=int, help="Upper bound on sub-questions")
    research.add_argument("--json", action="store_true", help="Print raw JSON")

    return parser


def _print_search(payload: dict) -> None:
    results = payload["results"]
    if not results:
        print("No matching items.")
    for r in results:
        print(f"{r['rank']:>2}. {r['summary']}  ({r['similarity'] * 100:.1f}%)")
    if payload.get("response"):
        print()
        print(payload["response"])


def _print_research(payload: dict) -> None:
    decomposition = payload["decomposition"]
    print("Sub-questions:")
    for i, q in enumerate(decomposition["subQuestions"], 1):
        print(f"  {i}. {q}")
    print()
    for finding in payload["findings"]:
        marker = " (failed)" if finding["failed"] else ""
        print(f"Q{finding['index'] + 1}: {finding['question']}{marker}")
        print(f"    {finding['answer']}")
    print()
    synthesis = payload["synthesis"]
    print(synthesis["answer"])
    print()
    meta = payload["metadata"]
    print(
        f"[confidence {meta['confidence']}/10, {meta['distinctItemsCited']} items cited, "
        f"{meta['durationMs']} ms]"
    )


async def _run(args: argparse.Namespace) -> dict:
    config = load_config()
    if args.catalog:
        config.catalog.path = args.catalog
    pipeline = build_pipeline(config)
    await pipeline.warm_up()

    retrieval_filter = build_filter(args.category, args.tier, args.min_price, args.max_price)

    if args.command == "search":
        if args.answer:
            grounded = await pipeline.answer(
                args.query, retrieval_filter, top_k=args.top_k, min_similarity=args.min_similarity
            )
            return grounded.to_dict()
        results = await pipeline.retrieve(
            args.query, retrieval_filter, top_k=args.top_k, min_similarity=args.min_similarity
        )
        return {
            "query": args.query,
            "results": [r.to_dict() for r in results],
            "totalMatches": len(results),
        }

    result = await pipeline.research(args.query, retrieval_filter, max_sub_questions=args.max_sub_questions)
    return result.to_dict()


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        payload = asyncio.run(_run(args))
    except InvalidArgument as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENT
    except EmbeddingUnavailable as e:
        print(f"error: embedding service unavailable: {e}", file=sys.stderr)
        return EXIT_EMBEDDING_UNAVAILABLE
    except ScoutError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
    elif args.command == "search":
        _print_search(payload)
    else:
        _print_research(payload)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
