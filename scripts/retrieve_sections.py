from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from statute_index.config import load_config_from_env
from statute_index.services.statute_search_service import StatuteSearchService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show the statute sections most relevant to a question.")
    parser.add_argument("--entity", required=True, help="Entity id, e.g. a municipality id.")
    parser.add_argument("--category", required=True, help="Category id, e.g. a regulatory domain.")
    parser.add_argument("--question", required=True, help="Natural-language question.")
    parser.add_argument("--top-k", type=int, default=None, help="Number of sections to return.")
    parser.add_argument(
        "--min-score",
        type=float,
        default=None,
        help="Drop sections whose similarity is below this score.",
    )
    parser.add_argument(
        "--excerpt-chars",
        type=int,
        default=300,
        help="Characters of each section to print.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config_from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    service = StatuteSearchService.from_config(config)
    sections = service.search_relevant_sections(
        args.entity,
        args.category,
        args.question,
        top_k=args.top_k,
        min_score=args.min_score,
    )

    if not sections:
        print(f"No indexed content found for {args.entity}/{args.category}.")
        return 0

    for rank, section in enumerate(sections, start=1):
        label = f" §{section.section_label}" if section.section_label else ""
        excerpt = section.content.replace("\n", " ")
        if len(excerpt) > args.excerpt_chars:
            excerpt = excerpt[: args.excerpt_chars] + "..."
        print(f"{rank}. [chunk {section.chunk_index}{label}] score={section.score:.4f}")
        print(f"   {excerpt}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
