from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from statute_index.config import load_config_from_env
from statute_index.data.ingestion.loaders import load_statute_text
from statute_index.errors import InputRejected
from statute_index.services.statute_search_service import StatuteSearchService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Index statute text into the vector index.")
    parser.add_argument("--entity", required=True, help="Entity id, e.g. a municipality id.")
    parser.add_argument("--category", required=True, help="Category id, e.g. a regulatory domain.")
    parser.add_argument(
        "files",
        nargs="*",
        help="Statute files (.txt, .htm, .html, .pdf). Their texts are joined into one document.",
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete the indexed chunks for the entity/category instead of indexing.",
    )
    parser.add_argument("--stats", action="store_true", help="Print index statistics when done.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config_from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    service = StatuteSearchService.from_config(config)

    if args.delete:
        report = service.delete_statute(args.entity, args.category)
        print(f"Deleted {report.deleted}/{report.listed} chunks for {args.entity}/{args.category}.")
        if report.failed_keys:
            print(f"Could not delete: {', '.join(report.failed_keys)}")
    elif args.files:
        text = "\n\n".join(load_statute_text(path) for path in args.files)
        try:
            result = service.index_statute(args.entity, args.category, text)
        except InputRejected as exc:
            print(f"Skipped: {exc}")
            return 1
        print(f"Indexed {result.upserted} chunks for {args.entity}/{args.category}.")
    elif not args.stats:
        print("Nothing to do: pass statute files, --delete or --stats.")
        return 2

    if args.stats:
        print(f"Index stats: {service.get_index_stats()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
