from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .services.batch_service import BatchService
from .services.csv_service import CsvServiceError, write_results
from .services.keyword_service import KeywordService, RateLimitedKeywordClient
from .services.llm_service import LLMService
from config import (
    DEFAULT_MODEL,
    KEYWORD_CALL_DELAY,
    LLM_PROVIDER,
    LOG_LEVEL,
    OPENAI_KEYWORD_MODEL,
    SOLD_OUT_CAP,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    default_model = OPENAI_KEYWORD_MODEL if LLM_PROVIDER == "openai" else DEFAULT_MODEL
    parser = argparse.ArgumentParser(
        description=(
            "Match a sheet of shopper profiles to a catalog sheet, capping each item at "
            f"{SOLD_OUT_CAP} recommendations per batch."
        )
    )
    parser.add_argument("--profiles", type=Path, required=True, help="Path to the user data CSV")
    parser.add_argument("--catalog", type=Path, required=True, help="Path to the catalog CSV")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("recommendations.csv"),
        help="Where to write the results CSV (default: recommendations.csv)",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=KEYWORD_CALL_DELAY,
        help=f"Seconds between keyword extraction calls (default: {KEYWORD_CALL_DELAY})",
    )
    parser.add_argument(
        "--model",
        default=None,
        help=f"{LLM_PROVIDER} model for keyword extraction (default: {default_model})",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    keyword_client = None
    if args.model:
        keyword_client = RateLimitedKeywordClient(
            KeywordService(LLMService.for_model(args.model)), args.delay
        )
    service = BatchService(keyword_client, call_delay=args.delay)

    def show_progress(current: int, total: int, profile) -> None:
        print(f"[{current}/{total}] {profile.first_name or '-'} ({profile.email})", flush=True)

    try:
        report = service.run_files(args.profiles, args.catalog, progress=show_progress)
    except CsvServiceError as e:
        raise SystemExit(f"Could not read input sheets: {e}")

    write_results(report.results, args.output)

    summary = report.summary
    for warning in report.warnings:
        print(f"⚠️  {warning}")
    print("✅ Completed!")
    print(f"   Profiles processed: {summary.total_profiles}")
    print(f"   Unique Brands Used: {summary.unique_brands_used}")
    print(f"   Items Marked 'Sold Out' (Max {SOLD_OUT_CAP} uses): {summary.sold_out_items}")
    if summary.degraded_profiles:
        print(f"   Degraded profiles: {summary.degraded_profiles}")
    print(f"📄 Results written to {args.output}")


if __name__ == "__main__":
    main()
