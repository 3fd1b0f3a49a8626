"""
main.py — Pipeline orchestration and CLI for tender_pricing.

Four stages, each logged with its timing:

  1. ingest     tender document -> LineItem list
  2. validate   warnings for incomplete rows (never fatal)
  3. match      progressive catalog search for every item
  4. summarize  match statistics + priced bid rows

The pipeline is a class so the API server can keep one search engine
(one catalog session, one warm cache) alive across uploads, while the
CLI just builds a fresh one per run.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from tender_pricing.catalog import CatalogClient, HttpCatalogClient, LocalCatalogClient
from tender_pricing.config import config
from tender_pricing.ingestion import ingest_line_items, validate_line_items
from tender_pricing.matching import (
    BatchMatcher,
    ProgressCallback,
    summarize,
    to_bid_rows,
)
from tender_pricing.search import ProgressiveSearchEngine

logger = logging.getLogger("tender_pricing")


class PricingPipeline:
    """
    End-to-end pricing pipeline.

    Usage:
        pipeline = PricingPipeline(LocalCatalogClient.from_json("catalog.json"))
        result = pipeline.run("teklif_cetveli.docx")
        print(result["summary"])
    """

    def __init__(
        self,
        client: CatalogClient,
        engine: Optional[ProgressiveSearchEngine] = None,
        matcher: Optional[BatchMatcher] = None,
    ):
        if matcher is not None:
            self.matcher = matcher
            self.engine = matcher.engine
        else:
            self.engine = engine or ProgressiveSearchEngine(client)
            self.matcher = BatchMatcher(self.engine)

    def run(
        self,
        file_path: str,
        output_path: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Price one tender document.

        Returns {"source_file", "summary", "rows", "warnings"}. Optionally
        writes the same dict as indented JSON.
        """
        overall_start = time.time()
        path = Path(file_path)
        logger.info("=" * 60)
        logger.info("TenderPricing — Processing: %s", path.name)
        logger.info("=" * 60)

        # ── Stage 1: Ingestion ────────────────────────────────────
        t0 = time.time()
        logger.info("[1/4] Reading line items ...")
        items = ingest_line_items(file_path)
        logger.info("  ✓ %d line items in %.1fs", len(items), time.time() - t0)

        # ── Stage 2: Validation ───────────────────────────────────
        logger.info("[2/4] Validating rows ...")
        warnings = validate_line_items(items)
        logger.info("  ✓ %d warnings", len(warnings))

        # ── Stage 3: Matching ─────────────────────────────────────
        t0 = time.time()
        logger.info("[3/4] Searching catalog ...")
        results = self.matcher.match_all(
            items, on_progress=on_progress, cancel_event=cancel_event
        )
        logger.info("  ✓ %d results in %.1fs", len(results), time.time() - t0)

        # ── Stage 4: Summary ──────────────────────────────────────
        logger.info("[4/4] Building bid rows ...")
        summary = summarize(results)
        result = {
            "source_file": path.name,
            "summary": summary.model_dump(),
            "rows": to_bid_rows(results),
            "warnings": warnings,
        }

        logger.info("=" * 60)
        logger.info(
            "DONE in %.1fs | %d items | %d%% matched | total %.2f",
            time.time() - overall_start, summary.total,
            summary.success_rate, summary.total_amount,
        )
        logger.info("=" * 60)

        if output_path:
            os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(result, f, indent=2, ensure_ascii=False)
            logger.info("Output written to: %s", output_path)

        return result


def build_client(args: argparse.Namespace) -> CatalogClient:
    if args.catalog_file:
        return LocalCatalogClient.from_json(args.catalog_file)
    return HttpCatalogClient(
        base_url=args.base_url,
        session_cookie=args.session_cookie,
    )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tender_pricing",
        description="TenderPricing — Price a tender's unit-price schedule from the catalog",
    )
    parser.add_argument("file", help="Path to tender document (DOCX, PDF)")
    parser.add_argument("--output", "-o", default=None, help="JSON output path (default: stdout)")
    parser.add_argument(
        "--catalog-file", default=None,
        help="Offline catalog JSON export instead of the remote catalog",
    )
    parser.add_argument("--base-url", default=None, help="Catalog search URL")
    parser.add_argument(
        "--session-cookie", default=None,
        help="Cookie header of a logged-in catalog session (or CATALOG_SESSION_COOKIE)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        pipeline = PricingPipeline(build_client(args))
        result = pipeline.run(args.file, args.output)
        if args.output is None:
            print(json.dumps(result, indent=2, ensure_ascii=False))
    except FileNotFoundError as exc:
        logger.error("File not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid input: %s", exc)
        sys.exit(1)
    except RuntimeError as exc:
        logger.error("Runtime error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
