"""
CLI entry point for the parts quotation pipeline.

Usage:
    python -m harbor.parts_quote --input order.pdf
    python -m harbor.parts_quote --input parts.xlsx --catalog catalog.xlsx --output-csv quote.csv
    python -m harbor.parts_quote --input customer.xlsx --mode customer --db quotes.db --output-xlsx quote.xlsx
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .errors import EmptyExtraction, ExtractionFailed, NoValidData
from .imports import IMPORT_MODES, import_catalog_file, import_file
from .models import PRICE_FIELDS
from .report import export_csv, export_xlsx, format_console
from .session import QuoteSession
from .store import InMemoryBlobStore, SqliteBlobStore


def main():
    parser = argparse.ArgumentParser(
        prog="parts_quote",
        description="Parts Quotation - Match a customer parts list against the catalog",
    )

    parser.add_argument(
        "--input",
        required=True,
        metavar="FILE",
        help="Parts list to import (XLSX/CSV, PDF or DOCX)",
    )

    parser.add_argument(
        "--catalog",
        metavar="FILE",
        help="Catalog spreadsheet merged into the catalog before matching",
    )

    parser.add_argument(
        "--db",
        metavar="FILE",
        help="SQLite file the catalog is stored in (default: in memory, sample data)",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Config file (default: module's quote_config.json)",
    )

    parser.add_argument(
        "--mode",
        choices=IMPORT_MODES,
        default="auto",
        help="How to read the input (default: auto)",
    )

    parser.add_argument(
        "--degraded",
        action="store_true",
        help="Use placeholder parts if the input cannot be parsed",
    )

    parser.add_argument(
        "--price-option",
        choices=PRICE_FIELDS,
        default=None,
        help="Catalog price used for totals (default from config)",
    )

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Candidates matched per progress step",
    )

    parser.add_argument(
        "--output-csv",
        metavar="FILE",
        help="Output CSV file path",
    )

    parser.add_argument(
        "--output-xlsx",
        metavar="FILE",
        help="Output XLSX file path",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress console output (only write exports)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log pipeline progress",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    if args.catalog and not Path(args.catalog).exists():
        print(f"Error: Catalog file not found: {args.catalog}", file=sys.stderr)
        sys.exit(1)

    if args.chunk_size is not None and args.chunk_size < 1:
        print("Error: --chunk-size must be positive", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
        if args.chunk_size:
            config.reconcile.chunk_size = args.chunk_size

        store = SqliteBlobStore(args.db) if args.db else InMemoryBlobStore()
        session = QuoteSession(store=store, config=config)
        session.load_catalog()
        if args.price_option:
            session.set_price_option(args.price_option)

        if args.catalog:
            added = import_catalog_file(session, args.catalog)
            if not args.quiet:
                print(f"Imported {added} new catalog part(s) from {args.catalog}")

        if not args.quiet:
            print(f"Matching {input_path.name} against {len(session.catalog)} catalog part(s)...")

        def show_progress(progress):
            if not args.quiet:
                print(f"  {progress.processed}/{progress.total} ({progress.percent}%)")

        result = import_file(
            session,
            input_path,
            mode=args.mode,
            degraded=args.degraded or None,
            on_progress=show_progress,
        )

        for skipped in result.skipped:
            print(f"Warning: {skipped}", file=sys.stderr)
        if result.colliding_ids:
            print(f"Warning: duplicate entry ids: {', '.join(result.colliding_ids)}", file=sys.stderr)

        if not args.quiet:
            print(
                f"Imported {len(result.entries)} line(s): "
                f"{result.matched_count} matched, {result.new_count} new"
            )
            print(format_console(
                session.selection,
                session.price_option,
                stats=session.statistics(),
                customer=session.customer,
            ))

        if args.output_csv:
            output_path = Path(args.output_csv)
            with open(output_path, "w", newline="", encoding="utf-8-sig") as f:
                export_csv(session.selection, session.price_option, session.customer, output=f)
            if not args.quiet:
                print(f"\nCSV exported to: {output_path}")

        if args.output_xlsx:
            output_path = Path(args.output_xlsx)
            output_path.write_bytes(export_xlsx(session.selection, session.price_option, session.customer))
            if not args.quiet:
                print(f"XLSX exported to: {output_path}")

    except (EmptyExtraction, NoValidData, ExtractionFailed) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
