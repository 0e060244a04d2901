"""Command line entry point: ``retailcat <command>``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from retailcat.config import Settings
from retailcat.errors import RetailcatError
from retailcat.ingest import load_retailers
from retailcat.jobs.crawl import RunContext, run_all, upload_existing
from retailcat.logic.validate import CatalogValidator, catalog_files
from retailcat.utils.sftp import SFTPUploader

logger = logging.getLogger("retailcat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retailcat", description="Retailer catalog crawler")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    crawl = commands.add_parser("crawl", help="scrape retailers and write their catalogs")
    crawl.add_argument("slugs", nargs="*", help="retailer slugs from retailers.yml")
    crawl.add_argument("--all", action="store_true", help="crawl every configured retailer")
    crawl.add_argument("--limit", type=int, default=None, help="max records per category")
    crawl.add_argument("--persist", action="store_true", help="save products to DATABASE_URL")
    crawl.add_argument("--upload", action="store_true", help="upload catalog.jsonl.gz over SFTP")

    validate = commands.add_parser("validate", help="audit catalog.jsonl files")
    validate.add_argument("files", nargs="*")
    validate.add_argument("--all", action="store_true", help="audit every catalog under OUTPUT_DIR")

    upload = commands.add_parser("upload", help="upload catalogs already written")
    upload.add_argument("slugs", nargs="+")

    commands.add_parser("test-sftp", help="check the SFTP connection")
    commands.add_parser("list", help="list configured retailers")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _crawl(args: argparse.Namespace, settings: Settings) -> int:
    slugs = [retailer.slug for retailer in load_retailers()] if args.all else args.slugs
    if not slugs:
        logger.error("Name at least one retailer or pass --all")
        return 1
    ctx = RunContext.from_settings(settings, persist=args.persist, upload=args.upload)
    summaries = asyncio.run(run_all(ctx, slugs, limit=args.limit, persist=args.persist, upload=args.upload))
    failed = [summary.slug for summary in summaries if not summary.ok]
    if failed:
        logger.error("Failed retailers: %s", ", ".join(failed))
        return 1
    return 0


def _validate(args: argparse.Namespace, settings: Settings) -> int:
    files = catalog_files(settings.output_dir) if args.all else args.files
    if not files:
        logger.error("No catalog files to validate")
        return 1
    validator = CatalogValidator()
    for path in files:
        validator.validate_file(path)
    summary = validator.finalize()
    return 0 if summary.is_valid else 1


def _upload(args: argparse.Namespace, settings: Settings) -> int:
    ctx = RunContext.from_settings(settings, upload=True)

    async def _run() -> list[bool]:
        return [(await upload_existing(ctx, slug)).ok for slug in args.slugs]

    return 0 if all(asyncio.run(_run())) else 1


def _test_sftp(settings: Settings) -> int:
    ok = asyncio.run(SFTPUploader(settings).test_connection())
    return 0 if ok else 1


def _list() -> int:
    for retailer in load_retailers():
        flag = " (recrawl)" if retailer.recrawl else ""
        print(f"{retailer.slug:<16} {retailer.name} [{retailer.platform}, {retailer.country}]{flag}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    try:
        settings = Settings.from_env()
        if args.command == "crawl":
            return _crawl(args, settings)
        if args.command == "validate":
            return _validate(args, settings)
        if args.command == "upload":
            return _upload(args, settings)
        if args.command == "test-sftp":
            return _test_sftp(settings)
        return _list()
    except RetailcatError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
