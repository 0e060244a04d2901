"""Scheduled recrawl of every retailer flagged ``recrawl`` in retailers.yml."""

from __future__ import annotations

import asyncio
import logging
import pathlib

from dotenv import load_dotenv

from retailcat.config import Settings
from retailcat.ingest import load_retailers
from retailcat.jobs.crawl import RunContext, RunSummary, run_all
from retailcat.utils.dates import now_in_tz
from retailcat.utils.notify import Notifier

logger = logging.getLogger(__name__)


def recrawl_slugs(path: pathlib.Path | None = None) -> list[str]:
    return [retailer.slug for retailer in load_retailers(path) if retailer.recrawl]


def recrawl_report(summaries: list[RunSummary]) -> str:
    failed = [summary for summary in summaries if not summary.ok]
    lines = [f"{summary.slug}: {summary.products} products" for summary in summaries if summary.ok]
    lines += [f"{summary.slug}: FAILED ({summary.error})" for summary in failed]
    status = "finished" if not failed else f"finished with {len(failed)} failures"
    return f"Recrawl {status}\n" + "\n".join(lines)


async def run_recrawl(
    settings: Settings | None = None, *, retailers_path: pathlib.Path | None = None
) -> list[RunSummary]:
    load_dotenv()
    settings = settings or Settings.from_env(dotenv=False)
    notifier = Notifier(settings)
    slugs = recrawl_slugs(retailers_path)
    started = now_in_tz(settings.timezone)
    await notifier.send(f"Recrawl started at {started.format('YYYY-MM-DD HH:mm')} for {', '.join(slugs)}")
    ctx = RunContext.from_settings(
        settings,
        persist=bool(settings.database_url),
        upload=settings.sftp_configured,
        retailers_path=retailers_path,
    )
    summaries = await run_all(ctx, slugs, persist=ctx.repository is not None, upload=ctx.uploader is not None)
    await notifier.send(recrawl_report(summaries))
    return summaries


if __name__ == "__main__":
    asyncio.run(run_recrawl())
