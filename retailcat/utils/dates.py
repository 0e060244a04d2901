"""Datetime helpers."""

from __future__ import annotations

import os

import pendulum

DEFAULT_TZ = "Asia/Kolkata"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def now_in_tz(tz: str | None = None) -> pendulum.DateTime:
    return pendulum.now(pendulum.timezone(tz or timezone_name()))


def crawled_at(value: pendulum.DateTime | None = None) -> str:
    """ISO-8601 UTC timestamp stored in ``store_info.crawled_at``."""
    moment = (value or pendulum.now("UTC")).in_timezone("UTC")
    return moment.format("YYYY-MM-DD[T]HH:mm:ss.SSS") + "Z"


def remote_date_folder(value: pendulum.DateTime | None = None) -> str:
    """Upload folder name such as ``16-OCT-2026``."""
    moment = value or now_in_tz()
    return moment.format("DD-MMM-YYYY", locale="en").upper()
