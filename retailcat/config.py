"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

DEFAULT_OUTPUT_DIR = "output"
DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_REDIS_URL = "redis://redis:6379/0"


@dataclass(slots=True)
class Settings:
    output_dir: pathlib.Path = pathlib.Path(DEFAULT_OUTPUT_DIR)
    database_url: str | None = None
    sftp_host: str | None = None
    sftp_port: int = 22
    sftp_username: str | None = None
    sftp_private_key_path: str | None = None
    sftp_remote_root: str = ""
    proxy_url: str | None = None
    request_timeout: float = 60.0
    page_delay: float = 1.0
    product_delay: float = 0.5
    max_retries: int = 3
    slack_token: str | None = None
    slack_channel: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    recrawl_hour: int = 12
    redis_url: str = DEFAULT_REDIS_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, dotenv: bool = True) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ
        return cls(
            output_dir=pathlib.Path(env.get("OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
            database_url=env.get("DATABASE_URL") or None,
            sftp_host=env.get("SFTP_HOST") or None,
            sftp_port=int(env.get("SFTP_PORT", "22")),
            sftp_username=env.get("SFTP_USERNAME") or None,
            sftp_private_key_path=env.get("SFTP_PRIVATE_KEY_PATH") or None,
            sftp_remote_root=env.get("SFTP_REMOTE_ROOT", ""),
            proxy_url=env.get("PROXY_URL") or None,
            request_timeout=float(env.get("REQUEST_TIMEOUT", "60")),
            page_delay=float(env.get("PAGE_DELAY", "1.0")),
            product_delay=float(env.get("PRODUCT_DELAY", "0.5")),
            max_retries=int(env.get("MAX_RETRIES", "3")),
            slack_token=env.get("SLACK_TOKEN") or None,
            slack_channel=env.get("SLACK_CHANNEL") or None,
            timezone=env.get("TIMEZONE", DEFAULT_TIMEZONE),
            recrawl_hour=int(env.get("RECRAWL_HOUR", "12")),
            redis_url=env.get("REDIS_URL", DEFAULT_REDIS_URL),
        )

    @property
    def sftp_configured(self) -> bool:
        return bool(self.sftp_host and self.sftp_username and self.sftp_private_key_path)
