"""SFTP delivery of catalog archives."""

from __future__ import annotations

import asyncio
import logging
import pathlib
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

import paramiko
import pendulum

from retailcat.config import Settings
from retailcat.errors import ConfigurationError, UploadError
from retailcat.utils.dates import remote_date_folder

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9.-]")
DIR_MODE = 0o755


@dataclass(slots=True)
class UploadTarget:
    name: str
    country: str
    gzip_path: pathlib.Path


@dataclass(slots=True)
class UploadResult:
    name: str
    remote_path: str
    local_path: pathlib.Path


@dataclass(slots=True)
class UploadReport:
    successful: list[UploadResult] = field(default_factory=list)
    failed: list[tuple[UploadTarget, str]] = field(default_factory=list)
    total: int = 0


def clean_name(name: str) -> str:
    return _UNSAFE_RE.sub("-", name)


def remote_catalog_path(root: str, name: str, country: str, when: pendulum.DateTime | None = None) -> str:
    """``{root}/{DD-MON-YYYY}/{country}/{name}-{country}/catalog.jsonl.gz``."""
    country = country or "US"
    parts = [root.rstrip("/")] if root else []
    parts += [remote_date_folder(when), country, f"{clean_name(name)}-{country}", "catalog.jsonl.gz"]
    return posixpath.join(*parts)


class SFTPUploader:
    """Uploads ``catalog.jsonl.gz`` files over SFTP.

    ``client_factory`` returns a connected ``paramiko.SFTPClient`` (or
    anything with the same ``stat``/``mkdir``/``chmod``/``put``/``listdir``
    methods). Paramiko is blocking, so the async methods run it in the
    default executor.
    """

    def __init__(self, settings: Settings, *, client_factory: Callable[[], Any] | None = None) -> None:
        self.settings = settings
        self._client_factory = client_factory or self._connect
        self._ssh: paramiko.SSHClient | None = None

    def _connect(self) -> paramiko.SFTPClient:
        settings = self.settings
        if not settings.sftp_configured:
            raise ConfigurationError(
                "Missing SFTP configuration: set SFTP_HOST, SFTP_USERNAME and SFTP_PRIVATE_KEY_PATH"
            )
        logger.info("Connecting to SFTP %s@%s:%s", settings.sftp_username, settings.sftp_host, settings.sftp_port)
        ssh = paramiko.SSHClient()
        ssh.load_system_host_keys()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        ssh.connect(
            settings.sftp_host,
            port=settings.sftp_port,
            username=settings.sftp_username,
            key_filename=settings.sftp_private_key_path,
            timeout=settings.request_timeout,
        )
        self._ssh = ssh
        return ssh.open_sftp()

    def _close(self, sftp: Any) -> None:
        try:
            sftp.close()
        finally:
            if self._ssh is not None:
                self._ssh.close()
                self._ssh = None

    def ensure_dir(self, sftp: Any, remote_dir: str) -> None:
        """Create ``remote_dir`` and any missing parents, mode 755."""
        current = "/" if remote_dir.startswith("/") else ""
        for part in [piece for piece in remote_dir.split("/") if piece]:
            current = posixpath.join(current, part) if current else part
            try:
                sftp.stat(current)
                continue
            except OSError:
                pass
            logger.debug("Creating remote directory %s", current)
            sftp.mkdir(current)
            try:
                sftp.chmod(current, DIR_MODE)
            except OSError as exc:
                logger.warning("Created %s but could not set permissions: %s", current, exc)

    def _upload(self, sftp: Any, target: UploadTarget, when: pendulum.DateTime | None) -> UploadResult:
        local = pathlib.Path(target.gzip_path)
        if not local.is_file():
            raise UploadError(f"Catalog archive not found: {local}")
        remote = remote_catalog_path(self.settings.sftp_remote_root, target.name, target.country, when)
        self.ensure_dir(sftp, posixpath.dirname(remote))
        size_mb = local.stat().st_size / (1024 * 1024)
        sftp.put(str(local), remote)
        logger.info("Uploaded %s (%.2f MB) to %s", local.name, size_mb, remote)
        return UploadResult(name=target.name, remote_path=remote, local_path=local)

    def _upload_batch(self, targets: list[UploadTarget], when: pendulum.DateTime | None) -> UploadReport:
        report = UploadReport(total=len(targets))
        try:
            sftp = self._client_factory()
        except (OSError, paramiko.SSHException) as exc:
            raise UploadError(f"could not connect to SFTP: {exc}") from exc
        try:
            for index, target in enumerate(targets, start=1):
                logger.info("[%s/%s] Uploading %s", index, len(targets), target.name)
                try:
                    report.successful.append(self._upload(sftp, target, when))
                except (OSError, paramiko.SSHException, UploadError) as exc:
                    logger.error("Failed to upload %s: %s", target.name, exc)
                    report.failed.append((target, str(exc)))
        finally:
            self._close(sftp)
        return report

    async def upload_store_catalog(self, target: UploadTarget, *, when: pendulum.DateTime | None = None) -> UploadResult:
        report = await self.upload_multiple([target], when=when)
        if report.failed:
            raise UploadError(report.failed[0][1])
        return report.successful[0]

    async def upload_multiple(
        self, targets: Iterable[UploadTarget], *, when: pendulum.DateTime | None = None
    ) -> UploadReport:
        """Upload every target, continuing past individual failures."""
        targets = list(targets)
        if not targets:
            return UploadReport()
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, self._upload_batch, targets, when)
        logger.info("SFTP upload: %s succeeded, %s failed of %s", len(report.successful), len(report.failed), report.total)
        return report

    def _list_root(self) -> bool:
        sftp = self._client_factory()
        try:
            entries = sftp.listdir(self.settings.sftp_remote_root or ".")
        except OSError as exc:
            logger.warning("Cannot list SFTP root, check permissions: %s", exc)
            return False
        finally:
            self._close(sftp)
        logger.info("SFTP connection ok, %s entries in root", len(entries))
        return True

    async def test_connection(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._list_root)
        except (OSError, paramiko.SSHException, ConfigurationError) as exc:
            logger.error("SFTP connection test failed: %s", exc)
            return False
