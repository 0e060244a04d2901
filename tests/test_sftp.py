import pendulum
import pytest

from retailcat.config import Settings
from retailcat.errors import UploadError
from retailcat.utils.sftp import SFTPUploader, UploadTarget, clean_name, remote_catalog_path

WHEN = pendulum.datetime(2026, 10, 16, 9, 30, tz="Asia/Kolkata")


class FakeSFTP:
    def __init__(self, existing=()):
        self.dirs = set(existing)
        self.puts = []
        self.closed = False

    def stat(self, path):
        if path not in self.dirs:
            raise FileNotFoundError(path)

    def mkdir(self, path):
        self.dirs.add(path)

    def chmod(self, path, mode):
        assert mode == 0o755

    def put(self, local, remote):
        self.puts.append((local, remote))

    def listdir(self, path):
        return ["16-OCT-2026"]

    def close(self):
        self.closed = True


@pytest.fixture()
def sftp_settings(tmp_path):
    return Settings(
        output_dir=tmp_path,
        sftp_host="sftp.example.com",
        sftp_username="feeds",
        sftp_private_key_path=str(tmp_path / "id_rsa"),
        sftp_remote_root="/incoming",
    )


def archive(tmp_path, name="catalog.jsonl.gz"):
    path = tmp_path / name
    path.write_bytes(b"\x1f\x8b")
    return path


def test_remote_path_layout():
    assert clean_name("Abercrombie & Fitch") == "Abercrombie---Fitch"
    assert (
        remote_catalog_path("/incoming/", "Nike", "US", WHEN)
        == "/incoming/16-OCT-2026/US/Nike-US/catalog.jsonl.gz"
    )
    assert remote_catalog_path("", "H&M", "", WHEN) == "16-OCT-2026/US/H-M-US/catalog.jsonl.gz"


@pytest.mark.asyncio
async def test_upload_creates_missing_directories(tmp_path, sftp_settings):
    fake = FakeSFTP(existing={"/incoming"})
    uploader = SFTPUploader(sftp_settings, client_factory=lambda: fake)
    result = await uploader.upload_store_catalog(UploadTarget("Nike", "US", archive(tmp_path)), when=WHEN)

    assert result.remote_path == "/incoming/16-OCT-2026/US/Nike-US/catalog.jsonl.gz"
    assert {"/incoming/16-OCT-2026", "/incoming/16-OCT-2026/US", "/incoming/16-OCT-2026/US/Nike-US"} <= fake.dirs
    assert fake.puts == [(str(tmp_path / "catalog.jsonl.gz"), result.remote_path)]
    assert fake.closed


@pytest.mark.asyncio
async def test_upload_multiple_continues_past_failures(tmp_path, sftp_settings):
    fake = FakeSFTP()
    uploader = SFTPUploader(sftp_settings, client_factory=lambda: fake)
    targets = [
        UploadTarget("Missing", "US", tmp_path / "nope.jsonl.gz"),
        UploadTarget("Zara", "US", archive(tmp_path)),
    ]
    report = await uploader.upload_multiple(targets, when=WHEN)
    assert report.total == 2
    assert [result.name for result in report.successful] == ["Zara"]
    assert report.failed[0][0].name == "Missing"
    assert "not found" in report.failed[0][1]


@pytest.mark.asyncio
async def test_single_upload_failure_raises(tmp_path, sftp_settings):
    uploader = SFTPUploader(sftp_settings, client_factory=FakeSFTP)
    with pytest.raises(UploadError):
        await uploader.upload_store_catalog(UploadTarget("Nike", "US", tmp_path / "nope.gz"), when=WHEN)


@pytest.mark.asyncio
async def test_connection_failures_are_upload_errors(tmp_path, sftp_settings):
    def refuse():
        raise ConnectionRefusedError("refused")

    uploader = SFTPUploader(sftp_settings, client_factory=refuse)
    with pytest.raises(UploadError, match="could not connect"):
        await uploader.upload_store_catalog(UploadTarget("Nike", "US", archive(tmp_path)), when=WHEN)


@pytest.mark.asyncio
async def test_connection_lists_remote_root(sftp_settings):
    assert await SFTPUploader(sftp_settings, client_factory=FakeSFTP).test_connection() is True
    assert await SFTPUploader(Settings()).test_connection() is False
