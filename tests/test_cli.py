import pytest

from retailcat.cli import main


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    for name in ("DATABASE_URL", "SFTP_HOST", "SFTP_USERNAME", "SFTP_PRIVATE_KEY_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_list_prints_configured_retailers(capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "nike" in out
    assert "partstown" in out


def test_crawl_requires_a_retailer():
    assert main(["crawl"]) == 1


def test_crawl_unknown_retailer_fails():
    assert main(["crawl", "no-such-store"]) == 1


def test_persist_without_database_is_a_configuration_error():
    assert main(["crawl", "nike", "--persist"]) == 1


def test_validate_reports_bad_catalog(tmp_path):
    path = tmp_path / "catalog.jsonl"
    path.write_text('{"parent_product_id": "P1", "name": "Tee", "description": "Tee", "variants": []}\n')
    assert main(["validate", str(path)]) == 1


def test_validate_all_without_catalogs_fails():
    assert main(["validate", "--all"]) == 1
