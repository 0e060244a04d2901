import json
from pathlib import Path

import httpx
import pytest
import respx

from retailcat.config import Settings
from retailcat.jobs.celery_app import RECRAWL_TASK, create_celery
from retailcat.jobs.recrawl import recrawl_slugs, run_recrawl
from retailcat.utils.notify import SLACK_URL

FIXTURES = Path(__file__).parent / "fixtures" / "http"

RETAILERS_YML = """
- slug: lumi
  name: Lumi Threads
  domain: lumithreads.com
  platform: shopify
  store_url: https://lumithreads.com
  recrawl: true
- slug: quiet
  name: Quiet Goods
  domain: quietgoods.com
  platform: shopify
  store_url: https://quietgoods.com
- slug: offline
  name: Offline Outfitters
  domain: offline.example
  platform: shopify
  store_url: https://offline.example
  recrawl: true
"""


@pytest.fixture()
def retailers_path(tmp_path):
    path = tmp_path / "retailers.yml"
    path.write_text(RETAILERS_YML)
    return path


def test_recrawl_picks_flagged_retailers(retailers_path):
    assert recrawl_slugs(retailers_path) == ["lumi", "offline"]


@pytest.mark.asyncio
async def test_recrawl_posts_start_and_finish(monkeypatch, tmp_path, retailers_path):
    monkeypatch.chdir(tmp_path)
    settings = Settings(
        output_dir=tmp_path / "output",
        page_delay=0,
        product_delay=0,
        max_retries=1,
        slack_token="xoxb-test",
        slack_channel="#feeds",
        timezone="UTC",
    )
    products = json.loads((FIXTURES / "shopify" / "products.json").read_text())
    async with respx.mock(assert_all_called=True) as router:
        router.get("https://lumithreads.com/products.json").mock(return_value=httpx.Response(200, json=products))
        router.get("https://offline.example/products.json").mock(return_value=httpx.Response(503))
        slack = router.post(SLACK_URL).mock(return_value=httpx.Response(200, json={"ok": True}))
        summaries = await run_recrawl(settings, retailers_path=retailers_path)

    assert [(summary.slug, summary.ok) for summary in summaries] == [("lumi", True), ("offline", False)]
    started, finished = (json.loads(call.request.content)["text"] for call in slack.calls)
    assert started.startswith("Recrawl started at ")
    assert started.endswith("for lumi, offline")
    assert finished.startswith("Recrawl finished with 1 failures")
    assert "lumi: 1 products" in finished
    assert "offline: FAILED" in finished
    assert (tmp_path / "output" / "US" / "lumi-US" / "catalog.jsonl.gz").exists()


def test_celery_schedule_follows_settings():
    app = create_celery(Settings(recrawl_hour=5, timezone="UTC", redis_url="redis://localhost:6379/1"))
    entry = app.conf.beat_schedule["daily-recrawl"]
    assert entry["task"] == RECRAWL_TASK
    assert entry["schedule"].hour == {5}
    assert app.conf.timezone == "UTC"
    assert app.conf.broker_url == "redis://localhost:6379/1"
