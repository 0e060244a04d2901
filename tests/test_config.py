import httpx
import pytest
import respx

from retailcat.config import Settings
from retailcat.utils.notify import SLACK_URL, Notifier


def test_settings_from_environ():
    settings = Settings.from_env(
        {"OUTPUT_DIR": "/data/feeds", "SFTP_HOST": "sftp.example.com", "SFTP_PORT": "2222", "PAGE_DELAY": "0"},
        dotenv=False,
    )
    assert str(settings.output_dir) == "/data/feeds"
    assert settings.sftp_port == 2222
    assert settings.page_delay == 0
    assert settings.database_url is None
    assert settings.sftp_configured is False


@pytest.mark.asyncio
async def test_notifier_posts_to_slack():
    settings = Settings(slack_token="xoxb-test", slack_channel="#feeds")
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(SLACK_URL).mock(return_value=httpx.Response(200, json={"ok": True}))
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.async_handler)) as session:
            await Notifier(settings, session=session).send("Recrawl finished")
    request = route.calls[0].request
    assert request.headers["Authorization"] == "Bearer xoxb-test"
    assert b"Recrawl finished" in request.content


@pytest.mark.asyncio
async def test_notifier_swallows_http_errors():
    settings = Settings(slack_token="xoxb-test", slack_channel="#feeds")
    async with respx.mock() as router:
        router.post(SLACK_URL).mock(return_value=httpx.Response(500))
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.async_handler)) as session:
            await Notifier(settings, session=session).send("hello")


def test_retailcat_is_a_namespace_package():
    import retailcat

    assert getattr(retailcat, "__file__", None) is None
    assert any(path.endswith("retailcat") for path in retailcat.__path__)
