import json
from pathlib import Path

import pytest

from hookrelay.channels.dispatcher import Dispatcher
from hookrelay.config import load_config

DEPLOY = Path(__file__).resolve().parent.parent / "deploy"


@pytest.fixture
def sample_event() -> bytes:
    return (DEPLOY / "event.json").read_bytes()


@pytest.mark.asyncio
async def test_sample_config_delivers_both_channels(webhooks, traps, sample_event):
    config = load_config(DEPLOY / "config.yml")
    dispatcher = Dispatcher(
        config.receivers,
        webhook_client_factory=webhooks.factory,
        trap_session_factory=traps.factory,
    )

    dispatcher.handle("/alert", sample_event)
    await dispatcher.drain()

    assert len(webhooks.calls) == 1
    method, url, body = webhooks.calls[0]
    assert (method, url) == ("POST", "http://127.0.0.1:9000/hook")
    assert json.loads(body) == {"text": "disk usage on db1 is critical", "labels": {"host": "db1"}}

    assert traps.opened == ["127.0.0.1:162"]
    _, varbinds = traps.traps[0]
    assert len(varbinds) == 5
    assert str(varbinds[2][1]) == "disk usage on db1"
    assert str(varbinds[3][1]) == "critical"
    assert int(varbinds[4][1]) == 3
