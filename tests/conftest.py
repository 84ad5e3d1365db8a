"""Shared test fixtures and fakes for hookrelay tests."""

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from hookrelay.channels.varbind import build_varbinds
from hookrelay.config import parse_config
from hookrelay.errors import SendError, TrapSendError


class FakeWebhookClient:
    """Records every send instead of talking HTTP."""

    def __init__(self, recorder: "WebhookRecorder", config):
        self.recorder = recorder
        self.config = config

    async def send(self, url: str, body: bytes) -> bytes:
        if self.recorder.gate is not None:
            await self.recorder.gate.wait()
        if url in self.recorder.fail_urls:
            raise SendError(url, status_code=500)
        self.recorder.calls.append((self.config.method, url, body))
        return b"ok"


class WebhookRecorder:
    def __init__(self):
        self.calls: list[tuple[str, str, bytes]] = []
        self.fail_urls: set[str] = set()
        self.gate: Optional[asyncio.Event] = None

    def factory(self, config) -> FakeWebhookClient:
        return FakeWebhookClient(self, config)


class FakeTrapSession:
    def __init__(self, recorder: "TrapRecorder", config):
        self.recorder = recorder
        self.config = config

    async def __aenter__(self):
        self.recorder.opened.append(self.config.addr)
        return self

    async def __aexit__(self, *exc_info):
        self.recorder.closed.append(self.config.addr)

    async def send_trap(self, trap_oid, data_list):
        varbinds = build_varbinds(trap_oid, data_list, 0)
        if trap_oid in self.recorder.fail_oids:
            raise TrapSendError(f"failed to send SNMP trap to {self.config.addr}")
        self.recorder.traps.append((self.config.addr, varbinds))


class TrapRecorder:
    def __init__(self):
        self.opened: list[str] = []
        self.closed: list[str] = []
        self.traps: list[tuple[str, list]] = []
        self.fail_oids: set[str] = set()

    def factory(self, config) -> FakeTrapSession:
        return FakeTrapSession(self, config)


@pytest.fixture
def webhooks():
    return WebhookRecorder()


@pytest.fixture
def traps():
    return TrapRecorder()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write ``content`` to ``tmp_path/name`` and return the path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


WEBHOOK_TEMPLATE = '{"msg":{{ event.message | tojson }}}'

TRAP_TEMPLATE = """\
- trap-oid: "1.3.6.1.4.1.1"
  data-list:
    - oid: "1.3.6.1.4.1.2"
      type: s
      value: {{ event.status | default("ok") }}
"""


@pytest.fixture
def relay_config(tmp_path: Path, write_file):
    """A config with one webhook and one trap receiver on /alert."""
    write_file("hook.j2", WEBHOOK_TEMPLATE)
    write_file("trap.j2", TRAP_TEMPLATE)
    return parse_config(
        """
global:
  listen_address: "127.0.0.1:8065"
receivers:
  - path: /alert
    webhook_configs:
      - url: http://example/hook
        method: POST
        option_templates: [hook.j2]
  - path: /trap
    snmptrap_configs:
      - addr: 192.0.2.10:162
        community: public
        option_templates: [trap.j2]
""",
        base_dir=tmp_path,
    )
