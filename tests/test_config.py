import pytest

from hookrelay.channels import ChannelKind
from hookrelay.config import Settings, load_config, parse_config, parse_listen_address
from hookrelay.errors import ConfigError
from hookrelay.schemas.config import SnmpTrapChannelConfig, WebhookChannelConfig

FULL_CONFIG = """
global:
  listen_address: "0.0.0.0:8065"
receivers:
  - path: /alert
    webhook_configs:
      - url: https://hooks.example.com/in
        method: put
        timeout: 500ms
        username: relay
        password: s3cret
        headers: {X-Source: hookrelay}
        option_templates: [templates/hook.j2, /abs/helpers.j2]
    snmptrap_configs:
      - addr: 192.0.2.10:1162
        community: private
        retries: 2
        timeout: 2s
        option_templates: [templates/trap.j2]
  - path: /notify
"""


def test_parses_full_config(tmp_path):
    config = parse_config(FULL_CONFIG, base_dir=tmp_path)

    assert config.global_.listen_address == "0.0.0.0:8065"
    assert [r.path for r in config.receivers] == ["/alert", "/notify"]

    webhook = config.receivers[0].webhook_configs[0]
    assert webhook.method == "PUT"
    assert webhook.timeout == 0.5
    assert webhook.headers == {"X-Source": "hookrelay"}
    assert webhook.option_templates == (
        str(tmp_path / "templates/hook.j2"),
        "/abs/helpers.j2",
    )

    trap = config.receivers[0].snmptrap_configs[0]
    assert trap.community == "private"
    assert trap.retries == 2
    assert trap.timeout == 2.0

    assert config.receivers[1].webhook_configs == ()
    assert list(config.receivers[1].channels) == []


def test_channels_are_ordered_webhooks_then_traps(tmp_path):
    receiver = parse_config(FULL_CONFIG, base_dir=tmp_path).receivers[0]
    channels = list(receiver.channels)

    assert [c.kind for c in channels] == [ChannelKind.WEBHOOK, ChannelKind.SNMPTRAP]
    assert isinstance(channels[0], WebhookChannelConfig)
    assert isinstance(channels[1], SnmpTrapChannelConfig)
    assert [c.target for c in channels] == ["https://hooks.example.com/in", "192.0.2.10:1162"]


def test_defaults():
    config = parse_config(
        """
global: {listen_address: ":8065"}
receivers:
  - path: /a
    webhook_configs: [{url: "http://example/a"}]
    snmptrap_configs: [{addr: "192.0.2.1"}]
"""
    )
    webhook = config.receivers[0].webhook_configs[0]
    trap = config.receivers[0].snmptrap_configs[0]

    assert (webhook.method, webhook.timeout, webhook.option_templates) == ("POST", 10.0, ())
    assert (trap.community, trap.retries, trap.timeout) == ("public", 1, 1.0)


def test_config_is_immutable():
    config = parse_config("global: {listen_address: ':8065'}\nreceivers: [{path: /a}]\n")
    with pytest.raises(Exception):
        config.receivers[0].path = "/b"


@pytest.mark.parametrize(
    "content",
    [
        "receivers: []\n",
        "global: {listen_address: ':1'}\nunknown: 1\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, email_configs: []}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: no-slash}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, webhook_configs: [{url: 'ftp://x/y'}]}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, webhook_configs: [{url: 'http://x', method: FETCH}]}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, webhook_configs: [{url: 'http://x', timeout: soon}]}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, snmptrap_configs: [{addr: 'host:port'}]}]\n",
        "global: {listen_address: ':1'}\nreceivers: [{path: /a, snmptrap_configs: [{addr: 'h', retries: -1}]}]\n",
        "global: {listen_address: ':1'}\nglobal: {listen_address: ':2'}\n",
        "- not a mapping\n",
        "global: [unclosed\n",
    ],
)
def test_invalid_configs(content):
    with pytest.raises(ConfigError):
        parse_config(content)


def test_load_config_resolves_templates_next_to_the_file(tmp_path):
    config_dir = tmp_path / "etc"
    config_dir.mkdir()
    path = config_dir / "hookrelay.yml"
    path.write_text(
        "global: {listen_address: ':8065'}\n"
        "receivers: [{path: /a, webhook_configs: [{url: 'http://x', option_templates: [t.j2]}]}]\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.receivers[0].webhook_configs[0].option_templates == (str(config_dir / "t.j2"),)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yml")


@pytest.mark.parametrize(
    "address, expected",
    [
        (":8065", ("0.0.0.0", 8065)),
        ("127.0.0.1:9000", ("127.0.0.1", 9000)),
        ("[::1]:9000", ("::1", 9000)),
    ],
)
def test_parse_listen_address(address, expected):
    assert parse_listen_address(address) == expected


@pytest.mark.parametrize("address", ["8065", "host:", "host:http"])
def test_parse_listen_address_rejects(address):
    with pytest.raises(ConfigError):
        parse_listen_address(address)


def test_settings_channel_kinds(monkeypatch):
    monkeypatch.setenv("HOOKRELAY_ENABLED_CHANNELS", "snmptrap")
    assert Settings().channel_kinds == frozenset({ChannelKind.SNMPTRAP})
    assert Settings(enabled_channels="webhook, snmptrap").channel_kinds == frozenset(ChannelKind)
    with pytest.raises(ConfigError):
        Settings(enabled_channels="email").channel_kinds
