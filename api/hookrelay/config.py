from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from hookrelay.channels import ChannelKind
from hookrelay.channels.options import load_strict_yaml
from hookrelay.errors import ConfigError
from hookrelay.schemas.config import RelayConfig


class Settings(BaseSettings):
    config_file: str = "config.yml"

    # Logging; an empty log_file logs to stderr
    log_file: str = ""
    log_level: str = "INFO"
    log_max_size: int = 1  # megabytes
    log_max_backups: int = 3
    log_max_age: int = 10  # days
    log_compress: bool = True

    # Comma-separated channel kinds to deliver (webhook, snmptrap)
    enabled_channels: str = "webhook,snmptrap"

    max_body_size: int = 2 * 1024 * 1024
    # 0 = unbounded
    max_concurrent_deliveries: int = 0
    shutdown_timeout: float = 5.0

    model_config = {"env_prefix": "HOOKRELAY_", "env_file": ".env", "extra": "ignore"}

    @property
    def channel_kinds(self) -> frozenset[ChannelKind]:
        kinds = set()
        for name in self.enabled_channels.split(","):
            name = name.strip().lower()
            if not name:
                continue
            try:
                kinds.add(ChannelKind(name))
            except ValueError:
                raise ConfigError(f"Unknown channel kind: {name}") from None
        return frozenset(kinds)


def _resolve_templates(receiver: dict, base_dir: Path) -> None:
    for key in ("webhook_configs", "snmptrap_configs"):
        for channel in receiver.get(key) or ():
            if isinstance(channel, dict) and isinstance(channel.get("option_templates"), list):
                channel["option_templates"] = [
                    str(base_dir / t) if isinstance(t, str) else t
                    for t in channel["option_templates"]
                ]


def parse_config(content: str, base_dir: Union[str, Path, None] = None) -> RelayConfig:
    """
    Parse and validate a configuration document.

    Relative template paths are resolved against ``base_dir`` when given.
    """
    try:
        document = load_strict_yaml(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"parsing YAML file {e}") from e

    if not isinstance(document, dict):
        raise ConfigError("configuration must be a mapping with 'global' and 'receivers'")

    if base_dir is not None:
        for receiver in document.get("receivers") or ():
            if isinstance(receiver, dict):
                _resolve_templates(receiver, Path(base_dir))

    try:
        return RelayConfig.model_validate(document)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def load_config(path: Union[str, Path]) -> RelayConfig:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    return parse_config(content, base_dir=path.parent)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host (``:8065``) binds all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"invalid listen_address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)
