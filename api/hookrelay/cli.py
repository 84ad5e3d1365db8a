"""hookrelay command line: serve, check, render."""

import json
from pathlib import Path
from typing import Optional

import typer

from hookrelay import __version__
from hookrelay.channels.options import decode_options
from hookrelay.channels.render import render
from hookrelay.config import Settings, load_config, parse_listen_address
from hookrelay.errors import ConfigError, HookRelayError
from hookrelay.logs import configure_logging

app = typer.Typer(
    name="hookrelay",
    help="hookrelay: route JSON events to webhooks and SNMP traps.",
    no_args_is_help=True,
)


def _settings(**overrides) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


@app.command("serve")
def serve_command(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file"),
    logfile: Optional[str] = typer.Option(None, "--logfile", help="Log file (default: stderr)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level"),
    log_max_size: Optional[int] = typer.Option(None, "--log-max-size", help="Log max size in megabytes"),
    log_max_backups: Optional[int] = typer.Option(None, "--log-max-backups", help="Log max backups"),
    log_max_age: Optional[int] = typer.Option(None, "--log-max-age", help="Log max age in days"),
    log_compress: Optional[bool] = typer.Option(None, "--log-compress/--no-log-compress", help="Gzip rotated logs"),
    channels: Optional[str] = typer.Option(
        None, "--channels", help="Enabled channel kinds, e.g. 'webhook,snmptrap' or 'snmptrap'"
    ),
) -> None:
    """Run the HTTP receiver."""
    import uvicorn

    from hookrelay.main import create_app

    settings = _settings(
        config_file=config,
        log_file=logfile,
        log_level=log_level,
        log_max_size=log_max_size,
        log_max_backups=log_max_backups,
        log_max_age=log_max_age,
        log_compress=log_compress,
        enabled_channels=channels,
    )
    configure_logging(
        level=settings.log_level,
        log_file=settings.log_file or None,
        max_size_mb=settings.log_max_size,
        max_backups=settings.log_max_backups,
        max_age_days=settings.log_max_age,
        compress=settings.log_compress,
    )

    try:
        relay_config = load_config(settings.config_file)
        host, port = parse_listen_address(relay_config.global_.listen_address)
        if not settings.channel_kinds:
            raise ConfigError("no channel kinds enabled")
    except ConfigError as e:
        typer.echo(f"[error] {e}", err=True)
        raise typer.Exit(code=1)

    uvicorn.run(
        create_app(relay_config, settings),
        host=host,
        port=port,
        log_config=None,
        access_log=False,
    )


@app.command("check")
def check_command(
    config: str = typer.Option("config.yml", "--config", "-c", help="Config file"),
) -> None:
    """Validate a config file and print its routing table."""
    try:
        relay_config = load_config(config)
        parse_listen_address(relay_config.global_.listen_address)
    except ConfigError as e:
        typer.echo(f"[error] {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"listen_address: {relay_config.global_.listen_address}")
    for receiver in relay_config.receivers:
        typer.echo(receiver.path)
        for channel in receiver.channels:
            templates = ", ".join(channel.option_templates) or "-"
            typer.echo(f"  {channel.kind.value} {channel.target} [{templates}]")


@app.command("render")
def render_command(
    templates: list[Path] = typer.Argument(..., help="Template files; the first one is executed"),
    event: Path = typer.Option(..., "--event", "-e", help="JSON file holding the event"),
    trap: bool = typer.Option(False, "--trap", help="Decode the output as trap options"),
) -> None:
    """Render templates against an event, as a channel would."""
    try:
        data = json.loads(event.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.echo(f"[error] cannot read event {event}: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        text = render(templates, data)
        if not trap:
            typer.echo(text, nl=False)
            return
        for option in decode_options(text):
            typer.echo(f"trap-oid: {option.trap_oid}")
            for datum in option.data_list:
                typer.echo(f"  {datum.oid} {datum.type} {datum.value}")
    except HookRelayError as e:
        typer.echo(f"[error] {e}", err=True)
        raise typer.Exit(code=1)


@app.command("version")
def version_command() -> None:
    """Print the hookrelay version."""
    typer.echo(f"hookrelay {__version__}")


def main() -> None:
    app()
