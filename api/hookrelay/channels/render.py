"""Jinja2 rendering of channel templates against an inbound event."""

from pathlib import Path
from typing import Any, Sequence, Union

from jinja2 import (
    DictLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)
from jinja2.sandbox import ImmutableSandboxedEnvironment

from hookrelay.errors import TemplateExecError, TemplateLoadError

PathLike = Union[str, Path]


def _read_sources(template_files: Sequence[PathLike]) -> tuple[list[str], dict[str, str]]:
    """Read every file; a later file with the same base name wins."""
    names: list[str] = []
    sources: dict[str, str] = {}
    for file in template_files:
        path = Path(file)
        try:
            sources[path.name] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateLoadError(f"cannot read template {path}: {e}") from e
        if path.name not in names:
            names.append(path.name)
    return names, sources


def render(template_files: Sequence[PathLike], event: Any) -> str:
    """
    Render ``template_files`` against ``event``.

    The first file is executed. Macros and top-level variables exported by
    the remaining files are available to it by name, and all files can be
    included or imported by base name. Files are read from disk on every call.

    An empty file list renders to an empty string.
    """
    if not template_files:
        return ""

    names, sources = _read_sources(template_files)

    env = ImmutableSandboxedEnvironment(
        loader=DictLoader(sources),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
        cache_size=0,
    )

    templates = {}
    for name in names:
        try:
            templates[name] = env.get_template(name)
        except TemplateSyntaxError as e:
            raise TemplateLoadError(f"{name}:{e.lineno}: {e.message}") from e

    context: dict[str, Any] = {"event": event}
    try:
        for name in names[1:]:
            module = templates[name].make_module(context)
            context.update(
                {key: value for key, value in vars(module).items() if not key.startswith("_")}
            )
        return templates[names[0]].render(context)
    except TemplateSyntaxError as e:
        raise TemplateLoadError(f"{e.name or names[0]}:{e.lineno}: {e.message}") from e
    except TemplateNotFound as e:
        raise TemplateLoadError(f"{names[0]}: template {e.name!r} not found") from e
    except (TemplateError, TypeError, ValueError, ArithmeticError, LookupError) as e:
        raise TemplateExecError(f"{names[0]}: {e}") from e
