"""Decode rendered template output into delivery instructions."""

import re
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from hookrelay.errors import DecodeError
from hookrelay.schemas.options import TrapOption

_OPTIONS_ADAPTER = TypeAdapter(list[TrapOption])


class _UniqueKeysMixin:
    """Reject mappings that repeat a key."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            try:
                hash(key)
            except TypeError:
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class StrictLoader(_UniqueKeysMixin, yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys."""


class TextLoader(_UniqueKeysMixin, yaml.BaseLoader):
    """
    Loader for rendered trap documents.

    Every scalar keeps its literal text (``007``, ``yes``, ``2024-05-01``), except
    a plain null (``~``, ``null`` or nothing at all), which loads as None.
    """


TextLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null", re.compile(r"^(?:~|null|Null|NULL|)$"), ["~", "n", "N", ""]
)
TextLoader.add_constructor("tag:yaml.org,2002:null", lambda loader, node: None)


def load_strict_yaml(text: str) -> Any:
    return yaml.load(text, Loader=StrictLoader)


def decode_options(text: str) -> list[TrapOption]:
    """
    Decode a rendered trap document.

    The document is a YAML list of ``{trap-oid, data-list}`` entries. An empty
    document decodes to no options. Unknown keys, duplicate keys and any other
    structural problem raise ``DecodeError``.
    """
    try:
        document = yaml.load(text, Loader=TextLoader)
    except yaml.YAMLError as e:
        raise DecodeError(f"rendered output is not valid YAML: {e}") from e

    if document is None:
        return []
    if not isinstance(document, list):
        raise DecodeError(
            f"rendered output must be a list of trap options, got {type(document).__name__}"
        )

    try:
        return _OPTIONS_ADAPTER.validate_python(document)
    except ValidationError as e:
        raise DecodeError(f"invalid trap options: {e}") from e


def decode_body(text: str) -> bytes:
    """Webhook bodies are the rendered text itself."""
    return text.encode("utf-8")
