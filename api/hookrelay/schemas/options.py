"""Pydantic schemas for rendered trap option documents."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _null_text(value: Any) -> Any:
    """A YAML null lands in a text field as the empty string."""
    return "" if value is None else value


class Datum(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    oid: str = ""
    type: str = ""
    value: str = ""

    @field_validator("oid", "type", "value", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _null_text(v)


class TrapOption(BaseModel):
    """One trap to send: the trap OID plus its ordered data bindings."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    trap_oid: str = Field("", alias="trap-oid")
    data_list: list[Datum] = Field(default_factory=list, alias="data-list")

    @field_validator("trap_oid", mode="before")
    @classmethod
    def _coerce_trap_oid(cls, v: Any) -> Any:
        return _null_text(v)

    @field_validator("data_list", mode="before")
    @classmethod
    def _null_data_list(cls, v: Any) -> Any:
        return [] if v is None else v
