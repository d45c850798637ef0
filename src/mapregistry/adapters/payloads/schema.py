"""Pydantic models describing inbound JSON mapping payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mapregistry.domain.model import MAX_LABEL_LENGTH, MappingProvenance

type KeyValue = int | str


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class MappingBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MappingPayload(MappingBaseModel):
    primary_key: KeyValue = Field(alias="primaryKey")
    secondary_key: list[KeyValue] = Field(alias="secondaryKey", min_length=1)
    subject_ref: str | None = Field(default=None, alias="subjectRef")
    group_ref: KeyValue | None = Field(default=None, alias="groupRef")
    label: str | None = Field(default=None, max_length=MAX_LABEL_LENGTH)
    mapping_type: MappingProvenance | None = Field(default=None, alias="mappingType")
    when_created: datetime | None = Field(default=None, alias="whenCreated")

    @model_validator(mode="before")
    @classmethod
    def _wrap_scalar_secondary_key(cls, value: object) -> object:
        if isinstance(value, Mapping):
            data: dict[str, object] = dict(cast(Mapping[str, object], value))
            for name in ("secondaryKey", "secondary_key"):
                key = data.get(name)
                if key is not None and not isinstance(key, list | tuple):
                    data[name] = [key]
            return data
        return value

    _normalize_optional = field_validator("subject_ref", "label", mode="before")(_blank_to_none)


class MappingBatchPayload(MappingBaseModel):
    """A batch of mappings sharing optional label, provenance and subject defaults."""

    mappings: list[MappingPayload] = Field(min_length=1)
    subject_ref: str | None = Field(default=None, alias="subjectRef")
    label: str | None = Field(default=None, max_length=MAX_LABEL_LENGTH)
    mapping_type: MappingProvenance | None = Field(default=None, alias="mappingType")

    _normalize_optional = field_validator("subject_ref", "label", mode="before")(_blank_to_none)
