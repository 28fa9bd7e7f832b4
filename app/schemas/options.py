"""Reference options schemas (shared by the options API and the editor client)."""
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptionTypeItem(_CamelModel):
    value: str
    label: str


class OptionPayload(_CamelModel):
    type: str
    label: str
    value: str | None = None
    parent: str | None = None
    metadata: dict[str, Any] | None = None
    sort_order: int | None = None

    @field_validator("type")
    @classmethod
    def type_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("type is required")
        return v

    @field_validator("label")
    @classmethod
    def label_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Label is required")
        return v

    @field_validator("value", "parent", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class OptionItem(_CamelModel):
    id: str
    type: str
    label: str
    value: str
    parent: str | None = None
    metadata: dict[str, Any] | None = None
    sort_order: int = 0

    @classmethod
    def from_model(cls, option) -> "OptionItem":
        # ReferenceOption keeps the map in `meta`; `metadata` is taken by SQLAlchemy
        return cls(
            id=option.id,
            type=option.type,
            label=option.label,
            value=option.value,
            parent=option.parent_id,
            metadata=option.meta,
            sort_order=option.sort_order or 0,
        )


class OptionListResponse(BaseModel):
    success: bool = True
    data: list[OptionItem]


class OptionTypeListResponse(BaseModel):
    success: bool = True
    data: list[OptionTypeItem]


class OptionResponse(BaseModel):
    success: bool = True
    data: OptionItem


class MessageResponse(BaseModel):
    success: bool = True
    message: str
