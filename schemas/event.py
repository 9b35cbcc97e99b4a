import re
import uuid
import enum
from datetime import date, datetime
from typing import Optional, List

from pydantic import Field, field_validator

import config
from schemas.base import CamelModel

THEME_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class FieldType(str, enum.Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    NUMBER = "number"
    TEXTAREA = "textarea"


class FieldDefinition(CamelModel):
    id: str = Field(min_length=1)
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None


def _check_unique_ids(fields: List[FieldDefinition]) -> List[FieldDefinition]:
    seen = set()
    for field in fields:
        if field.id in seen:
            raise ValueError(f"Duplicate field id: {field.id}")
        seen.add(field.id)
    return fields


class EventCreate(CamelModel):
    title: str = Field(min_length=2)
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[date] = None
    price: Optional[float] = Field(default=None, ge=0)
    default_text: Optional[str] = None
    theme_color: str = config.DEFAULT_THEME_COLOR
    fields_schema: List[FieldDefinition] = []

    @field_validator("theme_color")
    @classmethod
    def check_theme_color(cls, value: str) -> str:
        if not THEME_COLOR_PATTERN.match(value):
            raise ValueError("Theme color must look like #RRGGBB")
        return value

    @field_validator("fields_schema")
    @classmethod
    def check_fields_schema(cls, value: List[FieldDefinition]) -> List[FieldDefinition]:
        return _check_unique_ids(value)


class EventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[date] = None
    price: Optional[float] = Field(default=None, ge=0)
    default_text: Optional[str] = None
    theme_color: Optional[str] = None
    fields_schema: Optional[List[FieldDefinition]] = None

    @field_validator("theme_color")
    @classmethod
    def check_theme_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not THEME_COLOR_PATTERN.match(value):
            raise ValueError("Theme color must look like #RRGGBB")
        return value

    @field_validator("fields_schema")
    @classmethod
    def check_fields_schema(cls, value: Optional[List[FieldDefinition]]) -> Optional[List[FieldDefinition]]:
        return _check_unique_ids(value) if value is not None else value


class EventResponse(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    location: Optional[str]
    event_date: Optional[date]
    price: Optional[float]
    default_text: Optional[str]
    theme_color: str
    fields_schema: List[FieldDefinition]
    created_at: Optional[datetime]
