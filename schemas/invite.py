import uuid
from datetime import date, datetime
from typing import Optional, Dict

from pydantic import EmailStr, Field, field_validator

from schemas.base import CamelModel


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class InviteCreate(CamelModel):
    customer_name: str = Field(min_length=2)
    customer_phone: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    event_type: Optional[str] = None
    event_location: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    event_date: Optional[date] = None

    @field_validator("customer_email", "price", "event_date", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _blank_to_none(value)


class InviteUpdate(CamelModel):
    customer_name: Optional[str] = Field(default=None, min_length=2)
    customer_phone: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    event_type: Optional[str] = None
    event_location: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    event_date: Optional[date] = None

    @field_validator("customer_email", "price", "event_date", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _blank_to_none(value)


class InviteResponse(CamelModel):
    id: uuid.UUID
    event_id: uuid.UUID
    token: str
    customer_name: str
    customer_phone: Optional[str]
    customer_email: Optional[str]
    event_type: Optional[str]
    event_location: Optional[str]
    notes: Optional[str]
    price: Optional[float]
    event_date: Optional[date]
    status: str
    invite_url: str
    whatsapp_url: Optional[str]
    created_at: Optional[datetime]


class SubmissionResponse(CamelModel):
    invite_id: uuid.UUID
    payload: Dict[str, str]
    signature_png: Optional[str]
    signed_pdf_path: Optional[str]
    pdf_url: Optional[str]
    submitted_at: datetime
