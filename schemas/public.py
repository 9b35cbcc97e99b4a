from datetime import date
from typing import Optional, Dict, List, Tuple

from pydantic import EmailStr

from schemas.base import CamelModel
from schemas.event import FieldDefinition


class PublicEvent(CamelModel):
    title: str
    description: Optional[str]
    location: Optional[str]
    event_date: Optional[date]
    price: Optional[float]
    default_text: Optional[str]
    theme_color: str
    fields_schema: List[FieldDefinition]
    business_name: Optional[str]
    business_phone: Optional[str]
    business_website: Optional[str]


class PublicInvite(CamelModel):
    customer_name: str
    customer_email: Optional[str]
    customer_phone: Optional[str]
    event_type: Optional[str]
    event_location: Optional[str]
    notes: Optional[str]
    status: str


class PublicInviteResponse(CamelModel):
    event: PublicEvent
    invite: PublicInvite
    form_fields: List[FieldDefinition]
    already_submitted: bool


class SubmitRequest(CamelModel):
    payload: Dict[str, str] = {}
    signature: str = ""
    # Raw pointer path, rasterised server side when no data URI is sent
    strokes: Optional[List[List[Tuple[float, float]]]] = None


class SubmitResponse(CamelModel):
    message: str
    pdf_url: Optional[str]
    owner_email: str
    whatsapp_url: Optional[str]


class SendEmailRequest(CamelModel):
    recipient_email: EmailStr


class MessageResponse(CamelModel):
    message: str
