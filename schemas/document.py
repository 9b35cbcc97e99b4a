from datetime import date, datetime
from typing import Optional, Dict, List, Union

from pydantic import BaseModel

from schemas.event import FieldDefinition


class DocumentEvent(BaseModel):
    title: str = ""
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[Union[date, str]] = None
    price: Optional[float] = None
    default_text: Optional[str] = None
    theme_color: Optional[str] = None
    business_name: Optional[str] = None
    business_phone: Optional[str] = None
    business_website: Optional[str] = None


class DocumentData(BaseModel):
    """Everything the renderer needs; `customer` keeps insertion order."""

    event: DocumentEvent
    customer: Dict[str, str]
    signature: str = ""
    submitted_at: datetime
    fields_schema: List[FieldDefinition] = []
