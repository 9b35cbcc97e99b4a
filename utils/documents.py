import asyncio
import logging
from datetime import date, datetime
from typing import Dict, Optional

from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

import config
from models.event import Event
from models.invite import Invite
from schemas.document import DocumentData, DocumentEvent
from utils.exceptions import RenderError
from utils.fields import parse_fields_schema
from utils.pdf import RenderedDocument, render_document
from utils.storage import save_artifact

logger = logging.getLogger(__name__)


def invite_with_relations():
    """Invite query with everything the public flow and the renderer touch."""
    return select(Invite).options(
        selectinload(Invite.event).selectinload(Event.owner),
        selectinload(Invite.submission),
    )


def _as_float(value) -> Optional[float]:
    return None if value is None else float(value)


def effective_event_date(invite: Invite) -> Optional[date]:
    return invite.event_date or invite.event.event_date


def effective_price(invite: Invite) -> Optional[float]:
    if invite.price is not None:
        return _as_float(invite.price)
    return _as_float(invite.event.price)


def customer_fields(invite: Invite) -> Dict[str, str]:
    """The invite's customer data, keyed like the submission payload; location falls back to the event's."""
    values = {
        "name": invite.customer_name,
        "phone": invite.customer_phone,
        "email": invite.customer_email,
        "eventType": invite.event_type,
        "eventLocation": invite.event_location or invite.event.location,
        "notes": invite.notes,
    }
    return {key: value for key, value in values.items() if value}


def build_document_data(invite: Invite, payload: Dict[str, str], signature: str,
                        submitted_at: datetime) -> DocumentData:
    """
    Assembles renderer input from an invite (with event and owner loaded).

    Non-blank payload values win over the invite's own customer fields;
    payload keys outside the known set are kept in submission order.
    """
    event = invite.event
    owner = event.owner

    customer = customer_fields(invite)
    for key, value in payload.items():
        if value is not None and str(value).strip():
            customer[key] = str(value)

    return DocumentData(
        event=DocumentEvent(
            title=event.title,
            description=event.description,
            location=event.location,
            event_date=effective_event_date(invite),
            price=effective_price(invite),
            default_text=event.default_text,
            theme_color=event.theme_color,
            business_name=owner.business_name if owner else None,
            business_phone=owner.business_phone if owner else None,
            business_website=owner.business_website if owner else None,
        ),
        customer=customer,
        signature=signature or "",
        submitted_at=submitted_at,
        fields_schema=parse_fields_schema(event.fields_schema),
    )


async def _render_with_timeout(data: DocumentData) -> RenderedDocument:
    try:
        return await asyncio.wait_for(run_in_threadpool(render_document, data), config.RENDER_TIMEOUT_SECONDS)
    except asyncio.TimeoutError as exc:
        raise RenderError(f"PDF rendering timed out after {config.RENDER_TIMEOUT_SECONDS}s") from exc


async def render_and_store(data: DocumentData) -> str:
    """
    Renders off the event loop, then stores the signed PDF; raises RenderError.

    Only the render is bounded by the timeout; the file is written once it
    has returned.
    """
    rendered = await _render_with_timeout(data)
    try:
        return save_artifact(rendered.content, rendered.filename)
    except OSError as exc:
        raise RenderError(f"Could not store {rendered.filename}: {exc}") from exc


async def render_signed_pdf(data: DocumentData) -> Optional[str]:
    """
    Like render_and_store, but returns None instead of raising.

    The submission stays valid without its PDF; it can be regenerated later.
    """
    try:
        return await render_and_store(data)
    except RenderError:
        logger.exception("PDF generation failed")
        return None


async def render_preview(data: DocumentData) -> bytes:
    rendered = await _render_with_timeout(data)
    return rendered.content
