import re
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

import config
from database import get_db
from models.invite import Invite
from schemas.public import (
    PublicEvent, PublicInvite, PublicInviteResponse,
    SubmitRequest, SubmitResponse, SendEmailRequest, MessageResponse,
)
from utils.documents import (
    invite_with_relations, build_document_data, effective_event_date, effective_price, render_signed_pdf,
)
from utils.email import send_email
from utils.exceptions import NotFoundError, ValidationError
from utils.fields import parse_fields_schema, public_fields, validate_submission
from utils.invite_state import mark_viewed, mark_signed, mark_returned
from utils.notifications import whatsapp_url, signed_message, signed_document_email
from utils.signature import rasterize_strokes
from utils.storage import artifact_url, resolve_artifact
from utils.submissions import upsert_submission

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_invite_by_token(token: str, db: AsyncSession) -> Invite:
    # Same outcome for malformed and unknown tokens
    result = await db.execute(invite_with_relations().where(Invite.token == token))
    invite = result.scalars().first()
    if not invite:
        raise NotFoundError()
    return invite


def _attachment_name(customer_name: str) -> str:
    safe = re.sub(r"[^\w\-]+", "_", customer_name or "").strip("_") or "customer"
    return f"signed_document_{safe}.pdf"


@router.get("/invite/{token}", response_model=PublicInviteResponse)
async def view_invite(token: str, db: AsyncSession = Depends(get_db)):
    """Customer-facing lookup. The first view moves the invite to VIEWED."""
    invite = await get_invite_by_token(token, db)

    if mark_viewed(invite):
        await db.commit()

    event = invite.event
    owner = event.owner
    fields = parse_fields_schema(event.fields_schema)

    return PublicInviteResponse(
        event=PublicEvent(
            title=event.title,
            description=event.description,
            location=invite.event_location or event.location,
            event_date=effective_event_date(invite),
            price=effective_price(invite),
            default_text=event.default_text,
            theme_color=event.theme_color or config.DEFAULT_THEME_COLOR,
            fields_schema=fields,
            business_name=owner.business_name if owner else None,
            business_phone=owner.business_phone if owner else None,
            business_website=owner.business_website if owner else None,
        ),
        invite=PublicInvite(
            customer_name=invite.customer_name,
            customer_email=invite.customer_email,
            customer_phone=invite.customer_phone,
            event_type=invite.event_type,
            event_location=invite.event_location,
            notes=invite.notes,
            status=invite.status.value,
        ),
        form_fields=public_fields(fields),
        already_submitted=invite.submission is not None,
    )


@router.post("/invite/{token}/submit", response_model=SubmitResponse)
async def submit_invite(token: str, body: SubmitRequest, db: AsyncSession = Depends(get_db)):
    """
    Stores the customer's answers and signature, then renders the signed PDF.

    Resubmission overwrites the previous submission. The submission and the
    SIGNED transition are committed together; a failed render leaves
    pdfUrl null instead of failing the request.
    """
    invite = await get_invite_by_token(token, db)
    event = invite.event

    signature = body.signature
    if not signature and body.strokes:
        signature = rasterize_strokes(body.strokes)

    validate_submission(parse_fields_schema(event.fields_schema), body.payload, signature)

    submitted_at = datetime.now(timezone.utc)
    submission = await upsert_submission(db, invite.id, body.payload, signature, submitted_at)
    mark_signed(invite)
    await db.commit()

    data = build_document_data(invite, body.payload, signature, submitted_at)
    filename = await render_signed_pdf(data)
    if filename:
        submission.signed_pdf_path = filename
        await db.commit()

    owner = event.owner
    customer_name = data.customer.get("name", invite.customer_name)
    logger.info("Invite %s signed (pdf=%s)", invite.id, filename or "none")

    return SubmitResponse(
        message="Form submitted successfully",
        pdf_url=artifact_url(filename) if filename else None,
        owner_email=owner.email,
        whatsapp_url=whatsapp_url(owner.business_phone, signed_message(event.title, customer_name, submitted_at)),
    )


@router.post("/invite/{token}/send-email", response_model=MessageResponse)
async def send_signed_document(token: str, body: SendEmailRequest, db: AsyncSession = Depends(get_db)):
    """Emails the signed PDF to the given address and marks the invite RETURNED."""
    invite = await get_invite_by_token(token, db)
    submission = invite.submission
    if not submission or not submission.signed_pdf_path:
        raise ValidationError({"document": ["No signed document available for this invite"]})

    path = resolve_artifact(submission.signed_pdf_path)
    event = invite.event
    customer_name = (submission.payload or {}).get("name") or invite.customer_name

    await run_in_threadpool(
        send_email,
        str(body.recipient_email),
        f"מסמך חתום - {event.title}",
        signed_document_email(event.title, customer_name, submission.submitted_at),
        [(_attachment_name(customer_name), path)],
    )

    mark_returned(invite)
    await db.commit()
    return {"message": "Email sent successfully"}


@router.get("/uploads/{filename}")
async def download_artifact(filename: str):
    path = resolve_artifact(filename)
    return FileResponse(path, media_type="application/pdf", filename=filename)
