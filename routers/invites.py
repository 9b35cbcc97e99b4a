import uuid
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from database import get_db
from models.event import Event
from models.invite import Invite
from routers.events import get_owned_event
from schemas.invite import InviteCreate, InviteUpdate, InviteResponse, SubmissionResponse
from schemas.public import MessageResponse
from utils.auth import get_current_user
from utils.documents import invite_with_relations, build_document_data, render_and_store, render_preview
from utils.exceptions import NotFoundError, PersistenceConflict
from utils.notifications import whatsapp_url, invite_message
from utils.storage import artifact_url
from utils.token import generate_invite_token

logger = logging.getLogger(__name__)
router = APIRouter()

TOKEN_ATTEMPTS = 3


def invite_url(token: str) -> str:
    return f"{config.PUBLIC_BASE_URL.rstrip('/')}/invite/{token}"


def invite_to_response(invite: Invite, event: Event) -> InviteResponse:
    url = invite_url(invite.token)
    return InviteResponse(
        id=invite.id,
        event_id=invite.event_id,
        token=invite.token,
        customer_name=invite.customer_name,
        customer_phone=invite.customer_phone,
        customer_email=invite.customer_email,
        event_type=invite.event_type,
        event_location=invite.event_location,
        notes=invite.notes,
        price=None if invite.price is None else float(invite.price),
        event_date=invite.event_date,
        status=invite.status.value,
        invite_url=url,
        whatsapp_url=whatsapp_url(invite.customer_phone, invite_message(event.title, url, invite.customer_name)),
        created_at=invite.created_at,
    )


async def get_owned_invite(invite_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Invite:
    result = await db.execute(
        invite_with_relations()
        .join(Event, Event.id == Invite.event_id)
        .where(Invite.id == invite_id, Event.user_id == user_id)
    )
    invite = result.scalars().first()
    if not invite:
        raise NotFoundError("Invite not found")
    return invite


@router.post("/events/{event_id}/invites", response_model=InviteResponse, status_code=201)
async def create_invite(
    event_id: uuid.UUID,
    data: InviteCreate,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a customer signing link for one of the owner's events."""
    event = await get_owned_event(event_id, user_id, db)

    for _ in range(TOKEN_ATTEMPTS):
        invite = Invite(event_id=event.id, token=generate_invite_token(), **data.model_dump())
        db.add(invite)
        try:
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()
            logger.warning("Invite token collision, retrying")
    else:
        raise PersistenceConflict("Could not allocate a unique invite token")

    await db.refresh(invite)
    return invite_to_response(invite, event)


@router.get("/events/{event_id}/invites", response_model=List[InviteResponse])
async def list_invites(
    event_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await get_owned_event(event_id, user_id, db)
    result = await db.execute(
        invite_with_relations().where(Invite.event_id == event.id).order_by(Invite.created_at.desc())
    )
    return [invite_to_response(invite, event) for invite in result.scalars().all()]


@router.get("/invites/{invite_id}", response_model=InviteResponse)
async def get_invite(
    invite_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await get_owned_invite(invite_id, user_id, db)
    return invite_to_response(invite, invite.event)


@router.put("/invites/{invite_id}", response_model=InviteResponse)
async def update_invite(
    invite_id: uuid.UUID,
    data: InviteUpdate,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit customer details and per-invite overrides. Status is not editable here."""
    invite = await get_owned_invite(invite_id, user_id, db)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("customer_name") is None:
        changes.pop("customer_name", None)
    for attribute, value in changes.items():
        setattr(invite, attribute, value)

    await db.commit()
    return invite_to_response(invite, invite.event)


@router.delete("/invites/{invite_id}", response_model=MessageResponse)
async def delete_invite(
    invite_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await get_owned_invite(invite_id, user_id, db)
    await db.delete(invite)
    await db.commit()
    return {"message": "Invite deleted successfully"}


@router.get("/invites/{invite_id}/submission", response_model=SubmissionResponse)
async def get_invite_submission(
    invite_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await get_owned_invite(invite_id, user_id, db)
    submission = invite.submission
    if not submission:
        raise NotFoundError("Submission not found")

    return SubmissionResponse(
        invite_id=invite.id,
        payload=submission.payload or {},
        signature_png=submission.signature_png,
        signed_pdf_path=submission.signed_pdf_path,
        pdf_url=artifact_url(submission.signed_pdf_path) if submission.signed_pdf_path else None,
        submitted_at=submission.submitted_at,
    )


@router.post("/invites/{invite_id}/regenerate-pdf")
async def regenerate_pdf(
    invite_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Re-renders the signed PDF of a stored submission, e.g. after a failed render."""
    invite = await get_owned_invite(invite_id, user_id, db)
    submission = invite.submission
    if not submission:
        raise NotFoundError("Submission not found")

    data = build_document_data(invite, submission.payload or {}, submission.signature_png, submission.submitted_at)
    filename = await render_and_store(data)

    submission.signed_pdf_path = filename
    await db.commit()
    logger.info("Regenerated PDF for invite %s", invite.id)
    return {"pdfUrl": artifact_url(filename)}


@router.get("/invites/{invite_id}/preview")
async def preview_pdf(
    invite_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Renders the document as it would be signed now, without storing it."""
    invite = await get_owned_invite(invite_id, user_id, db)
    submission = invite.submission
    if submission:
        data = build_document_data(invite, submission.payload or {}, submission.signature_png,
                                   submission.submitted_at)
    else:
        data = build_document_data(invite, {}, "", datetime.now(timezone.utc))

    content = await render_preview(data)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline; filename=preview.pdf"},
    )
