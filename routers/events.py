import uuid
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.event import Event
from schemas.event import EventCreate, EventUpdate, EventResponse
from schemas.public import MessageResponse
from utils.auth import get_current_user
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_owned_event(event_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id, Event.user_id == user_id))
    event = result.scalars().first()
    if not event:
        raise NotFoundError("Event not found")
    return event


def _dump_fields(fields) -> list:
    return [field.model_dump(mode="json") for field in fields]


@router.post("/", response_model=EventResponse, status_code=201)
async def create_event(
    data: EventCreate,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create an agreement template."""
    event = Event(
        user_id=user_id,
        title=data.title,
        description=data.description,
        location=data.location,
        event_date=data.event_date,
        price=data.price,
        default_text=data.default_text,
        theme_color=data.theme_color,
        fields_schema=_dump_fields(data.fields_schema),
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info("Owner %s created event %s", user_id, event.id)
    return event


@router.get("/", response_model=List[EventResponse])
async def list_events(
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Event).where(Event.user_id == user_id).order_by(Event.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_owned_event(event_id, user_id, db)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: uuid.UUID,
    data: EventUpdate,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await get_owned_event(event_id, user_id, db)

    changes = data.model_dump(exclude_unset=True)
    if "fields_schema" in changes:
        changes["fields_schema"] = _dump_fields(data.fields_schema or [])
    if changes.get("title") is None:
        changes.pop("title", None)
    if changes.get("theme_color") is None:
        changes.pop("theme_color", None)
    for attribute, value in changes.items():
        setattr(event, attribute, value)

    await db.commit()
    await db.refresh(event)
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a template together with its invites and submissions."""
    event = await get_owned_event(event_id, user_id, db)
    await db.delete(event)
    await db.commit()
    return {"message": "Event deleted successfully"}
