import uuid
from sqlalchemy import Column, String, Text, Date, Numeric, JSON, ForeignKey, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

import config
from models.base import Base


class Event(Base):
    """A reusable agreement template owned by a business user."""

    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    event_date = Column(Date, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    default_text = Column(Text, nullable=True)  # multi-paragraph terms, line breaks preserved
    theme_color = Column(String(7), nullable=False, default=config.DEFAULT_THEME_COLOR)
    fields_schema = Column(JSON, nullable=False, default=list)  # ordered FieldDefinition dicts
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="events")
    invites = relationship("Invite", back_populates="event", cascade="all, delete-orphan")
