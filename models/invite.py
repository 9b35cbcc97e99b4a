import uuid
import enum
from sqlalchemy import Column, String, Text, Date, Numeric, Enum, ForeignKey, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class InviteStatus(enum.Enum):
    CREATED = "CREATED"
    SENT = "SENT"  # reserved, nothing moves an invite here yet
    VIEWED = "VIEWED"
    SIGNED = "SIGNED"
    RETURNED = "RETURNED"


class Invite(Base):
    __tablename__ = "invites"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)

    # Per-invite overrides, falling back to the event's own values
    event_type = Column(String(255), nullable=True)
    event_location = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    event_date = Column(Date, nullable=True)

    status = Column(Enum(InviteStatus), nullable=False, default=InviteStatus.CREATED, index=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="invites")
    submission = relationship("Submission", back_populates="invite", uselist=False, cascade="all, delete-orphan")
