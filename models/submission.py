import uuid
from sqlalchemy import Column, String, Text, JSON, ForeignKey, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class Submission(Base):
    __tablename__ = "invite_submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    # unique: the upsert in utils.submissions conflicts on this column
    invite_id = Column(Uuid, ForeignKey("invites.id", ondelete="CASCADE"), unique=True, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    signature_png = Column(Text, nullable=True)  # data URI
    signed_pdf_path = Column(String(500), nullable=True)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    invite = relationship("Invite", back_populates="submission")
