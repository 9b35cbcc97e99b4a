import uuid
from sqlalchemy import Column, String, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    business_name = Column(String(255), nullable=True)
    business_phone = Column(String(50), nullable=True)
    business_website = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    events = relationship("Event", back_populates="owner", cascade="all, delete")
