import uuid
from typing import Optional
from pydantic import BaseModel, EmailStr


class ProfileResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: EmailStr
    business_name: Optional[str]
    business_phone: Optional[str]
    business_website: Optional[str]

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    business_name: Optional[str] = None
    business_phone: Optional[str] = None
    business_website: Optional[str] = None
    password: Optional[str] = None
