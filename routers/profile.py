import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from schemas.profile import ProfileResponse, ProfileUpdate
from utils.auth import get_current_user, hash_password
from utils.exceptions import NotFoundError

router = APIRouter()


async def _load_user(user_id: uuid.UUID, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current owner's business profile."""
    return await _load_user(user_id, db)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    user_id: uuid.UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the business details printed on signed documents."""
    user = await _load_user(user_id, db)

    if profile_data.name is not None:
        user.name = profile_data.name
    if profile_data.business_name is not None:
        user.business_name = profile_data.business_name
    if profile_data.business_phone is not None:
        user.business_phone = profile_data.business_phone
    if profile_data.business_website is not None:
        user.business_website = profile_data.business_website
    if profile_data.password is not None:
        user.hashed_password = hash_password(profile_data.password)

    await db.commit()
    await db.refresh(user)
    return user
