import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from schemas.user import UserCreate, UserResponse, UserLogin, TokenResponse
from utils.auth import hash_password, create_access_token, verify_password
from utils.exceptions import PersistenceConflict

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_user_by_email(email: str, db: AsyncSession):
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Creates a business owner account."""
    if await get_user_by_email(user_data.email, db):
        raise PersistenceConflict("User already exists")

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        business_name=user_data.business_name,
        business_phone=user_data.business_phone,
        business_website=user_data.business_website,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        await db.rollback()
        raise PersistenceConflict("User already exists")

    logger.info("Registered owner %s", new_user.id)
    return {"message": "User registered successfully. Please proceed to login."}


@router.post("/login", response_model=TokenResponse)
async def login(user_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Handles owner login and returns a JWT access token."""
    user = await get_user_by_email(user_data.email, db)

    if not user or not verify_password(user_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer"}
