from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from coinmatrix.core.dependencies import DBDependency
from coinmatrix.core.responses import send_created, send_success
from coinmatrix.core.security import (
    CurrentUser,
    Identity,
    create_access_token,
    get_password_hash,
    verify_password,
)
from coinmatrix.db.models.user import User
from coinmatrix.db.schemas.user import (
    LoginRequest,
    SignupRequest,
    Token,
)
from coinmatrix.utils.logging import get_logger

logger = get_logger()

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(user_data: SignupRequest, db: DBDependency):
    existing_user = await db.execute(
        select(User).where(
            (User.username == user_data.username) | (User.email == user_data.email)
        )
    )
    if existing_user.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already exists.",
        )

    new_user = User(
        username=user_data.username,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
    )
    db.add(new_user)
    await db.flush()
    identity = Identity(id=new_user.id, username=new_user.username)
    await db.commit()

    logger.info(f"New user signed up: {identity.username}")
    token = Token(token=create_access_token(identity), username=identity.username)
    return send_created(message="User created successfully!", data=token)


@router.post("/login")
async def login(form_data: LoginRequest, db: DBDependency):
    result = await db.execute(select(User).where(User.username == form_data.username))
    db_user = result.scalar_one_or_none()
    if not db_user or not verify_password(form_data.password, db_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials."
        )

    identity = Identity(id=db_user.id, username=db_user.username)
    token = Token(token=create_access_token(identity), username=identity.username)
    return send_success(message="Logged in successfully!", data=token)


@router.get("/me")
async def read_users_me(current_user: CurrentUser):
    return send_success(data=current_user)
