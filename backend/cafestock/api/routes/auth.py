"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from cafestock.core.rate_limit import limiter
from cafestock.core.security import create_access_token
from cafestock.db.session import DbSession
from cafestock.schemas.archive import MessageResponse
from cafestock.schemas.auth import SigninRequest, Token
from cafestock.schemas.user import BaristaCreate, UserResponse
from cafestock.services.team_service import TeamService

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def signup(request: Request, body: BaristaCreate, db: DbSession):
    """Register a barista account. Manager accounts are never self-registered."""
    user = TeamService(db).register_barista(body.username, body.password)
    logger.info(f"Sign-up: barista {user.id} registered")
    return {"message": "Account created successfully"}


@router.post("/signin", response_model=Token)
@limiter.limit("5/minute")
def signin(request: Request, body: SigninRequest, db: DbSession):
    """Sign in with username, password and the role the client expects."""
    user = TeamService(db).authenticate(body.username, body.password, body.role)
    if user is None:
        logger.warning(f"Failed sign-in for username from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role.value}
    )
    logger.info(f"User {user.id} signed in as {user.role.value}")
    return Token(access_token=token, user=UserResponse.model_validate(user))
