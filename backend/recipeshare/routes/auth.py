"""
RecipeShare Backend — Auth Route Handlers
===========================================

What:  POST /api/signup and POST /api/login.
Who:   Called by the dashboard's sign-up and login forms.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recipeshare.database import get_db_session
from recipeshare.schemas.auth import Credentials, LoginResponse
from recipeshare.schemas.common import ErrorResponse, MessageResponse
from recipeshare.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/signup",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing fields or username taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.signup(db, credentials.username, credentials.password)
    return MessageResponse(message="User created successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Missing fields", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Sign in and receive an access token",
    description="Returns a JWT valid for 24 hours plus the user's ID.",
)
async def login(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await auth_service.login(db, credentials.username, credentials.password)
