import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.cookies import clear_session_cookie, set_session_cookie
from app.api.deps import get_current_user, get_optional_user
from app.api.schemas.auth import AuthResponse, GoogleLoginRequest, LoginRequest, RegisterRequest
from app.api.schemas.user import MessageResponse
from app.core.db import get_session
from app.core.exceptions import EmailAlreadyExistsError, InvalidGoogleTokenError
from app.models.user import User, UserCreate, UserPublic
from app.services.auth_service import authenticate_user, issue_session, register_user
from app.services.google_auth_service import link_google_identity, verify_google_id_token
from app.services.user_service import invalidate_tokens, user_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    try:
        user = await register_user(session, UserCreate(**body.model_dump()))
    except EmailAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists",
        )
    result = issue_session(user)
    set_session_cookie(response, result.access_token)
    return result


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    user = await authenticate_user(session, body.email, body.password)
    if not user:
        logger.info("Failed login for email=%s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    logger.info("User id=%s logged in", user.id)
    result = issue_session(user)
    set_session_cookie(response, result.access_token)
    return result


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_user: User | None = Depends(get_optional_user),
) -> MessageResponse:
    if current_user:
        logger.info("User id=%s logged out", current_user.id)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all-devices", response_model=MessageResponse)
async def logout_all_devices(
    response: Response,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    await invalidate_tokens(session, current_user)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out from all devices")


@router.get("/me", response_model=UserPublic)
async def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return user_to_public(current_user)


@router.post("/google", response_model=AuthResponse)
async def google_login(
    body: GoogleLoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    try:
        identity = await verify_google_id_token(body.id_token)
    except InvalidGoogleTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )
    try:
        user = await link_google_identity(session, identity)
    except EmailAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists",
        )
    logger.info("Google sign-in for user id=%s provider=%s", user.id, user.provider.value)
    result = issue_session(user)
    set_session_cookie(response, result.access_token)
    return result
