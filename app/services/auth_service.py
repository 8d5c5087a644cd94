import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas.auth import AuthResponse
from app.core.config import settings
from app.core.security import create_access_token, decode_access_token, verify_password
from app.models.user import User, UserCreate
from app.services.user_service import create_user, get_user, get_user_by_email, user_to_public

logger = logging.getLogger(__name__)


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(session, email)
    if not user or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def register_user(session: AsyncSession, data: UserCreate) -> User:
    user = await create_user(session, data)
    logger.info("Registered user id=%s", user.id)
    return user


def issue_session(user: User) -> AuthResponse:
    return AuthResponse(
        user=user_to_public(user),
        access_token=create_access_token(user),
        expires_in=settings.access_token_max_age,
    )


async def resolve_token_user(session: AsyncSession, token: str) -> User | None:
    """Return the token's user if the signature, expiry and token_version all check out."""
    claims = decode_access_token(token)
    if claims is None:
        return None
    user = await get_user(session, claims.user_id)
    if user is None:
        return None
    if claims.token_version != user.token_version:
        logger.debug(
            "Stale token for user id=%s (token tv=%d, current=%d)",
            user.id,
            claims.token_version,
            user.token_version,
        )
        return None
    return user
