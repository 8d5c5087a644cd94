from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_session
from app.models.user import User
from app.services.auth_service import resolve_token_user

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """An explicit Authorization: Bearer header wins over the session cookie."""
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return request.cookies.get(settings.cookie_name)


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    token: str | None = Depends(extract_token),
) -> User:
    if not token:
        raise _unauthorized("Not authenticated")
    user = await resolve_token_user(session, token)
    if not user:
        raise _unauthorized("Invalid or expired token")
    return user


async def get_optional_user(
    session: AsyncSession = Depends(get_session),
    token: str | None = Depends(extract_token),
) -> User | None:
    if not token:
        return None
    return await resolve_token_user(session, token)


def ensure_self(current_user: User, user_id: int, action: str) -> None:
    """Callers may only act on their own account."""
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own account",
        )
