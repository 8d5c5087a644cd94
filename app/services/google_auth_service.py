import logging
from dataclasses import dataclass

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import EmailAlreadyExistsError, InvalidGoogleTokenError
from app.models.user import AuthProvider, User
from app.services.user_service import get_user_by_email, normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoogleIdentity:
    google_id: str
    email: str
    email_verified: bool
    first_name: str
    last_name: str


def _verify_with_google(id_token: str) -> dict:
    """Check signature, expiry, issuer and audience against Google's public certs.

    Blocking (fetches the certs with requests); raises ValueError or
    GoogleAuthError when the token is rejected.
    """
    return google_id_token.verify_oauth2_token(
        id_token,
        google_requests.Request(),
        audience=settings.google_client_id,
    )


async def verify_google_id_token(id_token: str) -> GoogleIdentity:
    if not settings.google_enabled:
        logger.warning("Google sign-in attempted but GOOGLE_CLIENT_ID is not set")
        raise InvalidGoogleTokenError("Google sign-in is not configured")
    try:
        info = await run_in_threadpool(_verify_with_google, id_token)
    except (ValueError, GoogleAuthError) as e:
        logger.info("Google ID token rejected: %s", e)
        raise InvalidGoogleTokenError("Invalid Google token") from e
    email = info.get("email")
    sub = info.get("sub")
    if not email or not sub:
        raise InvalidGoogleTokenError("Invalid Google token payload")
    # an unverified address must never take over the local account that owns it
    if info.get("email_verified") is not True:
        logger.info("Google sign-in refused for unverified email (sub=%s)", sub)
        raise InvalidGoogleTokenError("Google email is not verified")
    return GoogleIdentity(
        google_id=str(sub),
        email=normalize_email(email),
        email_verified=True,
        first_name=info.get("given_name") or "",
        last_name=info.get("family_name") or "",
    )


async def get_user_by_google_id(session: AsyncSession, google_id: str) -> User | None:
    result = await session.execute(select(User).where(User.google_id == google_id))
    return result.scalar_one_or_none()


async def _flush_identity(session: AsyncSession, identity: GoogleIdentity) -> User | None:
    """Flush pending changes; on a unique-key collision return the row that won.

    Two first sign-ins for the same Google account can race past the lookups;
    the loser gets the winner's user. A collision with an account that is not
    linked to this Google id is an email conflict.
    """
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        winner = await get_user_by_google_id(session, identity.google_id)
        if winner is None:
            raise EmailAlreadyExistsError(identity.email) from e
        logger.info("Concurrent Google sign-in resolved to user id=%s", winner.id)
        return winner
    return None


async def link_google_identity(session: AsyncSession, identity: GoogleIdentity) -> User:
    """Find-or-create the local user for a verified Google identity.

    An existing account with the same email gets the Google id attached;
    its provider becomes "both" when it already has a password.
    """
    user = await get_user_by_google_id(session, identity.google_id)
    if user:
        return user
    user = await get_user_by_email(session, identity.email)
    if user:
        if not user.google_id:
            user.google_id = identity.google_id
            user.provider = AuthProvider.both if user.hashed_password else AuthProvider.google
            user.touch()
            session.add(user)
            winner = await _flush_identity(session, identity)
            if winner:
                return winner
            await session.refresh(user)
            logger.info("Linked Google identity to user id=%s (provider=%s)", user.id, user.provider.value)
        return user
    local_part = identity.email.split("@")[0]
    user = User(
        email=identity.email,
        google_id=identity.google_id,
        first_name=identity.first_name or local_part,
        last_name=identity.last_name or local_part,
        hashed_password=None,
        provider=AuthProvider.google,
    )
    session.add(user)
    winner = await _flush_identity(session, identity)
    if winner:
        return winner
    await session.refresh(user)
    logger.info("Created Google user id=%s", user.id)
    return user
