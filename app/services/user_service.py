import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EmailAlreadyExistsError, InvalidCurrentPasswordError
from app.core.security import hash_password, verify_password
from app.models.user import AuthProvider, User, UserCreate, UserPublic, UserUpdate

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user, from_attributes=True)


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_users(
    session: AsyncSession,
    limit: int | None = None,
    offset: int = 0,
    active_only: bool = False,
) -> list[User]:
    q = select(User).order_by(User.id)
    if active_only:
        q = q.where(User.is_active == True)  # noqa: E712
    if offset:
        q = q.offset(offset)
    if limit is not None:
        q = q.limit(limit)
    result = await session.execute(q)
    return list(result.scalars().all())


async def user_stats(session: AsyncSession) -> dict[str, int]:
    total = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    active = (
        await session.execute(
            select(func.count()).select_from(User).where(User.is_active == True)  # noqa: E712
        )
    ).scalar_one()
    return {"total": total, "active": active, "inactive": total - active}


async def _flush_unique(session: AsyncSession, email: str) -> None:
    """Flush pending changes; a unique-email race surfaces as EmailAlreadyExistsError."""
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise EmailAlreadyExistsError(email) from e


async def create_user(session: AsyncSession, data: UserCreate) -> User:
    email = normalize_email(data.email)
    if await get_user_by_email(session, email):
        raise EmailAlreadyExistsError(email)
    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=email,
        hashed_password=hash_password(data.password),
        phone=data.phone,
        gender=data.gender,
        provider=AuthProvider.local,
    )
    session.add(user)
    await _flush_unique(session, email)
    await session.refresh(user)
    logger.info("Created user id=%s email=%s", user.id, user.email)
    return user


async def update_user(session: AsyncSession, user: User, data: UserUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"] is not None:
        email = normalize_email(changes["email"])
        if email != user.email:
            existing = await get_user_by_email(session, email)
            if existing and existing.id != user.id:
                raise EmailAlreadyExistsError(email)
        changes["email"] = email
    for field, value in changes.items():
        if field in ("first_name", "last_name", "email") and value is None:
            continue  # required columns cannot be cleared
        setattr(user, field, value)
    user.touch()
    session.add(user)
    await _flush_unique(session, user.email)
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    user_id = user.id
    await session.delete(user)
    await session.flush()
    logger.info("Deleted user id=%s", user_id)


async def set_active(session: AsyncSession, user: User, active: bool) -> User:
    user.is_active = active
    user.touch()
    session.add(user)
    await session.flush()
    await session.refresh(user)
    logger.info("User id=%s %s", user.id, "activated" if active else "deactivated")
    return user


async def invalidate_tokens(session: AsyncSession, user: User) -> User:
    """Bump token_version so every previously issued token stops validating."""
    user.token_version += 1
    user.touch()
    session.add(user)
    await session.flush()
    await session.refresh(user)
    logger.info("Invalidated tokens for user id=%s (token_version=%d)", user.id, user.token_version)
    return user


async def change_password(
    session: AsyncSession,
    user: User,
    current_password: str | None,
    new_password: str,
) -> User:
    if user.hashed_password:
        if not current_password or not verify_password(current_password, user.hashed_password):
            raise InvalidCurrentPasswordError("Current password is incorrect")
    else:
        # Google-only account setting its first password
        user.provider = AuthProvider.both
    user.hashed_password = hash_password(new_password)
    return await invalidate_tokens(session, user)


def password_status(user: User) -> dict:
    return {"has_password": user.has_password, "provider": user.provider}
