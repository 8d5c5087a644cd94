from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.cookies import set_session_cookie
from app.api.deps import ensure_self, get_current_user, get_session
from app.api.schemas.user import (
    ChangePasswordRequest,
    ChangePasswordResponse,
    CreateUserRequest,
    PasswordStatus,
    UpdateUserRequest,
    UserStats,
)
from app.core.exceptions import EmailAlreadyExistsError, InvalidCurrentPasswordError
from app.core.security import create_access_token
from app.models.user import User, UserCreate, UserPublic, UserUpdate
from app.services.user_service import (
    change_password,
    create_user,
    delete_user,
    get_user,
    list_users,
    password_status,
    set_active,
    update_user,
    user_stats,
    user_to_public,
)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_user)],
)


def _email_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Email already exists",
    )


async def _get_or_404(session: AsyncSession, user_id: int) -> User:
    user = await get_user(session, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    return user


@router.get("", response_model=list[UserPublic])
async def list_all_users(
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
) -> list[UserPublic]:
    users = await list_users(session, limit=limit, offset=offset)
    return [user_to_public(u) for u in users]


@router.get("/active", response_model=list[UserPublic])
async def list_active_users(
    session: AsyncSession = Depends(get_session),
) -> list[UserPublic]:
    users = await list_users(session, active_only=True)
    return [user_to_public(u) for u in users]


@router.get("/stats", response_model=UserStats)
async def get_user_stats(session: AsyncSession = Depends(get_session)) -> UserStats:
    return UserStats(**await user_stats(session))


@router.get("/{user_id}", response_model=UserPublic)
async def get_one_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
) -> UserPublic:
    return user_to_public(await _get_or_404(session, user_id))


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_one_user(
    body: CreateUserRequest,
    session: AsyncSession = Depends(get_session),
) -> UserPublic:
    try:
        user = await create_user(session, UserCreate(**body.model_dump()))
    except EmailAlreadyExistsError:
        raise _email_conflict()
    return user_to_public(user)


@router.patch("/{user_id}", response_model=UserPublic)
async def update_one_user(
    user_id: int,
    body: UpdateUserRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> UserPublic:
    ensure_self(current_user, user_id, "update")
    user = await _get_or_404(session, user_id)
    try:
        user = await update_user(session, user, UserUpdate(**body.model_dump(exclude_unset=True)))
    except EmailAlreadyExistsError:
        raise _email_conflict()
    return user_to_public(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_one_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    ensure_self(current_user, user_id, "delete")
    user = await _get_or_404(session, user_id)
    await delete_user(session, user)


@router.post("/{user_id}/deactivate", response_model=UserPublic)
async def deactivate_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> UserPublic:
    ensure_self(current_user, user_id, "deactivate")
    user = await _get_or_404(session, user_id)
    return user_to_public(await set_active(session, user, False))


@router.post("/{user_id}/activate", response_model=UserPublic)
async def activate_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> UserPublic:
    ensure_self(current_user, user_id, "activate")
    user = await _get_or_404(session, user_id)
    return user_to_public(await set_active(session, user, True))


@router.post("/{user_id}/change-password", response_model=ChangePasswordResponse)
async def change_user_password(
    user_id: int,
    body: ChangePasswordRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> ChangePasswordResponse:
    """Change (or, for Google-only accounts, set) the password.

    Every token issued before the change stops working; the caller gets a
    fresh session cookie so this browser stays signed in.
    """
    ensure_self(current_user, user_id, "change the password of")
    user = await _get_or_404(session, user_id)
    try:
        user = await change_password(session, user, body.current_password, body.new_password)
    except InvalidCurrentPasswordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    access_token = create_access_token(user)
    set_session_cookie(response, access_token)
    return ChangePasswordResponse(message="Password changed successfully", access_token=access_token)


@router.get("/{user_id}/password-status", response_model=PasswordStatus)
async def get_password_status(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PasswordStatus:
    ensure_self(current_user, user_id, "check the password status of")
    user = await _get_or_404(session, user_id)
    return PasswordStatus(**password_status(user))
