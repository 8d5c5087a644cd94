from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Aware UTC for TIMESTAMP WITH TIME ZONE columns."""
    return datetime.now(UTC)


class AuthProvider(str, Enum):
    local = "local"
    google = "google"
    both = "both"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class UserBase(SQLModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    phone: str | None = Field(default=None, max_length=20)
    gender: Gender | None = None
    provider: AuthProvider = AuthProvider.local


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str | None = None  # None for Google-only users
    google_id: str | None = Field(default=None, unique=True, index=True)
    # Bumped to revoke every token issued before the change
    token_version: int = 0
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)

    def touch(self) -> None:
        self.updated_at = _utc_now()


class UserCreate(SQLModel):
    first_name: str
    last_name: str
    email: str
    password: str
    phone: str | None = None
    gender: Gender | None = None


class UserUpdate(SQLModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    gender: Gender | None = None


class UserPublic(SQLModel):
    id: int
    first_name: str
    last_name: str
    email: str
    is_active: bool
    provider: AuthProvider
    phone: str | None = None
    gender: Gender | None = None
    created_at: datetime
    updated_at: datetime
