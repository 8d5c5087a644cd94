import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from app.models.user import AuthProvider, Gender

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT_OR_SPECIAL = re.compile(r"[\d\W]")

PASSWORD_RULE_MESSAGE = "Password must contain uppercase, lowercase, number/special character"


def check_password_strength(value: str) -> str:
    if not (_UPPER.search(value) and _LOWER.search(value) and _DIGIT_OR_SPECIAL.search(value)):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


Password = Annotated[str, Field(min_length=8, max_length=100), AfterValidator(check_password_strength)]
Name = Annotated[str, Field(min_length=1, max_length=100)]
Phone = Annotated[str, Field(max_length=20)]


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    first_name: Name
    last_name: Name
    email: EmailStr
    password: Password
    phone: Phone | None = None
    gender: Gender | None = None


class UpdateUserRequest(BaseModel):
    """Partial profile update; password changes go through change-password."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    first_name: Name | None = None
    last_name: Name | None = None
    email: EmailStr | None = None
    phone: Phone | None = None
    gender: Gender | None = None


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_password: str | None = None  # not needed when setting a first password
    new_password: Password


class ChangePasswordResponse(BaseModel):
    message: str
    access_token: str  # replaces the caller's now-invalidated token


class PasswordStatus(BaseModel):
    has_password: bool
    provider: AuthProvider


class UserStats(BaseModel):
    total: int
    active: int
    inactive: int


class MessageResponse(BaseModel):
    message: str
