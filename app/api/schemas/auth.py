from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.api.schemas.user import CreateUserRequest
from app.models.user import UserPublic


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class RegisterRequest(CreateUserRequest):
    pass


class GoogleLoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id_token: str = Field(min_length=1)


class AuthResponse(BaseModel):
    user: UserPublic
    access_token: str  # also set as httpOnly cookie; body copy is for mobile clients
    token_type: str = "bearer"
    expires_in: int  # seconds
