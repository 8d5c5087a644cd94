from app.models.user import AuthProvider, Gender, User, UserCreate, UserPublic, UserUpdate

__all__ = [
    "AuthProvider",
    "Gender",
    "User",
    "UserCreate",
    "UserPublic",
    "UserUpdate",
]
