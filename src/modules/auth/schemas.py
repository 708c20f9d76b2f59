import uuid
from enum import Enum as PyEnum

from pydantic import EmailStr, Field, field_validator

from src.core.schema import BaseSchema, RequestSchema
from src.core.utils.validation import EMAIL_MAX_LENGTH, is_valid_password


class AuthAction(str, PyEnum):
    SIGNIN = "signin"
    SIGNUP = "signup"


class AuthRequest(RequestSchema):
    action: AuthAction
    email: EmailStr
    password: str = Field(..., description="Password must be 8-128 characters long")

    @field_validator("email")
    def validate_email(cls, v):
        if len(v) > EMAIL_MAX_LENGTH:
            raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
        return v

    @field_validator("password")
    def validate_password_length(cls, v):
        if not is_valid_password(v):
            raise ValueError("Password must be between 8 and 128 characters")
        return v


# Responses


class AuthUser(BaseSchema):
    id: uuid.UUID
    email: str


class SessionResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: int


class AuthResponse(BaseSchema):
    user: AuthUser
    session: SessionResponse
