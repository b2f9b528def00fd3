"""Auth Pydantic schemas for request / response validation."""


from pydantic import BaseModel, ConfigDict, field_validator

from restapi.common.validators import (
    validate_email,
    validate_login_password,
    validate_password,
    validate_username,
)


# ── Requests ────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password(v)


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_login_password(v)


# ── Responses ───────────────────────────────────────────────────────

class UserSafeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSafeResponse


class ProtectedResponse(BaseModel):
    user_id: int
    username: str
    email: str
    message: str = "You have successfully accessed a protected resource"
