"""Accounts Service - request/response models.

Request fields are all optional at the parsing layer; presence and format
rules are applied by ``accounts.validation`` so every failure comes back in
the same field -> messages envelope.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    token: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class CreateUserRequest(RegisterRequest):
    pass


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class TokenVerifyRequest(BaseModel):
    token: str


class UserOut(BaseModel):
    """Public view of a user; the password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    user: Optional[UserOut] = None
    message: str


class MessageResponse(BaseModel):
    message: str


class ValidationErrorResponse(BaseModel):
    message: str
    errors: Dict[str, List[str]]


class TokenVerifyResponse(BaseModel):
    valid: bool
    user_id: str
    email: str
    name: str


class HealthResponse(BaseModel):
    status: str
    service: str
