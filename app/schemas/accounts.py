"""
Account Schemas
===============

Registration, login, password and settings bodies, plus the admin toggles.
JSON keys follow the web client (camelCase where it sends camelCase).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from app.enums import Theme

_EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)


class RegisterRequest(_Body):
    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(_Body):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(_Body):
    username: str = Field(..., min_length=1)
    message: Optional[str] = None
    remembered_password: Optional[str] = Field(default=None, alias="rememberedPassword")


class ChangePasswordRequest(_Body):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=6, alias="newPassword")


class UsernameChange(_Body):
    new_username: str = Field(..., min_length=3, max_length=30, alias="newUsername")


class ThemeChange(_Body):
    theme: Theme


class BanToggle(_Body):
    banned: StrictBool


class RestrictToggle(_Body):
    restricted: StrictBool


class ApprovePasswordReset(_Body):
    new_password: str = Field(..., min_length=6, alias="newPassword")
