import re
from pydantic import EmailStr, Field, field_validator, ValidationInfo
from typing import Literal, Optional
from datetime import datetime

from app.schemas.base import CamelModel


class UserSignup(CamelModel):
    name: str = Field(..., min_length=2, max_length=80)
    department: str = Field(..., min_length=2, max_length=80)
    year: Literal[1, 2, 3, 4]
    roll_number: str = Field(..., min_length=2, max_length=40)
    email: EmailStr
    mobile_number: str
    password: str = Field(..., min_length=8, max_length=72)
    confirm_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("name", "department", "roll_number", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"\d{10}", v):
            raise ValueError("Mobile number must be exactly 10 digits")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain an uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain a lowercase letter")
        if not re.search(r"[0-9]", v):
            raise ValueError("Password must contain a number")
        if not re.search(r"[^A-Za-z0-9]", v):
            raise ValueError("Password must contain a special character")
        return v

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Passwords do not match")
        return v


class UserLogin(CamelModel):
    identifier: str = Field(..., min_length=1)  # email or roll number
    password: str = Field(..., min_length=1)


class UserSummary(CamelModel):
    id: str
    name: str
    year: int
    email: str
    roll_number: str


class UserResponse(CamelModel):
    id: str
    name: str
    department: str
    year: int
    roll_number: str
    email: str
    mobile_number: str
    joined_community: bool
    reputation_score: int
    contribution_count: int
    accepted_answers_count: int
    created_at: Optional[datetime] = None


class SignupResponse(CamelModel):
    message: str = "Signup successful"
    user: UserSummary


class LoginResponse(CamelModel):
    message: str = "Login successful"
    access_token: str
    user: UserResponse


class AccessTokenResponse(CamelModel):
    access_token: str


class MeResponse(CamelModel):
    user: UserResponse


class MessageResponse(CamelModel):
    message: str


class MembershipResponse(CamelModel):
    joined_community: bool
