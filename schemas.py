from pydantic import BaseModel, EmailStr
from typing import Any, Optional


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    password_confirmation: Optional[str] = None
    nickname: Optional[str] = None


class UserLogin(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    nickname: Optional[str] = None
    # blank password = keep the current one
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class UserOut(BaseModel):
    id: str
    email: str
    nickname: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


class QuoteOut(BaseModel):
    quote_id: int
    quote: str


class CreateShareRequest(BaseModel):
    # coerced by share_routes.parse_quote_id; unusable values get {"error": "Invalid quote"}
    quote_id: Any = None


class CreateShareResponse(BaseModel):
    token: str
    url: str
    expires_at: str  # "YYYY-MM-DD HH:MM" in the display timezone


class SharePageOut(BaseModel):
    quote_id: int
    quote: str
    shared: bool
    expired: bool
    sharer: Optional[str] = None
    expired_on: Optional[str] = None  # "YYYY-MM-DD", only for expired links
