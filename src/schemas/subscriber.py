"""Newsletter subscription schemas."""

from pydantic import BaseModel, EmailStr, Field


class SubscribeRequest(BaseModel):
    email: EmailStr = Field(..., max_length=255)


class SubscribeResponse(BaseModel):
    message: str
    subscribed: bool = True
