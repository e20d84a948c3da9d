from pydantic import BaseModel, Field
from typing import Optional, Union
from datetime import datetime, timezone
from uuid import uuid4


class DemoChatRequest(BaseModel):
    message: Optional[str] = None
    conversationId: Optional[str] = None


class DemoChatResponse(BaseModel):
    success: bool = True
    conversationId: str
    response: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirmPassword: Optional[str] = None
    age: Optional[Union[str, int]] = None
    gender: Optional[str] = None


class SignupUser(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex[:9])
    name: str
    email: str
    age: int
    gender: str
    createdAt: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SignupResponse(BaseModel):
    success: bool = True
    message: str = "Account created successfully"
    user: SignupUser
