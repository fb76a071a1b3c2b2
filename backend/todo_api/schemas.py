from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class RegisterIn(BaseModel):
    username: str
    email: str
    password: str


class LoginIn(BaseModel):
    email: str
    password: str


class TodoCreate(BaseModel):
    title: str
    description: str | None = None
    is_completed: bool | None = None


# omitted fields keep their stored value
class TodoUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    is_completed: bool | None = None


class TodoOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    is_completed: bool
    created_at: datetime
    updated_at: datetime
