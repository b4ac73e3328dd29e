from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel


# read-only here: display names for reviews; auth lives outside this service
class UserRecord(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True)
    name: str
    lastname: str
    password_hash: str
    created_at: str
