from __future__ import annotations

from typing import Optional

from pydantic import Field
from pymongo import IndexModel, ASCENDING

from .base import BaseDoc


class User(BaseDoc):
    fcm_token: Optional[str] = Field(default=None, max_length=4096)
    country: Optional[str] = Field(default=None, max_length=64)
    is_deleted: bool = False
    is_subscribed: bool = False

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("country", ASCENDING)]),
            IndexModel([("created_at", ASCENDING)]),
        ]
