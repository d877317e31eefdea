"""Bullet model - a single achievement statement."""

import time
import uuid

from pydantic import Field

from bullet_builder.models.common import WireModel


def new_bullet_id() -> str:
    """Generate a client-side bullet identifier."""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Bullet(WireModel):
    """Achievement statement tagged with a competency."""

    id: str = Field(default_factory=new_bullet_id, min_length=1)
    competency: str
    content: str
    is_applied: bool = False
    category: str = ""
    created_at: int = Field(default_factory=now_ms)
    source: str | None = None
