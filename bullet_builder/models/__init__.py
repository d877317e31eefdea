"""Models package - re-exports for convenience."""

from bullet_builder.models.bullet import Bullet, new_bullet_id, now_ms
from bullet_builder.models.common import ActiveTab, RankCategory, SaveStatus, WireModel
from bullet_builder.models.document import (
    ChatSession,
    EvaluationData,
    Preferences,
    UserDocument,
    default_document,
    duplicate_bullet_ids,
)

__all__ = [
    # Common
    "WireModel",
    "RankCategory",
    "ActiveTab",
    "SaveStatus",
    # Bullet
    "Bullet",
    "new_bullet_id",
    "now_ms",
    # Document
    "UserDocument",
    "ChatSession",
    "Preferences",
    "EvaluationData",
    "default_document",
    "duplicate_bullet_ids",
]
