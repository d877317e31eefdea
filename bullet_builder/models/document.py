"""User document - the unit of persistence."""

from collections import Counter
from typing import Any

from pydantic import ConfigDict, Field

from bullet_builder.models.bullet import Bullet
from bullet_builder.models.common import ActiveTab, RankCategory, WireModel


class Preferences(WireModel):
    """Rank and UI preferences."""

    rank_category: RankCategory = RankCategory.officer
    rank: str = "O3"
    last_active_tab: ActiveTab = ActiveTab.chat
    competency_preferences: list[str] = Field(default_factory=list)


class EvaluationData(WireModel):
    """Evaluation report header fields."""

    start_date: str = ""
    end_date: str = ""
    officer_name: str = ""
    unit_name: str = ""
    position: str = ""


class ChatSession(WireModel):
    """Saved chat transcript for one drafting session."""

    messages: list[dict[str, Any]] = Field(default_factory=list)
    last_competency: str = ""


class UserDocument(WireModel):
    """Per-user document mirrored to the remote store.

    Unknown top-level keys written by other clients are kept as extras so
    a save never drops them.
    """

    model_config = ConfigDict(extra="allow")

    bullets: list[Bullet] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    chat_sessions: dict[str, ChatSession] = Field(default_factory=dict)
    evaluation_data: EvaluationData = Field(default_factory=EvaluationData)
    bullet_weights: dict[str, str] = Field(default_factory=dict)
    summaries: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_remote(cls, content: Any) -> "UserDocument":
        """Build a document from stored content, backfilling defaults.

        Accepts the current nested shape, partially saved documents from
        earlier schema versions, a bare list of bullets (oldest format) and
        missing content.
        """
        if content is None:
            return cls()
        if isinstance(content, list):
            return cls(bullets=[Bullet.model_validate(b) for b in content])
        if not isinstance(content, dict):
            raise ValueError(f"Unsupported document content type: {type(content).__name__}")

        data = dict(content)
        # Nested objects are merged key by key so legacy partial objects still validate
        for key, model in (("preferences", Preferences), ("evaluationData", EvaluationData)):
            value = data.get(key)
            if isinstance(value, dict):
                data[key] = model().to_wire() | value
            elif value is None:
                data.pop(key, None)
        for key in ("bullets", "chatSessions", "bulletWeights", "summaries"):
            if data.get(key) is None:
                data.pop(key, None)

        return cls.model_validate(data)


def duplicate_bullet_ids(bullets: list[Bullet]) -> list[str]:
    """Return ids that appear more than once, in first-seen order."""
    counts = Counter(b.id for b in bullets)
    return [bullet_id for bullet_id, n in counts.items() if n > 1]


def default_document() -> UserDocument:
    """Fresh document with every field at its default."""
    return UserDocument()
