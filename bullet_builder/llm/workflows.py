"""Chat drafting and category summarization on top of the synced document."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from bullet_builder.llm.client import ChatMessage, LLMClient, detect_bullet
from bullet_builder.models.bullet import Bullet
from bullet_builder.models.common import RankCategory
from bullet_builder.sync.user_data import UserDataSync
from bullet_builder.taxonomy import category_for
from bullet_builder.weights import weighted_bullets_for

logger = logging.getLogger(__name__)

# Shorter extractions are treated as noise rather than a bullet
MIN_BULLET_LENGTH = 10


@dataclass
class DraftResult:
    """Assistant reply plus the bullet it contained, if any."""

    reply: str
    bullet: Bullet | None

    @property
    def is_question(self) -> bool:
        return self.bullet is None


async def draft_bullet(
    client: LLMClient,
    *,
    messages: Sequence[ChatMessage],
    competency: str,
    rank_category: RankCategory | str = RankCategory.officer,
    rank: str = "O3",
    source: str | None = None,
) -> DraftResult:
    """Run one chat turn for a competency.

    Args:
        client: LLM client
        messages: Conversation history, latest user message last
        competency: Competency being drafted
        rank_category: Officer or Enlisted
        rank: Rank code
        source: Provenance tag stored on the bullet (e.g. chat message id)

    Returns:
        DraftResult with a new unapplied Bullet when the reply drafted one
    """
    if not messages:
        raise ValueError("messages must contain at least one user message")

    reply = await client.generate_reply(
        messages=messages, competency=competency, rank_category=rank_category, rank=rank
    )
    content = detect_bullet(reply)
    if content is None or len(content) <= MIN_BULLET_LENGTH:
        return DraftResult(reply=reply, bullet=None)

    bullet = Bullet(
        competency=competency,
        content=content,
        category=category_for(competency, rank_category, rank),
        source=source,
    )
    return DraftResult(reply=reply, bullet=bullet)


def append_bullet(sync: UserDataSync, bullet: Bullet) -> None:
    """Add a drafted bullet to the end of the user's list."""
    sync.update_bullets([*sync.document.bullets, bullet])


async def summarize_category(sync: UserDataSync, category: str, client: LLMClient) -> str:
    """Summarize a category and store the result.

    Raises:
        WeightsNotBalancedError: If the category's weights do not sum to 100;
            the stored weights are left untouched
    """
    document = sync.document
    weighted = weighted_bullets_for(document, category)
    prefs = document.preferences

    summary = await client.summarize_category(
        weighted_bullets=weighted,
        category=category,
        rank_category=prefs.rank_category,
        rank=prefs.rank,
    )
    logger.info(f"Stored summary for {category} ({len(weighted)} weighted bullets)")
    sync.update_summaries({category: summary})
    return summary
