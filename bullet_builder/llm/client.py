"""LLM client for bullet drafting and category summaries.

Security: Reads API key from settings/environment only, never hardcoded.
Provides a deterministic stub when no key is present for testing.
"""

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from openai import APIError, AsyncOpenAI

from bullet_builder.config import get_settings
from bullet_builder.models.common import RankCategory
from bullet_builder.taxonomy import rank_title
from bullet_builder.weights import WeightedBullet

logger = logging.getLogger(__name__)

ChatMessage = dict[str, str]

DRAFT_PREFIX = "OK, here's a draft bullet:"

# Prefixes that mark an assistant reply as a drafted bullet
BULLET_PREFIXES = (
    DRAFT_PREFIX,
    "Here's a draft bullet:",
    "Here's your bullet:",
    "Bullet:",
)

EMPTY_REPLY = "Sorry, I couldn't generate a response."
EMPTY_SUMMARY = "Could not generate category summary."
NO_WEIGHTED_BULLETS = "No weighted bullets were provided for this category."


class LLMError(Exception):
    """LLM provider call failed."""

    pass


def detect_bullet(text: str) -> str | None:
    """Extract a drafted bullet from an assistant reply.

    Returns:
        Bullet text following a known prefix, or None for clarifying
        questions and other replies
    """
    if "?" in text and "bullet" not in text:
        return None

    for prefix in BULLET_PREFIXES:
        if prefix in text:
            bullet_text = text.split(prefix, 1)[1].strip()
            # Only the first paragraph after the prefix belongs to the bullet
            bullet_text = bullet_text.split("\n\n", 1)[0].strip()
            if bullet_text:
                return bullet_text
    return None


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    async def generate_reply(
        self,
        *,
        messages: Sequence[ChatMessage],
        competency: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Draft a bullet or ask one clarifying question.

        Args:
            messages: Conversation so far ({role, content} dicts), latest last
            competency: Competency the bullet is for
            rank_category: Officer or Enlisted
            rank: Rank code, e.g. "O3"

        Returns:
            Either DRAFT_PREFIX followed by the bullet, or a question
        """
        ...

    async def summarize_category(
        self,
        *,
        weighted_bullets: Sequence[WeightedBullet],
        category: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Synthesize one paragraph for a category, biased by weight.

        Args:
            weighted_bullets: Positive-weight bullets of the category
            category: Category name
            rank_category: Officer or Enlisted
            rank: Rank code

        Returns:
            Summary paragraph
        """
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def generate_reply(
        self,
        *,
        messages: Sequence[ChatMessage],
        competency: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Draft when the latest user message is quantified, otherwise ask."""
        latest = next(
            (m["content"] for m in reversed(messages) if m.get("role") == "user"), ""
        ).strip()
        if latest and re.search(r"\d", latest):
            return f"{DRAFT_PREFIX} {latest.rstrip('.')}; demo'd strong {competency.lower()}."
        return f"What measurable result did this have for {competency}?"

    async def summarize_category(
        self,
        *,
        weighted_bullets: Sequence[WeightedBullet],
        category: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Join bullet contents, heaviest first."""
        if not weighted_bullets:
            return NO_WEIGHTED_BULLETS
        ordered = sorted(weighted_bullets, key=lambda b: b.weight, reverse=True)
        return "; ".join(b.content.rstrip(".") for b in ordered) + "."


class OpenAIClient:
    """OpenAI-backed LLM client."""

    def __init__(self, api_key: str, model: str = "gpt-4.1-nano"):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate_reply(
        self,
        *,
        messages: Sequence[ChatMessage],
        competency: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Draft a bullet or ask a clarifying question using OpenAI."""
        system_prompt = self._build_draft_prompt(competency, RankCategory(rank_category), rank)
        logger.info(f"Generating reply for {competency} ({rank}), history length {len(messages)}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": system_prompt}, *messages],
                temperature=0.6,
                max_tokens=200,
            )
        except APIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise LLMError(f"OpenAI API error: {e}") from e

        content = (response.choices[0].message.content or "").strip()
        if not content:
            logger.warning("OpenAI returned empty reply")
            return EMPTY_REPLY
        return content

    async def summarize_category(
        self,
        *,
        weighted_bullets: Sequence[WeightedBullet],
        category: str,
        rank_category: RankCategory | str,
        rank: str,
    ) -> str:
        """Summarize a category using OpenAI."""
        bullet_lines = self._format_bullets(weighted_bullets)
        if not bullet_lines:
            return NO_WEIGHTED_BULLETS

        prompt = self._build_summary_prompt(category, RankCategory(rank_category), rank, bullet_lines)
        logger.info(f"Summarizing {len(weighted_bullets)} bullets for {category}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You summarize USCG performance bullets into evaluation paragraphs.",
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=0.5,
                max_tokens=500,
            )
        except APIError as e:
            logger.error(f"OpenAI API call failed for category summary: {e}")
            raise LLMError(f"OpenAI API error for category summary: {e}") from e

        content = (response.choices[0].message.content or "").strip()
        if not content:
            logger.warning("OpenAI returned empty summary")
            return EMPTY_SUMMARY
        return content

    def _build_draft_prompt(self, competency: str, rank_category: RankCategory, rank: str) -> str:
        """Build system prompt for bullet drafting."""
        return f"""You help a USCG {rank_category.value} ({rank_title(rank)}) write an evaluation bullet
for the "{competency}" competency.

If the user's latest input names a specific action and a measurable result, reply with
"{DRAFT_PREFIX}" followed by one concise bullet that starts with an action verb.
Otherwise ask exactly one targeted question for the missing detail and do not draft yet.
Use the whole conversation when the user answers a question. Output only the bullet or the question."""

    def _build_summary_prompt(
        self, category: str, rank_category: RankCategory, rank: str, bullet_lines: list[str]
    ) -> str:
        """Build user prompt for category summarization."""
        lines = [
            f'Write one paragraph summarizing "{category}" performance for a USCG '
            f"{rank_category.value} ({rank_title(rank)}).",
            "Give higher-weighted bullets more emphasis; mention low-weighted ones briefly.",
            "Do not name the member, use pronouns, or mention the weights.",
            "",
            f"Input bullets (category: {category}):",
            *bullet_lines,
        ]
        return "\n".join(lines)

    def _format_bullets(self, weighted_bullets: Sequence[WeightedBullet]) -> list[str]:
        """Format positive-weight bullets, heaviest first."""
        ordered = sorted(
            (b for b in weighted_bullets if b.weight > 0), key=lambda b: b.weight, reverse=True
        )
        return [f"- [{b.competency}] (Weight: {b.weight}%) {b.content}" for b in ordered]


def get_llm_client() -> LLMClient:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client")
        return OpenAIClient(api_key=api_key.get_secret_value(), model=settings.openai_model)
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()
