"""Per-category bullet weights and the summarisation gate.

Weights are stored as percentage strings keyed by bullet id. A category
can only be summarised once the weights of its applied bullets sum to
exactly 100. Validation here never mutates the document.
"""

from dataclasses import dataclass

from bullet_builder.models.bullet import Bullet
from bullet_builder.models.document import UserDocument
from bullet_builder.taxonomy import category_for, category_sort_key


class WeightsNotBalancedError(Exception):
    """Category weights do not sum to 100."""

    def __init__(self, category: str, total: int) -> None:
        super().__init__(f"Cannot summarize {category!r}: weights must sum to 100% (currently {total}%)")
        self.category = category
        self.total = total


@dataclass(frozen=True)
class WeightedBullet:
    """Applied bullet with its parsed weight."""

    bullet_id: str
    competency: str
    content: str
    weight: int


def parse_weight(value: str | None) -> int:
    """Parse a stored weight string; empty means 0.

    Raises:
        ValueError: If the value is not an integer between 0 and 100
    """
    if value is None or value.strip() == "":
        return 0
    weight = int(value.strip())
    if not 0 <= weight <= 100:
        raise ValueError(f"weight must be between 0 and 100, got {weight}")
    return weight


def bullet_category(bullet: Bullet, document: UserDocument) -> str:
    """Stored category, or derived from the competency when missing."""
    if bullet.category:
        return bullet.category
    prefs = document.preferences
    return category_for(bullet.competency, prefs.rank_category, prefs.rank)


def group_applied_bullets(document: UserDocument) -> dict[str, list[Bullet]]:
    """Group applied bullets by category in report order."""
    groups: dict[str, list[Bullet]] = {}
    for bullet in document.bullets:
        if bullet.is_applied:
            groups.setdefault(bullet_category(bullet, document), []).append(bullet)
    return dict(sorted(groups.items(), key=lambda item: category_sort_key(item[0])))


def _weight_or_zero(value: str | None) -> int:
    try:
        return parse_weight(value)
    except ValueError:
        # Unparseable entries count as zero, same as an empty field
        return 0


def _category_total(bullets: list[Bullet], weights: dict[str, str]) -> int:
    return sum(_weight_or_zero(weights.get(b.id)) for b in bullets)


def category_weight_errors(document: UserDocument) -> dict[str, str]:
    """Validation messages for categories whose entered weights miss 100."""
    errors: dict[str, str] = {}
    for category, bullets in group_applied_bullets(document).items():
        entered = any(document.bullet_weights.get(b.id, "") != "" for b in bullets)
        total = _category_total(bullets, document.bullet_weights)
        if entered and total != 100:
            errors[category] = f"Weights must sum to 100% (currently {total}%)"
    return errors


def weighted_bullets_for(document: UserDocument, category: str) -> list[WeightedBullet]:
    """Weighted bullets of a category, ready for summarisation.

    Args:
        document: Current user document
        category: Category name

    Returns:
        Bullets with a positive weight, heaviest first

    Raises:
        WeightsNotBalancedError: If the category's weights do not sum to 100
    """
    bullets = group_applied_bullets(document).get(category, [])
    total = _category_total(bullets, document.bullet_weights)
    if total != 100:
        raise WeightsNotBalancedError(category, total)

    weighted = [
        WeightedBullet(
            bullet_id=b.id,
            competency=b.competency,
            content=b.content,
            weight=_weight_or_zero(document.bullet_weights.get(b.id)),
        )
        for b in bullets
    ]
    return sorted((w for w in weighted if w.weight > 0), key=lambda w: w.weight, reverse=True)
