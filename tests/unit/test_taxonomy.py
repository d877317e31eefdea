"""Tests for competency taxonomy lookups."""

import pytest

from bullet_builder.models import RankCategory
from bullet_builder.taxonomy import (
    ENLISTED_CHIEF_CATEGORIES,
    ENLISTED_JUNIOR_CATEGORIES,
    OFFICER_CATEGORIES,
    OTHER_CATEGORY,
    categories_for,
    category_for,
    category_sort_key,
    competencies_for,
    rank_title,
    report_title,
)


@pytest.mark.parametrize(
    ("rank_category", "rank", "expected"),
    [
        (RankCategory.officer, "O3", OFFICER_CATEGORIES),
        ("Officer", "W2", OFFICER_CATEGORIES),
        (RankCategory.enlisted, "E5", ENLISTED_JUNIOR_CATEGORIES),
        (RankCategory.enlisted, "E7", ENLISTED_CHIEF_CATEGORIES),
        ("Enlisted", "E8", ENLISTED_CHIEF_CATEGORIES),
    ],
)
def test_categories_for_rank(rank_category: str, rank: str, expected: dict) -> None:
    assert categories_for(rank_category, rank) is expected


def test_category_for_officer_competency() -> None:
    assert category_for("Teamwork") == "Leadership Skills"
    assert category_for("Writing", RankCategory.officer, "O4") == "Performance of Duties"


def test_category_for_enlisted_competency() -> None:
    assert category_for("Partnering", RankCategory.enlisted, "E7") == "Professional Qualities"
    # Chief-only competency is not in the petty officer catalog
    assert category_for("Partnering", RankCategory.enlisted, "E5") == OTHER_CATEGORY


def test_unknown_competency_falls_back_to_other() -> None:
    assert category_for("Basket Weaving") == OTHER_CATEGORY


def test_competencies_for_is_flat_and_ordered() -> None:
    competencies = competencies_for(RankCategory.officer, "O3")

    assert competencies[0] == "Planning & Preparedness"
    assert competencies[-1] == "Health and Well Being"
    assert len(competencies) == sum(len(v) for v in OFFICER_CATEGORIES.values())


def test_category_sort_key_places_unknown_last() -> None:
    names = ["Other", "Leadership Skills", "Mystery", "Performance of Duties"]

    assert sorted(names, key=category_sort_key) == [
        "Performance of Duties",
        "Leadership Skills",
        "Other",
        "Mystery",
    ]


def test_titles() -> None:
    assert rank_title("O3") == "Lieutenant (LT)"
    assert rank_title("X9") == "X9"
    assert report_title(RankCategory.officer, "O3") == "Officer Support Form"
    assert report_title(RankCategory.enlisted, "E7") == "Chief Petty Officer Evaluation Report"
    assert report_title(RankCategory.enlisted, "E9") == "Enlisted Evaluation Report"
