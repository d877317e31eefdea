"""Competency and category taxonomy for officer and enlisted evaluations."""

from bullet_builder.models.common import RankCategory

OTHER_CATEGORY = "Other"

OFFICER_CATEGORIES: dict[str, list[str]] = {
    "Performance of Duties": [
        "Planning & Preparedness",
        "Using Resources",
        "Results/Effectiveness",
        "Adaptability",
        "Professional Competence",
        "Speaking and Listening",
        "Writing",
    ],
    "Leadership Skills": [
        "Looking Out For Others",
        "Developing Others",
        "Directing Others",
        "Teamwork",
        "Workplace Climate",
        "Evaluations",
    ],
    "Personal and Professional Qualities": [
        "Initiative",
        "Judgment",
        "Responsibility",
        "Professional Presence",
        "Health and Well Being",
    ],
}

# Petty officers (E4-E6)
ENLISTED_JUNIOR_CATEGORIES: dict[str, list[str]] = {
    "Military": [
        "Military Bearing",
        "Customs, Courtesies, and Traditions",
    ],
    "Performance": [
        "Quality of Work",
        "Technical Proficiency",
        "Initiative",
    ],
    "Professional Qualities": [
        "Decision Making and Problem Solving",
        "Military Readiness",
        "Self-Awareness and Learning",
        "Team Building",
    ],
    "Leadership": [
        "Respect for Others",
        "Accountability and Responsibility",
        "Influencing Others",
        "Effective Communication",
    ],
}

# Chiefs (E7-E8)
ENLISTED_CHIEF_CATEGORIES: dict[str, list[str]] = {
    "Military": [
        "Military Bearing",
        "Customs, Courtesies, and Traditions",
    ],
    "Performance": [
        "Quality of Work",
        "Technical Proficiency",
        "Initiative",
        "Strategic Thinking",
    ],
    "Professional Qualities": [
        "Decision Making and Problem Solving",
        "Military Readiness",
        "Self-Awareness and Learning",
        "Partnering",
    ],
    "Leadership": [
        "Respect for Others",
        "Accountability and Responsibility",
        "Workforce Management",
        "Effective Communication",
        "Chiefs Mess Leadership and Participation",
    ],
}

# Display and report order
CATEGORY_ORDER: list[str] = [
    "Performance of Duties",
    "Leadership Skills",
    "Personal and Professional Qualities",
    "Military",
    "Performance",
    "Professional Qualities",
    "Leadership",
    OTHER_CATEGORY,
]

RANK_TITLES: dict[str, str] = {
    "O1": "Ensign (ENS)",
    "O2": "Lieutenant Junior Grade (LTJG)",
    "O3": "Lieutenant (LT)",
    "O4": "Lieutenant Commander (LCDR)",
    "O5": "Commander (CDR)",
    "O6": "Captain (CAPT)",
    "W2": "Chief Warrant Officer (CWO2)",
    "W3": "Chief Warrant Officer (CWO3)",
    "W4": "Chief Warrant Officer (CWO4)",
    "E4": "Petty Officer Third Class (PO3)",
    "E5": "Petty Officer Second Class (PO2)",
    "E6": "Petty Officer First Class (PO1)",
    "E7": "Chief Petty Officer (CPO)",
    "E8": "Senior Chief Petty Officer (SCPO)",
}

ENLISTED_REPORT_TITLES: dict[str, str] = {
    "E4": "Third Class Petty Officer Evaluation Report",
    "E5": "Second Class Petty Officer Evaluation Report",
    "E6": "First Class Petty Officer Evaluation Report",
    "E7": "Chief Petty Officer Evaluation Report",
    "E8": "Senior Chief Petty Officer Evaluation Report",
}

CHIEF_RANKS = frozenset({"E7", "E8"})


def categories_for(rank_category: RankCategory | str, rank: str) -> dict[str, list[str]]:
    """Category -> competencies catalog for a rank."""
    if RankCategory(rank_category) == RankCategory.officer:
        return OFFICER_CATEGORIES
    if rank in CHIEF_RANKS:
        return ENLISTED_CHIEF_CATEGORIES
    return ENLISTED_JUNIOR_CATEGORIES


def competencies_for(rank_category: RankCategory | str, rank: str) -> list[str]:
    """Flat competency list for a rank, in catalog order."""
    return [c for comps in categories_for(rank_category, rank).values() for c in comps]


def category_for(
    competency: str,
    rank_category: RankCategory | str = RankCategory.officer,
    rank: str = "O3",
) -> str:
    """Look up the category a competency belongs to.

    Returns OTHER_CATEGORY for competencies outside the rank's catalog.
    """
    for category, competencies in categories_for(rank_category, rank).items():
        if competency in competencies:
            return category
    return OTHER_CATEGORY


def category_sort_key(category: str) -> int:
    """Sort key placing unknown categories last."""
    try:
        return CATEGORY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_ORDER)


def rank_title(rank: str) -> str:
    """Human-readable rank title, falling back to the code."""
    return RANK_TITLES.get(rank, rank)


def report_title(rank_category: RankCategory | str, rank: str) -> str:
    """Title of the evaluation form for a rank."""
    if RankCategory(rank_category) == RankCategory.officer:
        return "Officer Support Form"
    return ENLISTED_REPORT_TITLES.get(rank, "Enlisted Evaluation Report")
