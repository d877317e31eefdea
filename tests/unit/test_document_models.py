"""Tests for bullet and document models."""

import pytest
from pydantic import ValidationError

from bullet_builder.models import (
    ActiveTab,
    Bullet,
    ChatSession,
    EvaluationData,
    Preferences,
    RankCategory,
    UserDocument,
    default_document,
    duplicate_bullet_ids,
)


def test_default_document_shape() -> None:
    wire = default_document().to_wire()

    assert wire == {
        "bullets": [],
        "preferences": {
            "rankCategory": "Officer",
            "rank": "O3",
            "lastActiveTab": "chat",
            "competencyPreferences": [],
        },
        "chatSessions": {},
        "evaluationData": {
            "startDate": "",
            "endDate": "",
            "officerName": "",
            "unitName": "",
            "position": "",
        },
        "bulletWeights": {},
        "summaries": {},
    }


def test_bullet_uses_camel_case_on_the_wire() -> None:
    bullet = Bullet(id="b1", competency="Teamwork", content="Built a team.", created_at=1700000000000)

    assert bullet.to_wire() == {
        "id": "b1",
        "competency": "Teamwork",
        "content": "Built a team.",
        "isApplied": False,
        "category": "",
        "createdAt": 1700000000000,
        "source": None,
    }


def test_bullet_gets_generated_id() -> None:
    first = Bullet(competency="Teamwork", content="A.")
    second = Bullet(competency="Teamwork", content="B.")

    assert first.id
    assert first.id != second.id


def test_bullet_rejects_empty_id() -> None:
    with pytest.raises(ValidationError):
        Bullet(id="", competency="Teamwork", content="A.")


class TestFromRemote:
    def test_none_gives_defaults(self) -> None:
        assert UserDocument.from_remote(None) == default_document()

    def test_bare_list_is_bullets(self) -> None:
        doc = UserDocument.from_remote([{"id": "b1", "competency": "Writing", "content": "Wrote."}])

        assert [b.id for b in doc.bullets] == ["b1"]
        assert doc.summaries == {}

    def test_partial_preferences_are_filled(self) -> None:
        doc = UserDocument.from_remote({"preferences": {"rank": "E5", "rankCategory": "Enlisted"}})

        assert doc.preferences.rank == "E5"
        assert doc.preferences.rank_category == RankCategory.enlisted
        assert doc.preferences.last_active_tab == ActiveTab.chat
        assert doc.preferences.competency_preferences == []

    def test_null_fields_are_defaulted(self) -> None:
        doc = UserDocument.from_remote(
            {"bullets": None, "preferences": None, "bulletWeights": None, "summaries": None}
        )

        assert doc == default_document()

    def test_unknown_keys_round_trip(self) -> None:
        doc = UserDocument.from_remote({"draftNotes": [{"id": "s1"}], "summaries": {"A": "x"}})

        wire = doc.to_wire()
        assert wire["draftNotes"] == [{"id": "s1"}]
        assert wire["summaries"] == {"A": "x"}

    def test_chat_sessions_are_typed(self) -> None:
        doc = UserDocument.from_remote(
            {"chatSessions": {"s1": {"messages": [{"role": "assistant", "content": "Hi"}]}}}
        )

        session = doc.chat_sessions["s1"]
        assert isinstance(session, ChatSession)
        assert session.last_competency == ""
        assert doc.to_wire()["chatSessions"]["s1"]["lastCompetency"] == ""

    def test_null_chat_sessions_default_to_empty(self) -> None:
        assert UserDocument.from_remote({"chatSessions": None}).chat_sessions == {}

    def test_scalar_content_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported document content"):
            UserDocument.from_remote("oops")

    def test_invalid_nested_value_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserDocument.from_remote({"preferences": {"rankCategory": "Civilian"}})


class TestMerged:
    def test_accepts_field_names_and_aliases(self) -> None:
        prefs = Preferences().merged({"rank": "O5", "lastActiveTab": "bullets"})

        assert prefs.rank == "O5"
        assert prefs.last_active_tab == ActiveTab.bullets

    def test_leaves_original_untouched(self) -> None:
        original = EvaluationData(unit_name="Sector Boston")
        updated = original.merged({"position": "Ops"})

        assert original.position == ""
        assert updated.unit_name == "Sector Boston"
        assert updated.position == "Ops"

    def test_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="Unknown field for Preferences: colour"):
            Preferences().merged({"colour": "red"})


def test_duplicate_bullet_ids() -> None:
    bullets = [
        Bullet(id="a", competency="Writing", content="1."),
        Bullet(id="b", competency="Writing", content="2."),
        Bullet(id="a", competency="Writing", content="3."),
    ]

    assert duplicate_bullet_ids(bullets) == ["a"]
