"""Common types and enums shared across all models."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model using camelCase keys on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump to the JSON shape stored by the remote document store."""
        return self.model_dump(mode="json", by_alias=True)

    def merged(self, changes: Mapping[str, Any]) -> Self:
        """Return a validated copy with changes applied.

        Keys may be given as Python field names or wire aliases.

        Raises:
            ValueError: On unknown keys
            pydantic.ValidationError: On invalid values
        """
        names: dict[str, str] = {}
        for name, info in type(self).model_fields.items():
            names[name] = name
            if info.alias:
                names[info.alias] = name

        data = self.model_dump()
        for key, value in changes.items():
            if key not in names:
                raise ValueError(f"Unknown field for {type(self).__name__}: {key}")
            data[names[key]] = value
        return type(self).model_validate(data)


class RankCategory(str, Enum):
    """Evaluation track."""

    officer = "Officer"
    enlisted = "Enlisted"


class ActiveTab(str, Enum):
    """Last tab the user had open."""

    chat = "chat"
    bullets = "bullets"
    oer = "oer"


class SaveStatus(str, Enum):
    """User-facing save indicator."""

    idle = "idle"
    saving = "saving"
    saved = "saved"
    error = "error"
