"""Planner document: the application state stored inside the vault.

The vault treats the document as opaque bytes; this module is the
collaborator side that turns it into bytes before a save and back into
a model after a successful load.
"""
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .vault.exceptions import SerializationFailure

MOOD_MIN = 1
MOOD_MAX = 5
DEFAULT_MOOD = 3


class Todo(BaseModel):
    """A task entry."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    text: str
    done: bool = False
    is_recurring: bool = Field(default=False, alias="isRecurring")
    due_date: Optional[str] = Field(default=None, alias="dueDate")


class TrackedSession(BaseModel):
    """A stopwatch session."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    duration_ms: int = Field(alias="durationMs", ge=0)
    date: Optional[str] = None


class PlannerDocument(BaseModel):
    """Full planner state.

    Unknown keys are kept so that a load/save cycle never drops data.
    The mood value coming from a slider may be a string such as ``"3"``;
    it is coerced to an int.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    todos: list[Todo] = Field(default_factory=list)
    sessions: list[TrackedSession] = Field(default_factory=list)
    notes: str = ""
    mood: int = Field(default=DEFAULT_MOOD, ge=MOOD_MIN, le=MOOD_MAX)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)

    def to_bytes(self) -> bytes:
        """Serialize the document with orjson."""
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "PlannerDocument":
        """Parse a decrypted payload.

        Raises:
            SerializationFailure: If ``data`` is not a valid document.
        """
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise SerializationFailure() from err
        if not isinstance(parsed, dict):
            raise SerializationFailure()
        try:
            return cls.model_validate(parsed)
        except ValidationError as err:
            raise SerializationFailure() from err
