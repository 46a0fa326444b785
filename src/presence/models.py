"""Core domain models: faces, conversation, emotions and the Memory aggregate."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from presence.errors import DimensionMismatch


def now_ms() -> int:
    """Wall-clock time in milliseconds, the unit every timestamp uses."""
    return int(time.time() * 1000)


# ======================================================================
# Enumerations
# ======================================================================
class Speaker(str, Enum):
    """Author of a conversation log entry."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# ======================================================================
# Records
# ======================================================================
class FaceRecord(BaseModel):
    """A named reference descriptor. Never modified once stored."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    descriptor: list[float]


class ConversationEntry(BaseModel):
    """One line of the conversation log."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: int = Field(default_factory=now_ms, alias="time")
    speaker: Speaker = Field(..., alias="from")
    text: str


class EmotionEntry(BaseModel):
    """A recorded change of the viewer's emotion."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: int = Field(default_factory=now_ms, alias="time")
    emotion: str


class SmartHomeState(BaseModel):
    """Shared device state. Unknown device keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    light: bool = False


# ======================================================================
# Aggregate root
# ======================================================================
class Memory(BaseModel):
    """Everything the hub remembers between restarts.

    Field aliases give the camelCase layout of the durable document.
    """

    model_config = ConfigDict(populate_by_name=True)

    faces: list[FaceRecord] = Field(default_factory=list)
    conversation_log: list[ConversationEntry] = Field(
        default_factory=list, alias="conversationLog"
    )
    emotion_history: list[EmotionEntry] = Field(
        default_factory=list, alias="emotionHistory"
    )
    state: SmartHomeState = Field(default_factory=SmartHomeState)

    last_emotion: Optional[str] = Field(default=None, alias="lastEmotion")
    last_face_descriptor: Optional[list[float]] = Field(
        default=None, alias="lastFaceDescriptor"
    )
    last_spatial_frame: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices(
            "lastSpatialFrame", "lastLidarFrame", "last_spatial_frame"
        ),
        serialization_alias="lastSpatialFrame",
    )

    @field_validator("state", mode="before")
    @classmethod
    def _state_default(cls, value: Any) -> Any:
        return {} if value is None else value

    # -- derived ------------------------------------------------------------

    @property
    def descriptor_dim(self) -> Optional[int]:
        """Dimensionality shared by the stored faces, or None if there are none."""
        if not self.faces:
            return None
        return len(self.faces[0].descriptor)

    @property
    def face_names(self) -> list[str]:
        return [f.name for f in self.faces]

    # -- mutations ----------------------------------------------------------

    def log(self, speaker: Speaker, text: str, now: Optional[int] = None) -> ConversationEntry:
        """Append a conversation entry and return it."""
        entry = ConversationEntry(
            timestamp=now if now is not None else now_ms(),
            speaker=speaker,
            text=text,
        )
        self.conversation_log.append(entry)
        return entry

    def remember_face(self, name: str, descriptor: list[float]) -> FaceRecord:
        """Append a new FaceRecord.

        Raises DimensionMismatch when ``descriptor`` does not have the length
        shared by the already stored faces.
        """
        expected = self.descriptor_dim
        if expected is not None and len(descriptor) != expected:
            raise DimensionMismatch(expected, len(descriptor))
        record = FaceRecord(name=name, descriptor=list(descriptor))
        self.faces.append(record)
        return record

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready durable document."""
        return self.model_dump(mode="json", by_alias=True)
