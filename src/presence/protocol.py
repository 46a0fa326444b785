"""Wire messages exchanged with browser clients.

Every frame is a JSON object tagged by ``type``.  Inbound frames are
validated here, at the boundary, so the hub core only ever sees typed
values.

Client → server::

    {"type": "face-data", "descriptor": [..], "emotion": "happy"}
    {"type": "voice-transcript", "text": "..."}     # finalized utterance
    {"type": "smart-home", "device": "light", "action": "on"|"off"}
    {"type": "lidar-data", "frame": {...}}
    {"type": "rtc-offer"|"rtc-answer"|"rtc-candidate", "payload": {...}}
    {"type": "ping"}

Server → client::

    {"type": "tts", "text": "..."}
    {"type": "light-state", "on": true}
    {"type": "transcript", "text": "..."}
    {"type": "lidar-update", "frame": {...}}
    {"type": "rtc-*", "payload": {...}}
    {"type": "pong"}
    {"type": "error", "message": "..."}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from presence.errors import ProtocolError

FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


# ======================================================================
# Inbound
# ======================================================================
class FaceSample(BaseModel):
    type: Literal["face-data"] = "face-data"
    descriptor: Optional[Annotated[list[FiniteFloat], Field(min_length=1)]] = None
    emotion: Optional[str] = None


class VoiceTranscript(BaseModel):
    type: Literal["voice-transcript"] = "voice-transcript"
    text: str


class SmartHomeRequest(BaseModel):
    type: Literal["smart-home"] = "smart-home"
    device: str
    action: Literal["on", "off"]


class SpatialFrame(BaseModel):
    type: Literal["lidar-data"] = "lidar-data"
    frame: Any = None


class RtcSignal(BaseModel):
    """WebRTC negotiation message, relayed without inspection."""

    type: Literal["rtc-offer", "rtc-answer", "rtc-candidate"]
    payload: Any = None


class Ping(BaseModel):
    type: Literal["ping"] = "ping"


InboundMessage = Annotated[
    Union[FaceSample, VoiceTranscript, SmartHomeRequest, SpatialFrame, RtcSignal, Ping],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def parse_message(raw: Union[str, bytes, dict]) -> InboundMessage:
    """Decode one client frame, raising ProtocolError if it is not valid."""
    try:
        if isinstance(raw, dict):
            return _inbound_adapter.validate_python(raw)
        return _inbound_adapter.validate_json(raw)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()))
        detail = first.get("msg", "invalid message")
        raise ProtocolError(f"{where}: {detail}" if where else detail) from exc


# ======================================================================
# Outbound
# ======================================================================
class SpeechOutput(BaseModel):
    type: Literal["tts"] = "tts"
    text: str


class LightState(BaseModel):
    type: Literal["light-state"] = "light-state"
    on: bool


class TranscriptEcho(BaseModel):
    type: Literal["transcript"] = "transcript"
    text: str


class SpatialUpdate(BaseModel):
    type: Literal["lidar-update"] = "lidar-update"
    frame: Any = None


class Pong(BaseModel):
    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str


class Target(str, Enum):
    """Who receives an outbound message."""

    ORIGIN = "origin"  # the connection that sent the triggering frame
    OTHERS = "others"  # every connection except the origin
    ROOM = "room"  # the origin's room, origin excluded
    ALL = "all"


@dataclass(frozen=True)
class Effect:
    """An outbound message together with its delivery target."""

    target: Target
    message: BaseModel

    def to_text(self) -> str:
        return encode(self.message)


def encode(message: BaseModel) -> str:
    return json.dumps(message.model_dump(mode="json"), ensure_ascii=False)
