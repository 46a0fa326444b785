"""Read-only admin report over a Memory snapshot."""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from presence.errors import Unauthorized
from presence.models import Memory


class ReportLine(BaseModel):
    time: str
    timestamp: int
    text: str
    speaker: Optional[str] = None


class AdminReport(BaseModel):
    """Human-oriented view of the hub's memory."""

    faces: list[str]
    light: bool
    emotions: list[ReportLine]
    conversation: list[ReportLine]


def check_token(token: Optional[str], secret: str) -> None:
    """Raise Unauthorized unless ``token`` equals the configured secret."""
    if not token or not secrets.compare_digest(token.encode(), secret.encode()):
        raise Unauthorized("invalid admin token")


def format_time(timestamp_ms: int) -> str:
    """Local wall-clock time of a millisecond timestamp, as HH:MM:SS."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def build_report(memory: Memory) -> AdminReport:
    return AdminReport(
        faces=memory.face_names,
        light=memory.state.light,
        emotions=[
            ReportLine(time=format_time(e.timestamp), timestamp=e.timestamp, text=e.emotion)
            for e in memory.emotion_history
        ],
        conversation=[
            ReportLine(
                time=format_time(c.timestamp),
                timestamp=c.timestamp,
                text=c.text,
                speaker=c.speaker.value,
            )
            for c in memory.conversation_log
        ],
    )

