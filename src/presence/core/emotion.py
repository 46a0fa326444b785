"""Emotion tracking with run-length deduplication."""

from __future__ import annotations

from typing import Optional

from presence.models import EmotionEntry, Memory, now_ms

GREETING_NAMED = "Привет, {name}! Рад видеть твою улыбку."
GREETING_GENERIC = "Привет! Рад видеть твою улыбку."


class EmotionTracker:
    """Records emotion transitions into ``Memory.emotion_history``.

    Consecutive identical labels are collapsed, so the history never holds
    two adjacent entries with the same emotion.
    """

    def __init__(self, trigger_emotion: str = "happy") -> None:
        self.trigger_emotion = trigger_emotion

    def observe(
        self,
        emotion: Optional[str],
        memory: Memory,
        now: Optional[int] = None,
    ) -> bool:
        """Record ``emotion`` if it differs from the last one.

        Returns True when a new history entry was appended.
        """
        if not emotion or emotion == memory.last_emotion:
            return False
        memory.last_emotion = emotion
        memory.emotion_history.append(
            EmotionEntry(timestamp=now if now is not None else now_ms(), emotion=emotion)
        )
        return True

    def is_trigger(self, emotion: Optional[str]) -> bool:
        return emotion is not None and emotion == self.trigger_emotion

    @staticmethod
    def compose_greeting(name: Optional[str] = None) -> str:
        if name:
            return GREETING_NAMED.format(name=name)
        return GREETING_GENERIC
