"""Hub core: face matching, emotion tracking and voice commands.

Data flow::

    face-data ─→ EmotionTracker ─┐
              └→ match() ────────┴→ greeting ─→ speech-output
    transcript ─→ CommandInterpreter ─→ Memory ─→ speech-output / light-state
"""

from presence.core.commands import CommandInterpreter, CommandOutcome, decode_intent
from presence.core.emotion import EmotionTracker
from presence.core.hub import Hub
from presence.core.matcher import FaceMatch, best_match, match

__all__ = [
    "CommandInterpreter",
    "CommandOutcome",
    "EmotionTracker",
    "FaceMatch",
    "Hub",
    "best_match",
    "decode_intent",
    "match",
]
