"""Voice command interpreter.

A finalized transcript is decoded once into a tagged intent by walking an
ordered rule table (first match wins), then the intent's handler applies
its mutations to the Memory aggregate and produces the spoken reply.

Adding a command means adding an intent type, a rule and a handler.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Union

from presence.errors import DimensionMismatch
from presence.models import FaceRecord, Memory, Speaker

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LightIntent:
    on: bool


@dataclass(frozen=True)
class RememberFaceIntent:
    name: Optional[str]


@dataclass(frozen=True)
class UnknownIntent:
    text: str


Intent = Union[LightIntent, RememberFaceIntent, UnknownIntent]


@dataclass(frozen=True)
class Rule:
    """A pattern and the intent built from its match."""

    name: str
    pattern: re.Pattern
    build: Callable[[re.Match], Intent]


# A name only follows the phrase after whitespace; "запомни лицо, ..." has none.
_FACE_TAIL = re.compile(r"\s+(?P<name>.*)$")
_LINKING_WORD = re.compile(r"^как(?:\s+|$)", re.IGNORECASE)


def _face_name(m: re.Match) -> RememberFaceIntent:
    tail = _FACE_TAIL.match(m.string, m.end())
    name = tail.group("name") if tail else ""
    name = name.strip().lstrip(",.").rstrip(".,!?;").strip()
    name = _LINKING_WORD.sub("", name).strip()
    return RememberFaceIntent(name=name or None)


RULES: tuple[Rule, ...] = (
    Rule("light_on", re.compile(r"включи свет", re.IGNORECASE),
         lambda m: LightIntent(on=True)),
    Rule("light_off", re.compile(r"выключи свет", re.IGNORECASE),
         lambda m: LightIntent(on=False)),
    Rule("remember_face",
         re.compile(r"запомни лицо", re.IGNORECASE),
         _face_name),
)


def decode_intent(transcript: str, rules: tuple[Rule, ...] = RULES) -> Intent:
    """Map transcript text to the intent of the first matching rule."""
    text = transcript.strip()
    for rule in rules:
        m = rule.pattern.search(text)
        if m:
            return rule.build(m)
    return UnknownIntent(text=text)


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------

REPLY_LIGHT_ON = "Хорошо, включаю свет."
REPLY_LIGHT_OFF = "Выключаю свет."
LOG_LIGHT_ON = "Свет включен."
LOG_LIGHT_OFF = "Свет выключен."
REPLY_ASK_NAME = "Как назвать этого человека?"
REPLY_NO_FACE = "Не вижу лицо для запоминания."
REPLY_FACE_REJECTED = "Не удалось запомнить лицо."
REPLY_FACE_SAVED = "Запомнил лицо как {name}."
REPLY_UNKNOWN = "Извините, я не понял команду."
LOG_UNKNOWN = "Не понял команду."


@dataclass
class CommandOutcome:
    """What interpreting one transcript did."""

    intent: Intent
    reply: str
    light_changed: Optional[bool] = None
    face: Optional[FaceRecord] = None


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------

class CommandInterpreter:
    """Apply decoded intents to a Memory aggregate.

    The interpreter never flushes; its caller flushes once per transcript.
    """

    def __init__(self, rules: tuple[Rule, ...] = RULES) -> None:
        self.rules = rules
        self._handlers: dict[type, Callable[[Intent, Memory], CommandOutcome]] = {
            LightIntent: self._light,
            RememberFaceIntent: self._remember_face,
            UnknownIntent: self._unknown,
        }

    def interpret(self, transcript: str, memory: Memory) -> CommandOutcome:
        intent = decode_intent(transcript, self.rules)
        return self._handlers[type(intent)](intent, memory)

    def _light(self, intent: LightIntent, memory: Memory) -> CommandOutcome:
        memory.state.light = intent.on
        logger.info("Command: light %s", "ON" if intent.on else "OFF")
        memory.log(Speaker.ASSISTANT, LOG_LIGHT_ON if intent.on else LOG_LIGHT_OFF)
        return CommandOutcome(
            intent=intent,
            reply=REPLY_LIGHT_ON if intent.on else REPLY_LIGHT_OFF,
            light_changed=intent.on,
        )

    def _remember_face(self, intent: RememberFaceIntent, memory: Memory) -> CommandOutcome:
        if not intent.name:
            return CommandOutcome(intent=intent, reply=REPLY_ASK_NAME)
        if memory.last_face_descriptor is None:
            return CommandOutcome(intent=intent, reply=REPLY_NO_FACE)
        try:
            record = memory.remember_face(intent.name, memory.last_face_descriptor)
        except DimensionMismatch as exc:
            logger.warning("Refusing to remember face %r: %s", intent.name, exc)
            return CommandOutcome(intent=intent, reply=REPLY_FACE_REJECTED)
        logger.info("Face saved: %s", record.name)
        memory.log(Speaker.SYSTEM, f'Face "{record.name}" remembered')
        return CommandOutcome(
            intent=intent,
            reply=REPLY_FACE_SAVED.format(name=record.name),
            face=record,
        )

    def _unknown(self, intent: UnknownIntent, memory: Memory) -> CommandOutcome:
        logger.info("Unrecognized command: %s", intent.text)
        memory.log(Speaker.ASSISTANT, LOG_UNKNOWN)
        return CommandOutcome(intent=intent, reply=REPLY_UNKNOWN)
