"""The hub: sole owner of the Memory aggregate.

Connection handlers never touch Memory directly.  They pass typed
messages to the hub, which applies them one at a time under a single
``asyncio.Lock``, flushes the document when durable history changed and
returns the outbound effects for the relay to deliver.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from presence.core.commands import CommandInterpreter
from presence.core.emotion import EmotionTracker
from presence.core.matcher import DEFAULT_THRESHOLD, match
from presence.models import Memory, Speaker
from presence.protocol import (
    Effect,
    FaceSample,
    LightState,
    SmartHomeRequest,
    SpatialUpdate,
    SpeechOutput,
    Target,
    TranscriptEcho,
)
from presence.store import MemoryStore

logger = logging.getLogger(__name__)


class Hub:
    """Serialises every mutation of one Memory instance.

    Parameters
    ----------
    store : MemoryStore
        Where the aggregate is loaded from and flushed to.
    memory : Memory, optional
        Pre-loaded aggregate; loaded from ``store`` when omitted.
    threshold : float
        Face match distance threshold.
    greeting_emotion : str
        Emotion label that makes the assistant greet the viewer.
    """

    def __init__(
        self,
        store: MemoryStore,
        memory: Optional[Memory] = None,
        threshold: float = DEFAULT_THRESHOLD,
        greeting_emotion: str = "happy",
        interpreter: Optional[CommandInterpreter] = None,
    ) -> None:
        self.store = store
        self.memory = memory if memory is not None else store.load()
        self.threshold = threshold
        self.tracker = EmotionTracker(trigger_emotion=greeting_emotion)
        self.interpreter = interpreter or CommandInterpreter()
        self._lock = asyncio.Lock()
        # Emotion last seen by this process; not persisted.
        self._seen_emotion: Optional[str] = None

    # -- persistence --------------------------------------------------------

    def _flush(self, reason: str) -> bool:
        ok = self.store.flush(self.memory)
        if not ok:
            logger.warning("Memory not persisted after %s; change is at risk", reason)
        return ok

    async def flush(self) -> bool:
        async with self._lock:
            return self._flush("explicit flush")

    async def snapshot(self) -> Memory:
        """Deep copy of the aggregate, consistent with respect to mutations."""
        async with self._lock:
            return self.memory.model_copy(deep=True)

    # -- speech -------------------------------------------------------------

    def _say(self, text: str, log: bool = False) -> Effect:
        logger.info("Assistant says: %s", text)
        if log:
            self.memory.log(Speaker.ASSISTANT, text)
        return Effect(Target.ORIGIN, SpeechOutput(text=text))

    # -- handlers -----------------------------------------------------------

    async def handle_face_sample(self, sample: FaceSample) -> list[Effect]:
        """Track emotion, cache the descriptor and greet a smiling viewer.

        The greeting fires when the trigger emotion follows a different
        emotion seen by this process, so a viewer is greeted again after a
        restart even if the stored ``last_emotion`` already equals the
        trigger. ``last_emotion`` only deduplicates the emotion history.
        """
        async with self._lock:
            effects: list[Effect] = []
            changed = self.tracker.observe(sample.emotion, self.memory)
            if sample.descriptor is not None:
                self.memory.last_face_descriptor = list(sample.descriptor)

            greet = (
                self.tracker.is_trigger(sample.emotion)
                and sample.emotion != self._seen_emotion
            )
            if sample.emotion:
                self._seen_emotion = sample.emotion

            if greet:
                name = None
                if sample.descriptor is not None:
                    name = match(sample.descriptor, self.memory.faces, self.threshold)
                effects.append(self._say(self.tracker.compose_greeting(name), log=True))

            if changed or greet:
                self._flush("face sample")
            return effects

    async def handle_transcript(self, text: str) -> list[Effect]:
        """Interpret one finalized utterance."""
        text = text.strip()
        if not text:
            return []
        async with self._lock:
            logger.info("Heard: %s", text)
            self.memory.log(Speaker.USER, text)
            effects = [Effect(Target.ORIGIN, TranscriptEcho(text=text))]

            outcome = self.interpreter.interpret(text, self.memory)
            effects.append(self._say(outcome.reply))
            if outcome.light_changed is not None:
                effects.append(Effect(Target.ALL, LightState(on=outcome.light_changed)))

            self._flush("voice command")
            return effects

    async def handle_smart_home(self, request: SmartHomeRequest) -> list[Effect]:
        """Apply a device toggle sent from the client UI."""
        if request.device != "light":
            logger.warning("Ignoring request for unknown device %r", request.device)
            return []
        async with self._lock:
            self.memory.state.light = request.action == "on"
            logger.info("Light state changed via UI: %s", self.memory.state.light)
            self._flush("smart-home request")
            return [Effect(Target.ALL, LightState(on=self.memory.state.light))]

    async def handle_spatial_frame(self, frame: Any) -> list[Effect]:
        """Cache the latest spatial frame and pass it on to other clients."""
        async with self._lock:
            self.memory.last_spatial_frame = frame
        return [Effect(Target.OTHERS, SpatialUpdate(frame=frame))]
