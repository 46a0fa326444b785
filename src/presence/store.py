"""Durable storage for the Memory aggregate.

The whole aggregate lives in one JSON document that is loaded once at
startup and overwritten in full on every flush.  The overwrite goes
through a temporary file in the same directory followed by
``os.replace`` so a crash mid-write never leaves a truncated document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from presence.models import Memory

logger = logging.getLogger(__name__)


class MemoryStore:
    """Load and flush the Memory document at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Memory:
        """Read the document, or return an empty Memory if it is unusable.

        Never raises: a missing, unreadable or malformed document is logged
        and replaced by a fresh aggregate.
        """
        if not self.path.exists():
            logger.info("No memory document at %s, starting empty", self.path)
            return Memory()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            memory = Memory.model_validate(raw)
        except (OSError, ValueError) as exc:
            logger.error("Could not load memory from %s: %s", self.path, exc)
            return Memory()
        logger.info(
            "Loaded memory: %d faces, %d log entries, %d emotions",
            len(memory.faces),
            len(memory.conversation_log),
            len(memory.emotion_history),
        )
        return memory

    def flush(self, memory: Memory) -> bool:
        """Overwrite the document with ``memory``.

        Returns False (after logging) when the write fails; the caller keeps
        its in-memory state and the next successful flush carries the change.
        """
        data = json.dumps(memory.to_document(), ensure_ascii=False, indent=2)
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, suffix=".tmp", prefix=self.path.stem
            )
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Could not write memory to %s: %s", self.path, exc)
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            return False
        return True
