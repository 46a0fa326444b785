"""Nearest-neighbour face matching over named reference descriptors.

A linear scan: the reference set is human-sized (tens to low hundreds of
faces), so no index is kept.  Distances are computed in float32 to agree
with the descriptors produced by the browser face-api model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from presence.errors import DimensionMismatch
from presence.models import FaceRecord

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6


@dataclass(frozen=True)
class FaceMatch:
    """The accepted reference record for a query descriptor."""

    name: str
    distance: float
    index: int


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two descriptors of the same length."""
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape:
        raise DimensionMismatch(len(va), len(vb))
    return float(np.linalg.norm(va - vb))


def best_match(
    query: Sequence[float],
    known_faces: Sequence[FaceRecord],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[FaceMatch]:
    """Return the closest face strictly within ``threshold``.

    Records whose descriptor length differs from the query are skipped
    with a warning.  On equal distances the earliest record wins.
    """
    best: Optional[FaceMatch] = None
    best_distance = float("inf")
    for index, face in enumerate(known_faces):
        try:
            distance = euclidean_distance(query, face.descriptor)
        except DimensionMismatch as exc:
            logger.warning("Skipping face %r at index %d: %s", face.name, index, exc)
            continue
        if distance < threshold and distance < best_distance:
            best_distance = distance
            best = FaceMatch(name=face.name, distance=distance, index=index)
    return best


def match(
    query: Sequence[float],
    known_faces: Sequence[FaceRecord],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[str]:
    """Name of the best matching face, or None."""
    found = best_match(query, known_faces, threshold)
    return found.name if found else None
