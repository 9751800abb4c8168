"""Collision-free artifact identifiers."""

import itertools
import time
import uuid


class ArtifactIdGenerator:
    """Generates artifact ids that stay unique within one clock tick.

    Ids combine a millisecond timestamp (for readability and rough ordering),
    a per-process monotonic counter and a random suffix.
    """

    def __init__(self, prefix: str = "art"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        millis = int(time.time() * 1000)
        return f"{self.prefix}-{millis}-{next(self._counter):06d}-{uuid.uuid4().hex[:8]}"
