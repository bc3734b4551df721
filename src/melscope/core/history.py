"""
Fixed-capacity scrolling history of Mel frames.
"""

from collections import deque

import numpy as np

from melscope.errors import InvalidConfig


class HistoryBuffer:
    """
    Chronological FIFO of Mel frames, oldest first.

    Appending beyond ``capacity`` discards the oldest frames. There is no
    random-access write path: ``push`` and ``clear`` are the only mutators.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise InvalidConfig(f"History capacity must be positive, got {capacity}")
        self._frames: deque[np.ndarray] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._frames.maxlen

    @property
    def latest(self) -> np.ndarray | None:
        """Most recently pushed frame, or None when empty."""
        return self._frames[-1] if self._frames else None

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, frame: np.ndarray):
        """Append a frame, evicting the oldest one when full."""
        self._frames.append(np.array(frame, dtype=np.float32))

    def snapshot(self) -> list[np.ndarray]:
        """Copies of all frames, oldest to newest."""
        return [frame.copy() for frame in self._frames]

    def clear(self):
        self._frames.clear()
