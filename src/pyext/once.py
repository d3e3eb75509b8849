"""Append-only tables indexed by degree."""

from __future__ import annotations

import threading

from . import base_algebra as BA


class OnceBiVec:
    """A table indexed by integers `>= min_index` whose entries are written once.

    Entries may be written out of order. `len` is the watermark: the first
    index not yet written, so every index in `[min_index, len)` is present."""

    def __init__(self, min_index: int):
        self.min_index = min_index
        self._data = {}
        self._len = min_index
        self._lock = threading.Lock()

    def __repr__(self):
        return f"OnceBiVec(min_index={self.min_index}, len={self._len})"

    @property
    def len(self) -> int:
        return self._len

    def __contains__(self, index: int) -> bool:
        return index in self._data

    def __getitem__(self, index: int):
        try:
            return self._data[index]
        except KeyError:
            raise BA.MyStateError(f"index {index} not yet computed") from None

    def get(self, index: int, default=None):
        return self._data.get(index, default)

    def push_ooo(self, value, index: int) -> range:
        """Write `value` at `index`, possibly out of order.

        Return the range by which the watermark advanced."""
        if index < self.min_index:
            raise BA.MyDegreeError(f"index {index} below minimum {self.min_index}")
        with self._lock:
            if index in self._data:
                raise BA.MyStateError(f"index {index} already set")
            self._data[index] = value
            start = self._len
            while self._len in self._data:
                self._len += 1
            return range(start, self._len)
