"""
Reentrancy Guard - One flag in the shared storage word.

Usage:
    guard = ReentrancyGuard(storage)
    with guard:
        ...  # transfers may call back into the machine; those calls fail
"""

from __future__ import annotations
import logging

from . import encoder
from .encoder import LOCKED, SHARED, Storage
from .errors import Reentrant


logger = logging.getLogger(__name__)


class ReentrancyGuard:
    def __init__(self, storage: Storage):
        self._storage = storage

    @property
    def held(self) -> bool:
        return bool(encoder.read_field(self._storage[SHARED], LOCKED))

    def check(self):
        """Fail without acquiring if the guard is held."""
        if self.held:
            raise Reentrant("session is locked by an in-flight resolution")

    def acquire(self):
        self.check()
        encoder.set_flag(self._storage, LOCKED, True)
        logger.debug("guard acquired")

    def release(self):
        encoder.set_flag(self._storage, LOCKED, False)
        logger.debug("guard released")

    def __enter__(self) -> ReentrancyGuard:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
