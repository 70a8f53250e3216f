"""Generator for short, human-typeable room codes."""

from __future__ import annotations

import random
from typing import Callable

from classroom_app.constants.room_constants import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    ROOM_CODE_MAX_ATTEMPTS,
)


class RoomCodeGenerator:
    """Draws random codes and redraws until one is not held by a live room."""

    def __init__(
        self,
        alphabet: str = ROOM_CODE_ALPHABET,
        length: int = ROOM_CODE_LENGTH,
        rng: random.Random | None = None,
        max_attempts: int = ROOM_CODE_MAX_ATTEMPTS,
    ) -> None:
        if not alphabet:
            raise ValueError("Code alphabet cannot be empty.")
        if length <= 0:
            raise ValueError("Code length must be a positive integer.")
        self._alphabet = alphabet
        self._length = length
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts

    def generate(self, is_taken: Callable[[str], bool]) -> str:
        """Return a code for which ``is_taken`` is false."""
        for _ in range(self._max_attempts):
            code = "".join(self._rng.choice(self._alphabet) for _ in range(self._length))
            if not is_taken(code):
                return code
        raise RuntimeError(
            f"Could not find a free room code after {self._max_attempts} attempts."
        )
