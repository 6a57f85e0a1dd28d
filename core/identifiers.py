"""
Identifier generation for uploaded files and short URLs
"""

import random
import string

ALPHABET = string.ascii_letters + string.digits


class IdentifierGenerator:
    """
    Produces short random tokens drawn uniformly from ALPHABET.

    The random source is created once per generator and shared by every
    caller. SystemRandom reads from the OS entropy pool and never needs
    reseeding, so concurrent callers cannot end up with correlated output.
    Tokens are unguessable but are not credentials; uniqueness is enforced
    by the metadata store, not here.
    """

    def __init__(self, length: int = 8, rng: random.Random | None = None):
        if length < 1:
            raise ValueError("Identifier length must be at least 1")
        self.length = length
        self._rng = rng or random.SystemRandom()

    def generate(self, length: int | None = None) -> str:
        """Return a new token of the given (or default) length"""
        size = self.length if length is None else length
        return "".join(self._rng.choice(ALPHABET) for _ in range(size))
