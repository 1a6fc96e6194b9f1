"""
Shuffle primitive and option permutations.

A permutation ``perm`` maps display position to original option index:
the option shown at position ``p`` is ``options[perm[p]]``.
"""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class Randomizer:
    """Uniform shuffling over an injectable random source (seed it in tests)."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates shuffle into a new list; the input is left untouched."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self._rng.randint(0, i)
            out[i], out[j] = out[j], out[i]
        return out

    def permutation(self, n: int) -> List[int]:
        return self.shuffle(range(n))


def is_permutation(perm: Sequence[int], n: int) -> bool:
    return len(perm) == n and sorted(perm) == list(range(n))


def invert(perm: Sequence[int]) -> List[int]:
    """Original index -> display position."""
    inverse = [0] * len(perm)
    for display, original in enumerate(perm):
        inverse[original] = display
    return inverse


def to_original(perm: Sequence[int], display_index: int) -> int:
    if not 0 <= display_index < len(perm):
        raise IndexError(f"Display index {display_index} outside 0..{len(perm) - 1}")
    return perm[display_index]


def to_display(perm: Sequence[int], original_index: int) -> int:
    if not 0 <= original_index < len(perm):
        raise IndexError(f"Option index {original_index} outside 0..{len(perm) - 1}")
    return invert(perm)[original_index]
