"""MOD identity."""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering

from constants import Constants


@total_ordering
@dataclass(frozen=True, eq=True)
class Mod:
    """A MOD identified by its case-sensitive name.

    Sorting places ``base`` first, then orders by name.
    """
    name: str

    @property
    def is_base(self) -> bool:
        return self.name == Constants.BASE_MOD

    @property
    def is_expansion(self) -> bool:
        return self.name in Constants.EXPANSION_MODS

    @property
    def is_builtin(self) -> bool:
        """Base or an expansion; never fetched from the registry."""
        return self.is_base or self.is_expansion

    def __lt__(self, other: "Mod") -> bool:
        if not isinstance(other, Mod):
            return NotImplemented
        return (not self.is_base, self.name) < (not other.is_base, other.name)

    def __str__(self) -> str:
        return self.name


BASE = Mod(Constants.BASE_MOD)
