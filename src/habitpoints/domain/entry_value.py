"""Tagged variant for the value a user logs against a habit.

The wire format is a loose union (``True``, ``False``, ``"showUp"``, any other
string, or a number). It is classified exactly once, here, so the streak
evaluator and the points calculator never re-derive the rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..errors import InvalidArgumentError

SHOW_UP = "showUp"

WireValue = Union[bool, int, float, str]


class EntryKind(str, Enum):
    """How an entry counts toward streaks and points."""

    FULL = "full"  # exactly True
    PARTIAL = "partial"  # "showUp", other strings, numbers
    MISS = "miss"  # exactly False


@dataclass(frozen=True, slots=True)
class EntryValue:
    """Classified entry value with its original payload."""

    kind: EntryKind
    payload: WireValue

    @classmethod
    def from_wire(cls, raw: Any) -> "EntryValue":
        """Translate a wire value into the variant, rejecting anything else."""

        # bool is a subclass of int, so it must be checked first.
        if isinstance(raw, bool):
            return cls(EntryKind.FULL if raw else EntryKind.MISS, raw)
        if isinstance(raw, (int, float, str)):
            return cls(EntryKind.PARTIAL, raw)
        raise InvalidArgumentError(
            f"Entry value must be a boolean, number or string, got {type(raw).__name__}"
        )

    @property
    def is_full(self) -> bool:
        return self.kind is EntryKind.FULL

    @property
    def is_show_up(self) -> bool:
        return self.kind is EntryKind.PARTIAL and self.payload == SHOW_UP


__all__ = ["EntryKind", "EntryValue", "SHOW_UP", "WireValue"]
