"""Opaque secret values."""

from __future__ import annotations

MASK = "******"


class Secret:
    """Wraps a sensitive string so default formatting never reveals it.

    ``str()``, ``repr()`` and ``format()`` all render the mask; callers that
    genuinely need the value must ask for it with :meth:`get_plain_text`.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str | None) -> None:
        self._value = value or ""

    def get_plain_text(self) -> str:
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Secret):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash((Secret, self._value))

    def __str__(self) -> str:
        return MASK

    def __repr__(self) -> str:
        return f"Secret({MASK!r})"

    def __format__(self, spec: str) -> str:
        return format(MASK, spec)


__all__ = ["MASK", "Secret"]
