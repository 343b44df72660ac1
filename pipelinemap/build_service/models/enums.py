"""Shared enumerations used across the build service."""

from __future__ import annotations

from enum import StrEnum

# -- Database ----------------------------------------------------------------


class IsolationLevel(StrEnum):
    """Transaction isolation level applied at the start of every transaction.

    ``DEFAULT`` leaves the database default in place (no statement issued).
    """

    DEFAULT = "default"
    READ_COMMITTED = "read committed"
    REPEATABLE_READ = "repeatable read"
    SERIALIZABLE = "serializable"

    @classmethod
    def parse(cls, value: str | IsolationLevel) -> IsolationLevel:
        """Accept ``read_committed``, ``READ-COMMITTED``, ``read committed`` ...

        Raises ``ValueError`` for unknown names.
        """
        if isinstance(value, IsolationLevel):
            return value
        normalized = " ".join(value.replace("_", " ").replace("-", " ").lower().split())
        try:
            return cls(normalized)
        except ValueError:
            msg = f"Unknown transaction isolation level: {value!r}"
            raise ValueError(msg) from None

    @property
    def sql(self) -> str | None:
        """The ``SET TRANSACTION`` statement for this level, or None for the default."""
        if self is IsolationLevel.DEFAULT:
            return None
        return f"SET TRANSACTION ISOLATION LEVEL {self.value.upper()}"
