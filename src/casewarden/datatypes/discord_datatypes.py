"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers. The wrappers keep guild, user and
channel ids from being mixed up when they travel through services and
repositories, while still comparing equal to plain ints and strings.
"""

from __future__ import annotations

from typing import Any, Union


class _Snowflake:
    """
    Base class for snowflake wrappers.

    Example:
        >>> uid = UserID(123456789012345678)
        >>> uid.to_int()
        123456789012345678
        >>> uid == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        """
        Args:
            value: The snowflake ID as a string, int, or wrapper of the same kind.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = value
        elif isinstance(value, str):
            self._value = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if self._value < 0:
            raise ValueError(f"Snowflake must be non-negative, got {self._value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    @classmethod
    def from_object(cls, obj: Any):
        """Create a wrapper from any Discord object exposing ``.id``."""
        return cls(obj.id)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls and SQL parameters."""
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __int__(self) -> int:
        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, bool):
            return NotImplemented
        if isinstance(other, int):
            return self._value == other
        if isinstance(other, str):
            return str(self._value) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(_Snowflake):
    """Type-safe wrapper for Discord guild snowflake IDs."""

    __slots__ = ()


class UserID(_Snowflake):
    """Type-safe wrapper for Discord user snowflake IDs."""

    __slots__ = ()


class ChannelID(_Snowflake):
    """Type-safe wrapper for Discord channel snowflake IDs."""

    __slots__ = ()
