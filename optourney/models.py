"""Discord user data and the per-request user context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

Snowflake = str
UserFlags = int
UserPremiumType = int

_UINT64_MAX = 2**64 - 1
_UINT16_MAX = 2**16 - 1
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _as_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def _as_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"field {key!r} must be a boolean, got {type(value).__name__}")
    return value


def _as_int(key: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field {key!r} must be an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"field {key!r} out of range: {value}")
    return value


def _signed(key: str, value: Any) -> int:
    return _as_int(key, value, _INT64_MIN, _INT64_MAX)


def _flags(key: str, value: Any) -> int:
    return _as_int(key, value, 0, _UINT64_MAX)


def _premium(key: str, value: Any) -> int:
    return _as_int(key, value, 0, _UINT16_MAX)


# JSON key -> (attribute name, converter)
_FIELDS = {
    "id": ("id", _as_str),
    "username": ("username", _as_str),
    "discriminator": ("discriminator", _as_str),
    "avatar": ("avatar", _as_str),
    "bot": ("bot", _as_bool),
    "system": ("system", _as_bool),
    "mfa_enabled": ("mfa_enabled", _as_bool),
    "banner": ("banner", _as_str),
    "accent_color": ("accent_color", _signed),
    "verified": ("verified", _as_bool),
    "email": ("email", _as_str),
    "flags": ("flags", _flags),
    "premium_type": ("premium_type", _premium),
    "public_flags": ("public_flags", _flags),
}


@dataclass
class APIUser:
    """A Discord user object as returned by the users API."""

    id: Snowflake = ""
    id_int: int = 0
    username: str = ""
    discriminator: str = ""
    avatar: str = ""
    bot: bool = False
    system: bool = False
    mfa_enabled: bool = False
    banner: str = ""
    accent_color: int = 0
    verified: bool = False
    email: str = ""
    flags: UserFlags = 0
    premium_type: UserPremiumType = 0
    public_flags: UserFlags = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> APIUser:
        """Build a user from decoded JSON; missing or null fields keep their defaults."""
        if not isinstance(data, Mapping):
            raise TypeError(f"user data must be an object, got {type(data).__name__}")
        values = {}
        for key, value in data.items():
            spec = _FIELDS.get(key)
            if spec is None or value is None:
                continue
            attr, convert = spec
            values[attr] = convert(key, value)
        return cls(**values)


@dataclass
class UserContext:
    """The Discord user attached to a request and whether they are logged in."""

    discord_user: APIUser = field(default_factory=APIUser)
    logged_in: bool = False

    @classmethod
    def anonymous(cls) -> UserContext:
        """A context for a visitor without a session."""
        return cls()