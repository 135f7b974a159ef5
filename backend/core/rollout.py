"""
Progressive feature rollout.

Flags are plain strings supplied by a ``FlagSource`` (environment variables by
default, ``ENABLE_<FLAG>``). A flag value is one of:

    unset / "false" / "0" / "off"   -> disabled
    "true" / "1" / "on"             -> enabled for everyone
    "0".."100"                      -> percentage of users, bucketed by a stable hash
    "alice,bob@example.com"         -> enabled for the listed user identifiers only

Anything else is a configuration error: it is logged and the flag evaluates to
disabled.
"""
from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

from django.conf import settings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

OFF_VALUES = {"false", "0", "off"}
ON_VALUES = {"true", "1", "on"}
_INTEGER_RE = re.compile(r"[+-]?\d+")


class FlagSource(Protocol):
    def get_flag_value(self, name: str) -> Optional[str]:
        ...

    def all_flags(self) -> Dict[str, Optional[str]]:
        ...


class EnvFlagSource:
    """Reads flags from environment variables named ``<prefix><FLAG>``."""

    def __init__(self, prefix: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix if prefix is not None else getattr(settings, "ROLLOUT_FLAG_PREFIX", "ENABLE_")
        self.environ = environ if environ is not None else os.environ

    def get_flag_value(self, name: str) -> Optional[str]:
        return self.environ.get(f"{self.prefix}{name}") or None

    def all_flags(self) -> Dict[str, Optional[str]]:
        return {
            key[len(self.prefix):]: (value or None)
            for key, value in self.environ.items()
            if key.startswith(self.prefix)
        }


class MappingFlagSource:
    """Flags held in a plain mapping, keyed by flag name."""

    def __init__(self, flags: Mapping[str, Optional[str]]):
        self.flags = dict(flags)

    def get_flag_value(self, name: str) -> Optional[str]:
        return self.flags.get(name) or None

    def all_flags(self) -> Dict[str, Optional[str]]:
        return dict(self.flags)


@dataclass(frozen=True)
class RolloutDecision:
    flag: str
    enabled: bool
    reason: str
    raw_value: Optional[str] = None
    bucket: Optional[int] = None

    @classmethod
    def disabled(cls, flag: str = "", reason: str = "forced") -> "RolloutDecision":
        return cls(flag=flag, enabled=False, reason=reason)

    @classmethod
    def enabled_for_all(cls, flag: str = "", reason: str = "forced") -> "RolloutDecision":
        return cls(flag=flag, enabled=True, reason=reason)


def user_bucket(user_id: str) -> int:
    """
    Map a user identifier onto a bucket in 1..100.

    sha256 keeps the mapping identical across processes and restarts, unlike
    the built-in ``hash()`` which is salted per interpreter.
    """
    digest = hashlib.sha256(user_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % 100 + 1


class RolloutEvaluator:
    def __init__(self, source: Optional[FlagSource] = None):
        self.source = source or EnvFlagSource()

    def evaluate(self, flag: str, user_id: Optional[str] = None) -> RolloutDecision:
        raw = self.source.get_flag_value(flag)
        try:
            return self._evaluate(flag, raw, user_id)
        except ConfigurationError as exc:
            logger.warning(f"Rollout flag {flag} has an unrecognised value {raw!r}; treating as disabled ({exc})")
            return RolloutDecision(flag=flag, enabled=False, reason="misconfigured", raw_value=raw)

    def is_enabled(self, flag: str, user_id: Optional[str] = None) -> bool:
        return self.evaluate(flag, user_id).enabled

    def _evaluate(self, flag: str, raw: Optional[str], user_id: Optional[str]) -> RolloutDecision:
        if raw is None or not raw.strip():
            return RolloutDecision(flag=flag, enabled=False, reason="unset")

        value = raw.strip().lower()
        user = (user_id or "").strip()

        if value in OFF_VALUES:
            return RolloutDecision(flag=flag, enabled=False, reason="off", raw_value=raw)
        if value in ON_VALUES:
            return RolloutDecision(flag=flag, enabled=True, reason="on", raw_value=raw)

        if _INTEGER_RE.fullmatch(value) and 0 <= int(value) <= 100:
            percentage = int(value)
            if not user:
                return RolloutDecision(flag=flag, enabled=False, reason="no_user", raw_value=raw)
            bucket = user_bucket(user)
            return RolloutDecision(
                flag=flag,
                enabled=bucket <= percentage,
                reason="percentage",
                raw_value=raw,
                bucket=bucket,
            )

        allowed = [item.strip() for item in value.split(",")]
        allowed = [item for item in allowed if item]
        if not allowed or any(re.search(r"\s", item) for item in allowed):
            raise ConfigurationError("expected an identifier list", flag_name=flag, raw_value=raw)
        if not user:
            return RolloutDecision(flag=flag, enabled=False, reason="no_user", raw_value=raw)
        return RolloutDecision(
            flag=flag,
            enabled=user.lower() in allowed,
            reason="allow_list",
            raw_value=raw,
        )

    def all_flags(self) -> Dict[str, Optional[str]]:
        return self.source.all_flags()
