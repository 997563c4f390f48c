"""
core/metadata.py
----------------
Classification metadata attached to every registered check.

Public API
----------
* :class:`Severity`          — low / medium / high / critical, ordered.
* :class:`EnforcementLevel`  — advisory / mandatory / disabled.
* :class:`CheckMetadata`     — vendors, services, severity, topics, frameworks.
* :data:`SEVERITY_RANK`      — severity → ordinal used for threshold filtering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Union


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self.value]


class EnforcementLevel(str, Enum):
    ADVISORY = "advisory"
    MANDATORY = "mandatory"
    DISABLED = "disabled"


# ---------------------------------------------------------------------------
# Severity ordering
# ---------------------------------------------------------------------------

SEVERITY_RANK: Dict[str, int] = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}


def parse_severity(value: Union[str, Severity, None]) -> Optional[Severity]:
    """
    Convert a user-supplied severity into a :class:`Severity`.

    Args:
        value: A :class:`Severity`, or a case-insensitive severity name.

    Returns:
        The matching :class:`Severity`, or ``None`` if ``value`` is empty or
        does not name a known severity.
    """
    if value is None:
        return None
    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).strip().lower())
    except ValueError:
        return None


def parse_enforcement_level(
    value: Union[str, EnforcementLevel, None],
) -> Optional[EnforcementLevel]:
    """Same as :func:`parse_severity`, for enforcement levels."""
    if value is None:
        return None
    if isinstance(value, EnforcementLevel):
        return value
    try:
        return EnforcementLevel(str(value).strip().lower())
    except ValueError:
        return None


def _normalise(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    seen = []
    for value in values:
        key = str(value).strip().lower()
        if key and key not in seen:
            seen.append(key)
    return tuple(seen)


# ---------------------------------------------------------------------------
# CheckMetadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckMetadata:
    """
    Classification of a check, kept apart from the check body.

    All string values are lower-cased and de-duplicated on construction so
    that filtering is case-insensitive.

    Attributes:
        vendors:    Cloud providers the check applies to (e.g. ``"aws"``).
        services:   Provider sub-services (e.g. ``"ec2"``, ``"rds"``).
        severity:   Risk of a violation.
        topics:     Free-text classification tags (e.g. ``"encryption"``).
        frameworks: Compliance frameworks the check supports (e.g. ``"pcidss"``).
    """

    vendors: Tuple[str, ...]
    services: Tuple[str, ...]
    severity: Union[Severity, str]
    topics: Tuple[str, ...] = field(default_factory=tuple)
    frameworks: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "vendors", _normalise(self.vendors))
        object.__setattr__(self, "services", _normalise(self.services))
        object.__setattr__(self, "topics", _normalise(self.topics))
        object.__setattr__(self, "frameworks", _normalise(self.frameworks))
        parsed = parse_severity(self.severity)
        if parsed is not None:
            object.__setattr__(self, "severity", parsed)

    def to_dict(self) -> Dict[str, object]:
        severity = self.severity.value if isinstance(self.severity, Severity) else self.severity
        return {
            "vendors": list(self.vendors),
            "services": list(self.services),
            "severity": severity,
            "topics": list(self.topics),
            "frameworks": list(self.frameworks),
        }
