"""
registry/criteria.py
--------------------
Selection criteria for :meth:`PolicyRegistry.filter_policies`.

Matching rule
-------------
A record matches when, for every criteria field that is set:

* ``vendors`` / ``services`` / ``frameworks`` / ``topics`` — the record's
  values intersect the criteria values (an ``or`` within a field);
* ``severity``   — the record is at least as severe;
* ``severities`` — the record's severity is one of the listed values.

Fields combine with ``and``. An omitted or empty field matches everything.
All comparisons are case-insensitive.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable as IterableABC
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from policycatalog.core.metadata import SEVERITY_RANK, Severity

logger = logging.getLogger(__name__)

#: Set-valued criteria fields, in the order they are applied.
SET_FIELDS: Tuple[str, ...] = ("vendors", "services", "frameworks", "topics")

_KNOWN_KEYS = set(SET_FIELDS) | {"severity", "severities"}


def _as_tuple(values: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    if values is None:
        return ()
    # scalars such as YAML `vendors: 5` become a single value
    if isinstance(values, (str, bytes)) or not isinstance(values, IterableABC):
        values = [values]
    return tuple(str(v).strip().lower() for v in values if str(v).strip())


@dataclass(frozen=True)
class FilterCriteria:
    vendors: Tuple[str, ...] = field(default_factory=tuple)
    services: Tuple[str, ...] = field(default_factory=tuple)
    frameworks: Tuple[str, ...] = field(default_factory=tuple)
    topics: Tuple[str, ...] = field(default_factory=tuple)
    severity: Optional[str] = None
    severities: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for name in SET_FIELDS + ("severities",):
            object.__setattr__(self, name, _as_tuple(getattr(self, name)))
        severity = self.severity
        if isinstance(severity, Severity):
            severity = severity.value
        if severity is not None:
            severity = str(severity).strip().lower() or None
        object.__setattr__(self, "severity", severity)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FilterCriteria":
        """
        Build criteria from a plain mapping such as a parsed YAML section.

        Unknown keys are logged and ignored.
        """
        data = data or {}
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            logger.warning("Ignoring unknown filter criteria key(s): %s", ", ".join(unknown))
        kwargs = {key: data[key] for key in _KNOWN_KEYS if key in data}
        return cls(**kwargs)

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in SET_FIELDS + ("severities",)) and not self.severity

    @property
    def min_rank(self) -> Optional[int]:
        """Rank of ``severity``; an unknown severity ranks above every real one."""
        if self.severity is None:
            return None
        return SEVERITY_RANK.get(self.severity, len(SEVERITY_RANK) + 1)

    def to_dict(self) -> dict:
        return {
            "vendors": list(self.vendors),
            "services": list(self.services),
            "frameworks": list(self.frameworks),
            "topics": list(self.topics),
            "severity": self.severity,
            "severities": list(self.severities),
        }
