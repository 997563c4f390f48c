"""
registry/records.py
-------------------
The values a registry stores.

* :class:`ResourceValidationPolicy` — the check body: name, description,
  enforcement level, ``validate_resource`` callable, optional config schema.
* :class:`PolicyDefinition`         — a check body paired with its
  :class:`~policycatalog.core.metadata.CheckMetadata`, as declared by a
  policy module.
* :class:`PolicyRecord`             — what the registry keeps per check.
* :class:`ModuleInfo`               — name and version of a registered policy package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from policycatalog.core.metadata import (
    CheckMetadata,
    EnforcementLevel,
    Severity,
    parse_enforcement_level,
)
from policycatalog.validation.resources import ValidateResource


@dataclass(frozen=True)
class ResourceValidationPolicy:
    """
    A single compliance check.

    Attributes:
        name:              Unique, human-readable identifier.
        description:       Free-text description.
        validate_resource: ``(args, report_violation) -> None``.
        enforcement_level: How strictly a violation is treated; ``None`` inherits
                           the registry default.
        config_schema:     Recognised per-check configuration options.
    """

    name: str
    description: str
    validate_resource: ValidateResource
    enforcement_level: Optional[Union[EnforcementLevel, str]] = None
    config_schema: Optional[Dict[str, Any]] = None

    @property
    def enforcement(self) -> Optional[str]:
        """The enforcement level as a normalised string, or ``None`` when unset."""
        level = self.enforcement_level
        if level is None:
            return None
        parsed = parse_enforcement_level(level)
        return parsed.value if parsed else str(level).strip().lower()


@dataclass(frozen=True)
class PolicyDefinition:
    policy: ResourceValidationPolicy
    metadata: CheckMetadata


@dataclass(frozen=True)
class PolicyRecord:
    """
    One entry in a :class:`~policycatalog.registry.manager.PolicyRegistry`.

    Attributes:
        policy:   The registered check, exactly as passed in.
        metadata: Its normalised classification metadata.
        enforcement_level: The policy's enforcement level, or the registry
                           default when the policy leaves it unset.
        module:   Dotted module path of the code that declared the check, if known.
    """

    policy: ResourceValidationPolicy
    metadata: CheckMetadata
    enforcement_level: str = "advisory"
    module: str = field(default="")

    @property
    def name(self) -> str:
        return self.policy.name

    @property
    def severity(self) -> Severity:
        return self.metadata.severity  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.policy.description,
            "enforcement_level": self.enforcement_level,
        }
        data.update(self.metadata.to_dict())
        data["module"] = self.module
        return data


@dataclass(frozen=True)
class ModuleInfo:
    """A policy package that contributed checks to a registry."""

    name: str
    version: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "version": self.version}
