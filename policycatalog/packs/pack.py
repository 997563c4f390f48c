"""
packs/pack.py
-------------
Policy packs and the assembler that builds them from a registry.

A pack is a named list of checks activated together for one compliance
objective, plus the deployer's per-check configuration. The evaluation host
refuses the same check in two packs, so :class:`PolicyPackAssembler` hands
each registered check out at most once until :meth:`~PolicyPackAssembler.reset`
is called. The registry itself is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

from policycatalog.core.metadata import EnforcementLevel, parse_enforcement_level
from policycatalog.registry.manager import CriteriaLike, PolicyRegistry
from policycatalog.registry.records import ResourceValidationPolicy
from policycatalog.validation.args import POLICY_CONFIG_SCHEMA

logger = logging.getLogger(__name__)


@dataclass
class PolicyPack:
    """
    Attributes:
        name:              Pack name.
        policies:          Active checks, in registry order.
        config:            Per-check overrides keyed by policy name.
        enforcement_level: Level forced on every check of the pack, if any.
    """

    name: str
    policies: List[ResourceValidationPolicy] = field(default_factory=list)
    config: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    enforcement_level: Optional[str] = None

    @property
    def policy_names(self) -> List[str]:
        return [p.name for p in self.policies]

    def __len__(self) -> int:
        return len(self.policies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "enforcement_level": self.enforcement_level,
            "policies": [
                {"name": p.name, "enforcement_level": p.enforcement} for p in self.policies
            ],
            "config": self.config,
        }


def check_policy_config(
    registry: PolicyRegistry,
    config: Dict[str, Dict[str, Any]],
    strict: bool = False,
) -> None:
    """
    Compare per-check overrides against the registered config schemas.

    Overrides for unknown policies, or options a policy's schema does not
    declare, are logged as warnings, or raised when ``strict`` is set.

    Raises:
        ValueError: In ``strict`` mode, on the first unknown policy or option.
    """
    for policy_name, overrides in config.items():
        policy = registry.get_policy_by_name(policy_name)
        if policy is None:
            _complain(strict, f"Config given for unknown policy {policy_name!r}.")
            continue
        if not isinstance(overrides, dict):
            raise ValueError(f"Config for policy {policy_name!r} must be a mapping.")
        schema = policy.config_schema or POLICY_CONFIG_SCHEMA
        declared = set((schema.get("properties") or {}).keys())
        for option in overrides:
            if option not in declared:
                _complain(
                    strict,
                    f"Policy {policy_name!r} has no config option {option!r} "
                    f"(known: {', '.join(sorted(declared))}).",
                )


def _complain(strict: bool, message: str) -> None:
    if strict:
        raise ValueError(message)
    logger.warning(message)


class PolicyPackAssembler:
    """
    Builds :class:`PolicyPack` objects from a registry.

    Keeps track of what it handed out: :attr:`remaining` lists the checks no
    pack has received yet and :attr:`selected_policies` the ones that were,
    with the enforcement level they were handed out with.

    Args:
        registry: The populated registry to select from.
    """

    def __init__(self, registry: PolicyRegistry) -> None:
        self.registry = registry
        self._assigned: Set[str] = set()
        self._selected: List[ResourceValidationPolicy] = []

    @property
    def remaining(self) -> List[str]:
        """Names of registered checks not yet placed in any pack."""
        return [r.name for r in self.registry if r.name not in self._assigned]

    @property
    def selected_policies(self) -> List[ResourceValidationPolicy]:
        """Checks handed out so far, in hand-out order."""
        return list(self._selected)

    @property
    def selected_policy_count(self) -> int:
        return len(self._selected)

    def reset(self) -> None:
        """Make every registered check available to new packs again."""
        self._assigned.clear()
        self._selected.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Return selection statistics.

        Returns:
            Dict with ``policy_count``, ``selected_policy_count``,
            ``remaining_policy_count``, ``selected_policies`` (name and
            effective enforcement level of each) and ``registered_modules``.
        """
        return {
            "policy_count": len(self.registry),
            "selected_policy_count": self.selected_policy_count,
            "remaining_policy_count": len(self.remaining),
            "selected_policies": [
                {
                    "name": p.name,
                    "enforcement_level": self.registry.effective_enforcement_level(p),
                }
                for p in self._selected
            ],
            "registered_modules": [m.to_dict() for m in self.registry.registered_modules],
        }

    def selection_summary(
        self,
        general: bool = True,
        modules: bool = True,
        selected_names: bool = False,
    ) -> str:
        """Render :meth:`get_stats` as text, one section per enabled flag."""
        stats = self.get_stats()
        sections: List[List[str]] = []
        if general:
            sections.append([
                f"Total registered policies: {stats['policy_count']}",
                f"Selected policies: {stats['selected_policy_count']}",
                f"Remaining (unselected) policies: {stats['remaining_policy_count']}",
            ])
        if modules:
            lines = ["Included policy packages:"]
            lines += [f"  {m['name']}: {m['version']}" for m in stats["registered_modules"]]
            sections.append(lines)
        if selected_names:
            lines = ["Selected policies:"]
            lines += [
                f"  {p['name']}: enforcement_level: {p['enforcement_level']}"
                for p in stats["selected_policies"]
            ]
            sections.append(lines)
        return "\n---\n".join("\n".join(lines) for lines in sections)

    def assemble(
        self,
        name: str,
        criteria: CriteriaLike = None,
        enforcement_level: Union[EnforcementLevel, str, None] = None,
        config: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> PolicyPack:
        """
        Select the matching checks not handed to an earlier pack.

        Args:
            name:              Pack name.
            criteria:          Filter criteria, or a list of cherry-picked
                               checks (see :meth:`PolicyRegistry.filter_policies`).
            enforcement_level: Optional level forced on every selected check.
            config:            Per-check overrides keyed by policy name.

        Returns:
            The assembled :class:`PolicyPack`.
        """
        config = dict(config or {})
        check_policy_config(self.registry, config, strict=self.registry.config.strict_config)

        selected = self.registry.filter_policies(criteria, enforcement_level)
        fresh = [p for p in selected if p.name not in self._assigned]
        if len(fresh) < len(selected):
            logger.info(
                "Pack %s: %d matching policies already belong to another pack",
                name,
                len(selected) - len(fresh),
            )
        self._assigned.update(p.name for p in fresh)
        self._selected.extend(fresh)

        parsed = parse_enforcement_level(enforcement_level)
        level = parsed.value if parsed else None
        logger.info("Assembled pack %s with %d policies", name, len(fresh))
        return PolicyPack(name=name, policies=fresh, config=config, enforcement_level=level)
