"""
packs/evaluator.py
------------------
Runs the checks of a :class:`~policycatalog.packs.pack.PolicyPack` over a list
of resources and collects what they report.

Each check receives a :class:`~policycatalog.validation.args.ResourceValidationArgs`
carrying the pack's overrides for that check and a ``report_violation``
callback. Checks whose effective enforcement level is ``disabled`` are not run.

Example::

    evaluator = PolicyEvaluator(registry)
    report = evaluator.evaluate(pack, resources)
    print(report.status)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Union

from policycatalog.core.errors import PolicyEvaluationError
from policycatalog.core.result_schema import PackReport, Violation
from policycatalog.packs.pack import PolicyPack
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.records import ResourceValidationPolicy
from policycatalog.validation.args import ResourceValidationArgs
from policycatalog.validation.resources import Resource

logger = logging.getLogger(__name__)

ResourceLike = Union[Resource, Dict[str, Any]]


class PolicyEvaluator:
    """
    Evaluates policy packs against resources.

    Args:
        registry: Registry used to resolve severities and default enforcement
                  levels of the pack's checks.
    """

    def __init__(self, registry: PolicyRegistry) -> None:
        self.registry = registry

    def evaluate(self, pack: PolicyPack, resources: Iterable[ResourceLike]) -> PackReport:
        """
        Run every active check of ``pack`` against every resource.

        Args:
            pack:      The pack to run.
            resources: :class:`Resource` objects or equivalent mappings.

        Returns:
            A :class:`~policycatalog.core.result_schema.PackReport`.

        Raises:
            PolicyEvaluationError: If a check raises.
            ValueError:            If a resource mapping is malformed.
        """
        items: List[Resource] = [
            r if isinstance(r, Resource) else Resource.from_dict(r) for r in resources
        ]
        uncatalogued = sorted({r.type for r in items if r.kind is None})
        if uncatalogued:
            logger.debug("No built-in resource kind for type(s): %s", ", ".join(uncatalogued))
        report = PackReport(pack=pack.name, resources_checked=len(items))

        for policy in pack.policies:
            level = self.registry.effective_enforcement_level(policy)
            if level == "disabled":
                report.policies_skipped.append(policy.name)
                continue
            report.policies_evaluated.append(policy.name)
            overrides = pack.config.get(policy.name) or {}
            for resource in items:
                report.violations.extend(self._run(policy, level, resource, overrides))

        logger.info(
            "Evaluated pack %s: %d policies over %d resources, %d violations (%s)",
            pack.name,
            len(report.policies_evaluated),
            report.resources_checked,
            len(report.violations),
            report.status,
        )
        return report

    def _run(
        self,
        policy: ResourceValidationPolicy,
        level: str,
        resource: Resource,
        overrides: Dict[str, Any],
    ) -> List[Violation]:
        record = self.registry.get_record(policy.name)
        severity = record.severity.value if record else "unknown"
        found: List[Violation] = []

        def report_violation(message: str) -> None:
            found.append(
                Violation(
                    policy_name=policy.name,
                    message=message,
                    resource_name=resource.name,
                    resource_type=resource.type,
                    severity=severity,
                    enforcement_level=level,
                    urn=resource.urn,
                )
            )

        args = ResourceValidationArgs(
            resource_type=resource.type,
            name=resource.name,
            props=resource.props,
            urn=resource.urn,
            config_schema=policy.config_schema,
            config=overrides,
        )
        try:
            policy.validate_resource(args, report_violation)
        except Exception as exc:
            raise PolicyEvaluationError(policy.name, resource.name, exc) from exc
        return found
