"""
core/result_schema.py
---------------------
Structured, typed result objects returned by the policy evaluator.

Classes
-------
* :class:`Violation`  — one message reported by one check against one resource.
* :class:`PackReport` — full outcome of evaluating a policy pack over a set of
                        resources, with a PASS / FAIL status.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List


# ---------------------------------------------------------------------------
# Violation
# ---------------------------------------------------------------------------

@dataclass
class Violation:
    """
    A single violation reported through the ``report_violation`` callback.

    Attributes:
        policy_name:       Name of the policy that reported the violation.
        message:           The message passed to ``report_violation``.
        resource_name:     Logical name of the offending resource.
        resource_type:     Resource type token (e.g. ``aws:s3/bucket:Bucket``).
        severity:          Severity of the policy (``"low"`` … ``"critical"``).
        enforcement_level: Effective enforcement level of the policy.
        urn:               Resource URN, when the host supplied one.
    """

    policy_name: str
    message: str
    resource_name: str
    resource_type: str
    severity: str
    enforcement_level: str
    urn: str = ""

    @property
    def is_mandatory(self) -> bool:
        return self.enforcement_level == "mandatory"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy_name,
            "message": self.message,
            "resource": self.resource_name,
            "resource_type": self.resource_type,
            "urn": self.urn,
            "severity": self.severity,
            "enforcement_level": self.enforcement_level,
        }


# ---------------------------------------------------------------------------
# PackReport
# ---------------------------------------------------------------------------

@dataclass
class PackReport:
    """
    Outcome of running a policy pack against a list of resources.

    Attributes:
        pack:               Name of the evaluated pack.
        policies_evaluated: Names of the policies that ran, in pack order.
        policies_skipped:   Names of disabled policies that did not run.
        resources_checked:  Number of resources inspected.
        violations:         Every violation reported, in evaluation order.
    """

    pack: str
    policies_evaluated: List[str] = field(default_factory=list)
    policies_skipped: List[str] = field(default_factory=list)
    resources_checked: int = 0
    violations: List[Violation] = field(default_factory=list)

    @property
    def mandatory_violations(self) -> List[Violation]:
        return [v for v in self.violations if v.is_mandatory]

    @property
    def status(self) -> str:
        """``"FAIL"`` if any mandatory policy reported a violation, else ``"PASS"``."""
        return "FAIL" if self.mandatory_violations else "PASS"

    @property
    def passed(self) -> bool:
        return self.status == "PASS"

    def violations_by_policy(self) -> Dict[str, List[Violation]]:
        grouped: Dict[str, List[Violation]] = {}
        for violation in self.violations:
            grouped.setdefault(violation.policy_name, []).append(violation)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialise to a plain dictionary.

        Returns:
            Dict representation of this report.
        """
        return {
            "pack": self.pack,
            "status": self.status,
            "passed": self.passed,
            "resources_checked": self.resources_checked,
            "policies_evaluated": list(self.policies_evaluated),
            "policies_skipped": list(self.policies_skipped),
            "violation_count": len(self.violations),
            "mandatory_violation_count": len(self.mandatory_violations),
            "violations": [v.to_dict() for v in self.violations],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
