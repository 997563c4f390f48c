"""
registry/stats.py
-----------------
Reporting helpers over a populated registry.

* :func:`framework_coverage`    — which vendors and services each compliance
                                  framework's checks cover.
* :func:`build_policy_manifest` — deterministic, JSON-ready description of
                                  every registered check.
"""

from __future__ import annotations

from typing import Any, Dict, List

from policycatalog.registry.manager import PolicyRegistry

#: Bucket for checks that declare no framework.
NO_FRAMEWORK = "none"


def framework_coverage(registry: PolicyRegistry) -> Dict[str, Dict[str, Any]]:
    """
    Summarise coverage per compliance framework.

    Args:
        registry: A populated registry.

    Returns:
        Mapping of framework id → ``{"policy_count", "policies", "vendors",
        "services", "severity"}``, sorted by framework id. Checks without a
        framework are grouped under :data:`NO_FRAMEWORK`.
    """
    coverage: Dict[str, Dict[str, Any]] = {}
    for record in registry:
        frameworks = record.metadata.frameworks or (NO_FRAMEWORK,)
        for framework in frameworks:
            entry = coverage.setdefault(
                framework,
                {"policies": [], "vendors": set(), "services": set(), "severity": {}},
            )
            entry["policies"].append(record.name)
            entry["vendors"].update(record.metadata.vendors)
            entry["services"].update(record.metadata.services)
            sev = record.severity.value
            entry["severity"][sev] = entry["severity"].get(sev, 0) + 1

    result: Dict[str, Dict[str, Any]] = {}
    for framework in sorted(coverage):
        entry = coverage[framework]
        result[framework] = {
            "policy_count": len(entry["policies"]),
            "policies": entry["policies"],
            "vendors": sorted(entry["vendors"]),
            "services": sorted(entry["services"]),
            "severity": entry["severity"],
        }
    return result


def build_policy_manifest(registry: PolicyRegistry) -> List[Dict[str, Any]]:
    """Return one manifest entry per registered check, sorted by name."""
    return [record.to_dict() for record in sorted(registry, key=lambda r: r.name)]
