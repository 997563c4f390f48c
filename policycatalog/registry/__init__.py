"""registry sub-package — policy records, filter criteria and the registry itself."""

from policycatalog.registry.criteria import FilterCriteria
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.records import (
    PolicyDefinition,
    PolicyRecord,
    ResourceValidationPolicy,
)
from policycatalog.registry.stats import build_policy_manifest, framework_coverage

__all__ = [
    "FilterCriteria",
    "PolicyRegistry",
    "PolicyDefinition",
    "PolicyRecord",
    "ResourceValidationPolicy",
    "build_policy_manifest",
    "framework_coverage",
]
