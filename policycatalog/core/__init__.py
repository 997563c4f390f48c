"""core sub-package — configuration, metadata enums, errors and result objects."""

from policycatalog.core.config import CatalogConfig, DEFAULT_CONFIG
from policycatalog.core.errors import (
    PolicyCatalogError,
    PolicyRegistrationError,
    InvalidDefinitionError,
    DuplicateNameError,
    PolicyEvaluationError,
)
from policycatalog.core.metadata import (
    CheckMetadata,
    EnforcementLevel,
    Severity,
    SEVERITY_RANK,
)
from policycatalog.core.result_schema import Violation, PackReport

__all__ = [
    "CatalogConfig",
    "DEFAULT_CONFIG",
    "PolicyCatalogError",
    "PolicyRegistrationError",
    "InvalidDefinitionError",
    "DuplicateNameError",
    "PolicyEvaluationError",
    "CheckMetadata",
    "EnforcementLevel",
    "Severity",
    "SEVERITY_RANK",
    "Violation",
    "PackReport",
]
