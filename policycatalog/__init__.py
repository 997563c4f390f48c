"""
policycatalog — compliance policy registry and pack selector
"""

__version__ = "0.1.0"
__author__ = "policycatalog"

from policycatalog.core.config import CatalogConfig, DEFAULT_CONFIG
from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.records import ResourceValidationPolicy

__all__ = [
    "CatalogConfig",
    "DEFAULT_CONFIG",
    "CheckMetadata",
    "EnforcementLevel",
    "Severity",
    "PolicyRegistry",
    "ResourceValidationPolicy",
    "__version__",
]
