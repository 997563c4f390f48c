"""
core/config.py
--------------
Centralized configuration management for the policycatalog SDK.
"""

from dataclasses import dataclass

from policycatalog.core.metadata import parse_enforcement_level


@dataclass
class CatalogConfig:
    """
    Configuration object shared by the registry, pack assembler and evaluator.

    Attributes:
        default_enforcement_level: Enforcement level applied to policies that
            do not declare one.
        warn_on_empty_selection: Log a warning when a filter call selects no
            policies at all.
        strict_config: Raise ``ValueError`` when a pack configures a key the
            policy's config schema does not declare (otherwise warn).
    """

    default_enforcement_level: str = "advisory"
    warn_on_empty_selection: bool = True
    strict_config: bool = False

    def validate(self) -> None:
        """Validate configuration values are within acceptable ranges."""
        if parse_enforcement_level(self.default_enforcement_level) is None:
            raise ValueError(
                "default_enforcement_level must be one of advisory, mandatory, disabled; "
                f"got {self.default_enforcement_level!r}"
            )


# Singleton default config; callers may override by passing their own instance.
DEFAULT_CONFIG = CatalogConfig()
