"""validation sub-package — resource kinds, check arguments and the per-check config gate."""

from policycatalog.validation.args import (
    POLICY_CONFIG_SCHEMA,
    ResourceValidationArgs,
    build_config_schema,
    should_eval_policy,
    val_to_boolean,
    val_to_int,
)
from policycatalog.validation.resources import (
    Resource,
    ResourceKind,
    validate_resource_of_type,
)

__all__ = [
    "POLICY_CONFIG_SCHEMA",
    "ResourceValidationArgs",
    "build_config_schema",
    "should_eval_policy",
    "val_to_boolean",
    "val_to_int",
    "Resource",
    "ResourceKind",
    "validate_resource_of_type",
]
