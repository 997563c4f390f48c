"""
policies/google/storage.py
--------------------------
Google Cloud Storage bucket checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import build_config_schema, should_eval_policy, val_to_boolean
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type


def _check_uniform_access(props, args, report_violation):
    if not should_eval_policy(args):
        return
    if val_to_boolean(props.get("uniformBucketLevelAccess")) is not True:
        report_violation("Storage Buckets should have uniform bucket-level access enabled.")


enable_uniform_bucket_level_access = ResourceValidationPolicy(
    name="gcp-storage-bucket-enable-uniform-bucket-level-access",
    description="Checks that Storage Buckets use uniform bucket-level access.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.GOOGLE_STORAGE_BUCKET, _check_uniform_access
    ),
    config_schema=build_config_schema(),
)


DEFINITIONS = [
    PolicyDefinition(
        enable_uniform_bucket_level_access,
        CheckMetadata(
            vendors=("google",),
            services=("storage",),
            severity=Severity.MEDIUM,
            topics=("storage", "access-control"),
            frameworks=("cis",),
        ),
    ),
]
