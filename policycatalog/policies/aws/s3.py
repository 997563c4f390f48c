"""
policies/aws/s3.py
------------------
S3 bucket checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import build_config_schema, should_eval_policy
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type

PUBLIC_ACLS = ("public-read", "public-read-write")


def _check_public_read(props, args, report_violation):
    if not should_eval_policy(args):
        return
    if props.get("acl") in PUBLIC_ACLS:
        report_violation("You cannot set public-read or public-read-write on an S3 bucket.")


disallow_public_read = ResourceValidationPolicy(
    name="aws-s3-bucket-disallow-public-read",
    description="Prohibits setting the publicRead or publicReadWrite permission on AWS S3 buckets.",
    enforcement_level=EnforcementLevel.MANDATORY,
    validate_resource=validate_resource_of_type(ResourceKind.AWS_S3_BUCKET, _check_public_read),
    config_schema=build_config_schema(),
)


def _check_server_side_encryption(props, args, report_violation):
    if not should_eval_policy(args):
        return
    if not props.get("serverSideEncryptionConfiguration"):
        report_violation("S3 Buckets Server-Side Encryption (SSE) should be enabled.")


enable_server_side_encryption = ResourceValidationPolicy(
    name="aws-s3-bucket-enable-server-side-encryption",
    description="Check that S3 Buckets have Server-Side Encryption (SSE) enabled.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.AWS_S3_BUCKET, _check_server_side_encryption
    ),
    config_schema=build_config_schema(),
)


DEFINITIONS = [
    PolicyDefinition(
        disallow_public_read,
        CheckMetadata(
            vendors=("aws",),
            services=("s3",),
            severity=Severity.CRITICAL,
            topics=("storage", "security"),
            frameworks=("pcidss", "hitrust", "iso27001"),
        ),
    ),
    PolicyDefinition(
        enable_server_side_encryption,
        CheckMetadata(
            vendors=("aws",),
            services=("s3",),
            severity=Severity.HIGH,
            topics=("encryption", "storage"),
            frameworks=("pcidss", "hitrust", "iso27001"),
        ),
    ),
]
