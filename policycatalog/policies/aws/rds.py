"""
policies/aws/rds.py
-------------------
RDS instance checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import (
    build_config_schema,
    should_eval_policy,
    val_to_boolean,
    val_to_int,
)
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type


def _check_storage_encrypted(props, args, report_violation):
    if not should_eval_policy(args):
        return
    # older provider releases send "true"/"false" strings
    if val_to_boolean(props.get("storageEncrypted")) is not True:
        report_violation("RDS Instance storage should be encrypted.")


enable_storage_encryption = ResourceValidationPolicy(
    name="aws-rds-instance-enable-storage-encryption",
    description="Checks that RDS Instances storage is encrypted.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.AWS_RDS_INSTANCE, _check_storage_encrypted
    ),
    config_schema=build_config_schema(),
)


def _check_backup_retention(props, args, report_violation):
    if not should_eval_policy(args):
        return
    minimum = val_to_int(args.get_config().get("min_retention_days"))
    if minimum is None:
        minimum = 2
    retention = val_to_int(props.get("backupRetentionPeriod"))
    if retention is None or retention < minimum:
        report_violation(
            f"RDS Instances backup retention period should be at least {minimum} days."
        )


disallow_low_backup_retention_period = ResourceValidationPolicy(
    name="aws-rds-instance-disallow-low-backup-retention-period",
    description="Checks that RDS Instances backup retention policy is adequate.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.AWS_RDS_INSTANCE, _check_backup_retention
    ),
    config_schema=build_config_schema(
        min_retention_days={
            "type": "integer",
            "default": 2,
            "description": "Minimum number of days automated backups are kept.",
        },
    ),
)


DEFINITIONS = [
    PolicyDefinition(
        enable_storage_encryption,
        CheckMetadata(
            vendors=("aws",),
            services=("rds",),
            severity=Severity.HIGH,
            topics=("encryption", "storage"),
            frameworks=("pcidss", "hitrust", "iso27001"),
        ),
    ),
    PolicyDefinition(
        disallow_low_backup_retention_period,
        CheckMetadata(
            vendors=("aws",),
            services=("rds",),
            severity=Severity.MEDIUM,
            topics=("backup", "resilience"),
            frameworks=("hitrust",),
        ),
    ),
]
