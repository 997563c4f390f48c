"""
policies/aws/ec2.py
-------------------
EC2 checks: security group ingress and AMI age.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import (
    ResourceValidationArgs,
    build_config_schema,
    should_eval_policy,
)
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type


def _check_public_ingress(props: Dict[str, Any], args: ResourceValidationArgs, report_violation) -> None:
    if not should_eval_policy(args):
        return
    ingress = props.get("ingress") or []
    if any("0.0.0.0/0" in (rule.get("cidrBlocks") or []) for rule in ingress):
        report_violation(
            "EC2 Security Groups should not permit ingress traffic from the public internet (0.0.0.0/0)."
        )
    if any("::/0" in (rule.get("ipv6CidrBlocks") or []) for rule in ingress):
        report_violation(
            "EC2 Security Groups should not permit ingress traffic from the public internet (::/0)."
        )


disallow_public_internet_ingress = ResourceValidationPolicy(
    name="aws-ec2-securitygroup-disallow-public-internet-ingress",
    description="Check that EC2 Security Groups do not allow ingress traffic from the Internet.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.AWS_EC2_SECURITY_GROUP, _check_public_ingress
    ),
    config_schema=build_config_schema(),
)


def _parse_date(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _check_image_age(props: Dict[str, Any], args: ResourceValidationArgs, report_violation) -> None:
    if not should_eval_policy(args):
        return
    max_age_in_days = args.get_config().get("max_age_in_days", 90)

    created = _parse_date(props.get("creationDate"))
    if created is None:
        report_violation(
            "AMI creation date is not available, unable to determine image age. "
            "Ensure AMIs have creation dates."
        )
        return

    age_in_days = (datetime.now(timezone.utc) - created).total_seconds() / 86400
    if age_in_days > max_age_in_days:
        report_violation(
            f"AMI is {int(age_in_days)} days old, which exceeds the maximum allowed age of "
            f"{max_age_in_days} days. AMIs should be regularly updated with latest patches "
            "and security updates."
        )


restrict_image_age = ResourceValidationPolicy(
    name="aws-ec2-ami-restrict-image-age",
    description="Ensures that Amazon Machine Images (AMIs) are not older than the maximum allowed age.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(ResourceKind.AWS_EC2_AMI, _check_image_age),
    config_schema=build_config_schema(
        max_age_in_days={
            "type": "number",
            "default": 90,
            "description": "Maximum allowed age for AMIs in days.",
        },
    ),
)


DEFINITIONS = [
    PolicyDefinition(
        disallow_public_internet_ingress,
        CheckMetadata(
            vendors=("aws",),
            services=("ec2",),
            severity=Severity.CRITICAL,
            topics=("network",),
            frameworks=("pcidss", "cis"),
        ),
    ),
    PolicyDefinition(
        restrict_image_age,
        CheckMetadata(
            vendors=("aws",),
            services=("ec2",),
            severity=Severity.MEDIUM,
            topics=("security", "compliance"),
            frameworks=("cis",),
        ),
    ),
]
