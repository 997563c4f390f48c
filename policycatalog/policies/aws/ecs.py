"""
policies/aws/ecs.py
-------------------
ECS service checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import build_config_schema, should_eval_policy
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type


def _check_tags(props, args, report_violation):
    if not should_eval_policy(args):
        return
    config = args.get_config()
    required_tags = config.get("required_tags") or []
    min_tag_count = config.get("min_tag_count", 1)

    tags = props.get("tags") or {}
    if not tags:
        report_violation(
            "ECS Service does not have any tags. All ECS Services should have tags "
            "to assist with management and compliance."
        )
        return

    if len(tags) < min_tag_count:
        report_violation(
            f"ECS Service has {len(tags)} tags but the required minimum is {min_tag_count}."
        )

    for tag in required_tags:
        if not tags.get(tag):
            report_violation(f"ECS Service is missing required tag: {tag}")


require_tags = ResourceValidationPolicy(
    name="aws-ecs-service-require-tags",
    description="Ensures that ECS services have appropriate tags to assist with management and compliance.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(ResourceKind.AWS_ECS_SERVICE, _check_tags),
    config_schema=build_config_schema(
        required_tags={
            "type": "array",
            "items": {"type": "string"},
            "default": [],
            "description": "Tag names that must be present on all ECS services.",
        },
        min_tag_count={
            "type": "number",
            "default": 1,
            "description": "Minimum number of tags required on ECS services.",
        },
    ),
)


DEFINITIONS = [
    PolicyDefinition(
        require_tags,
        CheckMetadata(
            vendors=("aws",),
            services=("ecs",),
            severity=Severity.MEDIUM,
            topics=("tagging", "operations"),
            frameworks=("cis",),
        ),
    ),
]
