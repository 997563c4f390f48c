"""
policies/kubernetes/workloads.py
--------------------------------
Kubernetes Deployment and Service checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import build_config_schema, should_eval_policy, val_to_int
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type

RECOMMENDED_LABELS = (
    "app.kubernetes.io/name",
    "app.kubernetes.io/instance",
    "app.kubernetes.io/version",
    "app.kubernetes.io/component",
    "app.kubernetes.io/part-of",
    "app.kubernetes.io/managed-by",
)


def _check_replica_count(props, args, report_violation):
    if not should_eval_policy(args):
        return
    minimum = val_to_int(args.get_config().get("min_replicas"))
    if minimum is None:
        minimum = 3
    replicas = val_to_int((props.get("spec") or {}).get("replicas"))
    if replicas is None or replicas < minimum:
        report_violation(f"Kubernetes Deployments should have at least {minimum} replicas.")


configure_minimum_replica_count = ResourceValidationPolicy(
    name="kubernetes-apps-v1-deployment-configure-minimum-replica-count",
    description="Checks that Kubernetes Deployments have at least the minimum number of replicas.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.KUBERNETES_DEPLOYMENT, _check_replica_count
    ),
    config_schema=build_config_schema(
        min_replicas={
            "type": "integer",
            "default": 3,
            "description": "Minimum replica count.",
        },
    ),
)


def _recommended_labels_check(kind_label):
    def check(props, args, report_violation):
        if not should_eval_policy(args):
            return
        labels = (props.get("metadata") or {}).get("labels")
        if not labels:
            report_violation(f"Kubernetes {kind_label} should use the recommended labels.")
            return
        if any(key not in RECOMMENDED_LABELS for key in labels):
            report_violation(f"Kubernetes {kind_label} should have the recommended labels.")

    return check


configure_deployment_recommended_labels = ResourceValidationPolicy(
    name="kubernetes-apps-v1-deployment-configure-recommended-labels",
    description="Checks that Kubernetes Deployments use the recommended labels.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.KUBERNETES_DEPLOYMENT, _recommended_labels_check("Deployments")
    ),
    config_schema=build_config_schema(),
)

configure_service_recommended_labels = ResourceValidationPolicy(
    name="kubernetes-core-v1-service-configure-recommended-labels",
    description="Checks that Kubernetes Services use the recommended labels.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.KUBERNETES_SERVICE, _recommended_labels_check("Services")
    ),
    config_schema=build_config_schema(),
)


DEFINITIONS = [
    PolicyDefinition(
        configure_minimum_replica_count,
        CheckMetadata(
            vendors=("kubernetes",),
            services=("apps", "deployment"),
            severity=Severity.HIGH,
            topics=("availability",),
        ),
    ),
    PolicyDefinition(
        configure_deployment_recommended_labels,
        CheckMetadata(
            vendors=("kubernetes",),
            services=("apps", "deployment"),
            severity=Severity.LOW,
            topics=("usability",),
        ),
    ),
    PolicyDefinition(
        configure_service_recommended_labels,
        CheckMetadata(
            vendors=("kubernetes",),
            services=("core", "service"),
            severity=Severity.LOW,
            topics=("usability",),
        ),
    ),
]
