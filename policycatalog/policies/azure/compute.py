"""
policies/azure/compute.py
-------------------------
Azure virtual machine checks.
"""

from policycatalog.core.metadata import CheckMetadata, EnforcementLevel, Severity
from policycatalog.registry.records import PolicyDefinition, ResourceValidationPolicy
from policycatalog.validation.args import build_config_schema, should_eval_policy, val_to_boolean
from policycatalog.validation.resources import ResourceKind, validate_resource_of_type


def _check_password_authentication(props, args, report_violation):
    if not should_eval_policy(args):
        return
    linux = (props.get("osProfile") or {}).get("linuxConfiguration")
    if linux is None:
        return
    if val_to_boolean(linux.get("disablePasswordAuthentication")) is not True:
        report_violation(
            "Azure Linux Virtual Machines should have password authentication disabled."
        )


disallow_password_authentication = ResourceValidationPolicy(
    name="azure-native-compute-virtualmachine-disallow-password-authentication",
    description="Checks that Azure Linux Virtual Machines do not allow password authentication.",
    enforcement_level=EnforcementLevel.ADVISORY,
    validate_resource=validate_resource_of_type(
        ResourceKind.AZURE_VIRTUAL_MACHINE, _check_password_authentication
    ),
    config_schema=build_config_schema(),
)


DEFINITIONS = [
    PolicyDefinition(
        disallow_password_authentication,
        CheckMetadata(
            vendors=("azure",),
            services=("compute",),
            severity=Severity.HIGH,
            topics=("security", "authentication"),
            frameworks=("cis", "iso27001"),
        ),
    ),
]
