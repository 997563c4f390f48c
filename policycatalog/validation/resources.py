"""
validation/resources.py
-----------------------
Resource kinds and the typed check adapter.

Every check targets exactly one resource kind. Instead of relying on the
shape of whatever properties happen to arrive, a check is bound to a member of
the closed :class:`ResourceKind` enumeration through
:func:`validate_resource_of_type`; the adapter only calls the predicate for
resources of that kind.

Usage
-----
::

    def _check(props, args, report_violation):
        if props.get("acl") == "public-read":
            report_violation("S3 buckets should not be publicly readable.")

    validate = validate_resource_of_type(ResourceKind.AWS_S3_BUCKET, _check)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from policycatalog.validation.args import ResourceValidationArgs

#: Callback supplied by the evaluation host; receives one violation message.
ReportViolation = Callable[[str], None]

#: Signature of a registered check body.
ValidateResource = Callable[[ResourceValidationArgs, ReportViolation], None]

#: Signature of a kind-specific predicate: ``(props, args, report_violation)``.
ResourcePredicate = Callable[[Dict[str, Any], ResourceValidationArgs, ReportViolation], None]


class ResourceKind(str, Enum):
    """Resource type tokens understood by the built-in catalog."""

    AWS_EC2_SECURITY_GROUP = "aws:ec2/securityGroup:SecurityGroup"
    AWS_EC2_AMI = "aws:ec2/ami:Ami"
    AWS_S3_BUCKET = "aws:s3/bucket:Bucket"
    AWS_RDS_INSTANCE = "aws:rds/instance:Instance"
    AWS_ECS_SERVICE = "aws:ecs/service:Service"
    AZURE_VIRTUAL_MACHINE = "azure-native:compute:VirtualMachine"
    GOOGLE_STORAGE_BUCKET = "gcp:storage/bucket:Bucket"
    KUBERNETES_DEPLOYMENT = "kubernetes:apps/v1:Deployment"
    KUBERNETES_SERVICE = "kubernetes:core/v1:Service"

    @classmethod
    def from_type(cls, type_token: str) -> Optional["ResourceKind"]:
        """Return the kind for ``type_token``, or ``None`` if it is not catalogued."""
        try:
            return cls(type_token)
        except ValueError:
            return None


@dataclass
class Resource:
    """
    A resource configuration as handed over by the infrastructure-as-code tool.

    Attributes:
        type:  Resource type token (e.g. ``aws:s3/bucket:Bucket``).
        name:  Logical resource name.
        props: Resource input properties.
        urn:   Optional unique resource identifier.
    """

    type: str
    name: str
    props: Dict[str, Any] = field(default_factory=dict)
    urn: str = ""

    @property
    def kind(self) -> Optional[ResourceKind]:
        return ResourceKind.from_type(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resource":
        """
        Build a resource from a plain mapping.

        Raises:
            ValueError: If ``type`` or ``name`` is missing, or ``props`` is not a mapping.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Resource entry must be a mapping, got {type(data).__name__}.")
        missing = [key for key in ("type", "name") if not data.get(key)]
        if missing:
            raise ValueError(f"Resource entry missing required key(s): {', '.join(missing)}")
        props = data.get("props") or {}
        if not isinstance(props, dict):
            raise ValueError(f"Resource {data['name']!r}: 'props' must be a mapping.")
        return cls(
            type=str(data["type"]),
            name=str(data["name"]),
            props=props,
            urn=str(data.get("urn") or ""),
        )


def validate_resource_of_type(
    kind: ResourceKind,
    predicate: ResourcePredicate,
) -> ValidateResource:
    """
    Bind a predicate to a single resource kind.

    Args:
        kind:      The :class:`ResourceKind` the predicate understands.
        predicate: Called as ``predicate(props, args, report_violation)``.

    Returns:
        A ``validate_resource`` callable suitable for a
        :class:`~policycatalog.registry.records.ResourceValidationPolicy`.
        Resources of any other kind are ignored.
    """

    def validate_resource(args: ResourceValidationArgs, report_violation: ReportViolation) -> None:
        if args.resource_type != kind.value:
            return
        predicate(args.props, args, report_violation)

    validate_resource.resource_kind = kind  # type: ignore[attr-defined]
    return validate_resource
