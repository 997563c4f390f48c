from datetime import datetime, timedelta, timezone

import pytest

from policycatalog.policies import BUILTIN_MODULES, register_builtin_policies
from policycatalog.policies.aws import ec2, ecs, rds, s3
from policycatalog.policies.azure import compute
from policycatalog.policies.google import storage
from policycatalog.policies.kubernetes import workloads
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.stats import NO_FRAMEWORK, build_policy_manifest, framework_coverage
from policycatalog.validation.args import ResourceValidationArgs
from policycatalog.validation.resources import ResourceKind


def run(policy, kind, props, config=None, name="res"):
    args = ResourceValidationArgs(
        resource_type=kind.value,
        name=name,
        props=props,
        config_schema=policy.config_schema,
        config=config or {},
    )
    messages = []
    policy.validate_resource(args, messages.append)
    return messages


@pytest.fixture
def registry():
    registry = PolicyRegistry()
    register_builtin_policies(registry)
    return registry


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def test_every_builtin_registers_once(registry):
    expected = sum(len(module.DEFINITIONS) for module in BUILTIN_MODULES)
    assert len(registry) == expected == 12
    assert len({r.name for r in registry}) == expected


def test_registering_builtins_twice_fails(registry):
    from policycatalog.core.errors import DuplicateNameError

    with pytest.raises(DuplicateNameError):
        register_builtin_policies(registry)


def test_records_know_their_module(registry):
    record = registry.get_record("aws-s3-bucket-disallow-public-read")
    assert record.module == "policycatalog.policies.aws.s3"
    assert record.enforcement_level == "mandatory"


def test_builtins_register_their_package(registry):
    assert [m.name for m in registry.registered_modules] == ["policycatalog"]


def test_pcidss_aws_selection(registry):
    names = [p.name for p in registry.filter_policies({"vendors": ["aws"], "frameworks": ["pcidss"]})]
    assert names == [
        "aws-ec2-securitygroup-disallow-public-internet-ingress",
        "aws-s3-bucket-disallow-public-read",
        "aws-s3-bucket-enable-server-side-encryption",
        "aws-rds-instance-enable-storage-encryption",
    ]


def test_framework_coverage(registry):
    coverage = framework_coverage(registry)
    assert list(coverage) == sorted(coverage)
    assert coverage["pcidss"]["policy_count"] == 4
    assert coverage["pcidss"]["vendors"] == ["aws"]
    assert coverage["cis"]["vendors"] == ["aws", "azure", "google"]
    assert coverage[NO_FRAMEWORK]["vendors"] == ["kubernetes"]


def test_manifest_is_sorted_and_complete(registry):
    manifest = build_policy_manifest(registry)
    names = [entry["name"] for entry in manifest]
    assert names == sorted(names)
    assert len(manifest) == len(registry)
    assert set(manifest[0]) >= {"name", "description", "enforcement_level", "vendors", "severity", "module"}


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

def test_security_group_public_ingress():
    policy = ec2.disallow_public_internet_ingress
    kind = ResourceKind.AWS_EC2_SECURITY_GROUP
    assert run(policy, kind, {"ingress": [{"cidrBlocks": ["10.0.0.0/8"]}]}) == []
    assert len(run(policy, kind, {"ingress": [{"cidrBlocks": ["0.0.0.0/0"], "ipv6CidrBlocks": ["::/0"]}]})) == 2


def test_ami_age():
    policy = ec2.restrict_image_age
    kind = ResourceKind.AWS_EC2_AMI
    fresh = (datetime.now(timezone.utc) - timedelta(days=10)).isoformat()
    stale = (datetime.now(timezone.utc) - timedelta(days=200)).isoformat()
    assert run(policy, kind, {"creationDate": fresh}) == []
    assert "exceeds" in run(policy, kind, {"creationDate": stale})[0]
    assert run(policy, kind, {"creationDate": fresh}, config={"max_age_in_days": 5})
    assert "not available" in run(policy, kind, {})[0]


def test_s3_public_read():
    kind = ResourceKind.AWS_S3_BUCKET
    assert run(s3.disallow_public_read, kind, {"acl": "public-read-write"}) == [
        "You cannot set public-read or public-read-write on an S3 bucket."
    ]
    assert run(s3.disallow_public_read, kind, {"acl": "private"}) == []
    assert run(s3.disallow_public_read, kind, {"acl": "public-read"}, config={"enabled": False}) == []


def test_s3_encryption():
    kind = ResourceKind.AWS_S3_BUCKET
    assert run(s3.enable_server_side_encryption, kind, {})
    assert run(s3.enable_server_side_encryption, kind, {"serverSideEncryptionConfiguration": {"rule": {}}}) == []


def test_rds_checks():
    kind = ResourceKind.AWS_RDS_INSTANCE
    assert run(rds.enable_storage_encryption, kind, {"storageEncrypted": "true"}) == []
    assert run(rds.enable_storage_encryption, kind, {"storageEncrypted": False})
    assert run(rds.disallow_low_backup_retention_period, kind, {"backupRetentionPeriod": 7}) == []
    assert run(
        rds.disallow_low_backup_retention_period,
        kind,
        {"backupRetentionPeriod": 7},
        config={"min_retention_days": 14},
    )


def test_rds_backup_retention_accepts_numeric_strings():
    policy = rds.disallow_low_backup_retention_period
    kind = ResourceKind.AWS_RDS_INSTANCE
    assert run(policy, kind, {"backupRetentionPeriod": "7"}) == []
    assert run(policy, kind, {"backupRetentionPeriod": "1"})
    assert run(policy, kind, {"backupRetentionPeriod": "seven"})
    assert run(policy, kind, {"backupRetentionPeriod": 7}, config={"min_retention_days": "14"})


def test_ecs_tags():
    policy = ecs.require_tags
    kind = ResourceKind.AWS_ECS_SERVICE
    assert "does not have any tags" in run(policy, kind, {})[0]
    assert run(policy, kind, {"tags": {"team": "a"}}) == []
    assert run(policy, kind, {"tags": {"team": "a"}}, config={"required_tags": ["owner"]}) == [
        "ECS Service is missing required tag: owner"
    ]


def test_azure_password_authentication():
    policy = compute.disallow_password_authentication
    kind = ResourceKind.AZURE_VIRTUAL_MACHINE
    linux = {"osProfile": {"linuxConfiguration": {"disablePasswordAuthentication": False}}}
    assert run(policy, kind, linux)
    assert run(policy, kind, {"osProfile": {"windowsConfiguration": {}}}) == []


def test_gcp_uniform_access():
    policy = storage.enable_uniform_bucket_level_access
    kind = ResourceKind.GOOGLE_STORAGE_BUCKET
    assert run(policy, kind, {"uniformBucketLevelAccess": True}) == []
    assert run(policy, kind, {})


def test_kubernetes_checks():
    kind = ResourceKind.KUBERNETES_DEPLOYMENT
    assert run(workloads.configure_minimum_replica_count, kind, {"spec": {"replicas": 3}}) == []
    assert run(workloads.configure_minimum_replica_count, kind, {"spec": {"replicas": 1}})
    labelled = {"metadata": {"labels": {"app.kubernetes.io/name": "web"}}}
    assert run(workloads.configure_deployment_recommended_labels, kind, labelled) == []
    assert run(workloads.configure_deployment_recommended_labels, kind, {"metadata": {"labels": {"app": "web"}}})
    assert run(workloads.configure_service_recommended_labels, ResourceKind.KUBERNETES_SERVICE, {})


def test_replica_count_accepts_numeric_strings():
    policy = workloads.configure_minimum_replica_count
    kind = ResourceKind.KUBERNETES_DEPLOYMENT
    assert run(policy, kind, {"spec": {"replicas": "3"}}) == []
    assert run(policy, kind, {"spec": {"replicas": "abc"}})
    assert run(policy, kind, {"spec": {"replicas": 2}}, config={"min_replicas": "2"}) == []


def test_checks_ignore_other_kinds():
    assert run(s3.disallow_public_read, ResourceKind.AWS_RDS_INSTANCE, {"acl": "public-read"}) == []
