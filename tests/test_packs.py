import json

import pytest

from policycatalog import __version__
from policycatalog.core.config import CatalogConfig
from policycatalog.core.errors import PolicyEvaluationError
from policycatalog.core.metadata import CheckMetadata, EnforcementLevel
from policycatalog.packs import (
    PolicyEvaluator,
    PolicyPackAssembler,
    load_pack_file,
    load_resources_file,
)
from policycatalog.policies import register_builtin_policies
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.records import ResourceValidationPolicy
from policycatalog.validation.resources import Resource

PUBLIC_BUCKET = {
    "type": "aws:s3/bucket:Bucket",
    "name": "website",
    "props": {"acl": "public-read", "serverSideEncryptionConfiguration": {"rule": {}}},
}
PRIVATE_BUCKET = {
    "type": "aws:s3/bucket:Bucket",
    "name": "logs",
    "props": {"acl": "private", "serverSideEncryptionConfiguration": {"rule": {}}},
}


@pytest.fixture
def registry():
    registry = PolicyRegistry()
    register_builtin_policies(registry)
    return registry


@pytest.fixture
def assembler(registry):
    return PolicyPackAssembler(registry)


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

def test_assembler_hands_out_each_policy_once(assembler):
    first = assembler.assemble("pcidss", {"frameworks": ["pcidss"]})
    second = assembler.assemble("s3", {"services": ["s3"]})
    assert "aws-s3-bucket-disallow-public-read" in first.policy_names
    assert second.policy_names == []
    assert not set(first.policy_names) & set(assembler.remaining)


def test_assembler_reset(assembler, registry):
    assembler.assemble("all")
    assert assembler.remaining == []
    stats = assembler.get_stats()
    assert stats["policy_count"] == stats["selected_policy_count"] == len(registry)
    assert stats["remaining_policy_count"] == 0
    assembler.reset()
    assert assembler.selected_policy_count == 0
    assert len(assembler.assemble("again")) == len(registry)


def test_assembler_does_not_modify_registry(assembler, registry):
    assembler.assemble("mandatory", {"vendors": ["aws"]}, enforcement_level="mandatory")
    assert registry.get_record("aws-ec2-ami-restrict-image-age").enforcement_level == "advisory"
    assert registry.filter_policies({"vendors": ["aws"]})


def test_pack_enforcement_override(assembler):
    pack = assembler.assemble("strict", {"services": ["rds"]}, enforcement_level=EnforcementLevel.MANDATORY)
    assert pack.enforcement_level == "mandatory"
    assert all(p.enforcement == "mandatory" for p in pack.policies)
    assert pack.to_dict()["policies"][0]["enforcement_level"] == "mandatory"


def test_assembler_cherry_picks_once(assembler, registry):
    public_read = registry.get_policy_by_name("aws-s3-bucket-disallow-public-read")
    first = assembler.assemble("picked", [public_read, "aws-rds-instance-enable-storage-encryption"])
    second = assembler.assemble("again", ["aws-s3-bucket-disallow-public-read"])
    assert first.policy_names == [
        "aws-s3-bucket-disallow-public-read",
        "aws-rds-instance-enable-storage-encryption",
    ]
    assert second.policy_names == []


def test_selected_policies_and_stats(assembler, registry):
    assembler.assemble("picked", ["aws-s3-bucket-disallow-public-read"])
    assembler.assemble("rds", {"services": ["rds"]}, enforcement_level="mandatory")

    assert assembler.selected_policy_count == 3
    assert [p.name for p in assembler.selected_policies][0] == "aws-s3-bucket-disallow-public-read"
    stats = assembler.get_stats()
    assert stats["remaining_policy_count"] == len(registry) - 3
    assert {p["enforcement_level"] for p in stats["selected_policies"]} == {"mandatory"}
    assert stats["registered_modules"] == [{"name": "policycatalog", "version": __version__}]


def test_selection_summary(assembler, registry):
    assembler.assemble("picked", ["aws-s3-bucket-disallow-public-read"])
    summary = assembler.selection_summary(selected_names=True)
    assert summary.split("\n---\n") == [
        f"Total registered policies: {len(registry)}\n"
        "Selected policies: 1\n"
        f"Remaining (unselected) policies: {len(registry) - 1}",
        f"Included policy packages:\n  policycatalog: {__version__}",
        "Selected policies:\n  aws-s3-bucket-disallow-public-read: enforcement_level: mandatory",
    ]
    assert assembler.selection_summary(modules=False) == summary.split("\n---\n")[0]


def test_unknown_config_warns_or_raises(registry, caplog):
    PolicyPackAssembler(registry).assemble("p", config={"no-such-policy": {"enabled": False}})
    assert "no-such-policy" in caplog.text

    strict = PolicyRegistry(config=CatalogConfig(strict_config=True))
    register_builtin_policies(strict)
    with pytest.raises(ValueError, match="max_age"):
        PolicyPackAssembler(strict).assemble(
            "p", config={"aws-rds-instance-enable-storage-encryption": {"max_age": 3}}
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_pack_file(tmp_path):
    path = write(
        tmp_path,
        "pack.yaml",
        """
version: 1
pack:
  name: pcidss-aws
  enforcement_level: Mandatory
  criteria:
    vendors: [AWS]
    frameworks: [pcidss]
    severity: high
  config:
    aws-s3-bucket-disallow-public-read:
      excluded_resources: [website]
""",
    )
    definition = load_pack_file(path)
    assert definition.name == "pcidss-aws"
    assert definition.enforcement_level == "mandatory"
    assert definition.criteria.vendors == ("aws",)
    assert definition.criteria.severity == "high"
    assert definition.config["aws-s3-bucket-disallow-public-read"]["excluded_resources"] == ["website"]
    assert definition.source == str(path)


def test_load_pack_file_with_cherry_picked_policies(tmp_path, assembler):
    path = write(
        tmp_path,
        "pack.yaml",
        """
version: 1
pack:
  name: hand-picked
  enforcement_level: " Advisory"
  policies:
    - aws-rds-instance-enable-storage-encryption
    - aws-s3-bucket-disallow-public-read
""",
    )
    definition = load_pack_file(path)
    assert definition.enforcement_level == "advisory"
    pack = definition.assemble(assembler)
    assert pack.policy_names == [
        "aws-s3-bucket-disallow-public-read",
        "aws-rds-instance-enable-storage-encryption",
    ]
    assert all(p.enforcement == "advisory" for p in pack.policies)


def test_load_pack_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_pack_file(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text, message",
    [
        ("- a\n- b\n", "dictionary"),
        ("pack:\n  name: x\n", "version"),
        ("version: 1\n", "pack"),
        ("version: 1\npack:\n  criteria: {}\n", "name"),
        ("version: 1\npack:\n  name: x\n  enforcement_level: strict\n", "enforcement_level"),
        ("version: 1\npack:\n  name: x\n  criteria: [aws]\n", "criteria"),
        ("version: 1\npack:\n  name: x\n  criteria:\n    vendors: 5\n", "vendors"),
        ("version: 1\npack:\n  name: x\n  criteria:\n    topics: [true]\n", "topics"),
        ("version: 1\npack:\n  name: x\n  criteria:\n    severity: [high]\n", "severity"),
        ("version: 1\npack:\n  name: x\n  policies: p1\n", "policies"),
        ("version: 1\npack:\n  name: x\n  policies: [p1]\n  criteria:\n    vendors: [aws]\n", "either"),
        ("version: 1\npack:\n  name: x\n  config:\n    p: true\n", "config"),
        ("version: 1\npack: [unclosed\n", "YAML"),
    ],
)
def test_load_pack_file_rejects_malformed(tmp_path, text, message):
    path = write(tmp_path, "pack.yaml", text)
    with pytest.raises(ValueError, match=message):
        load_pack_file(path)


def test_load_resources_file_accepts_list_and_mapping(tmp_path):
    as_list = write(tmp_path, "list.json", json.dumps([PRIVATE_BUCKET]))
    as_map = write(tmp_path, "map.json", json.dumps({"resources": [PRIVATE_BUCKET, PUBLIC_BUCKET]}))
    assert [r.name for r in load_resources_file(as_list)] == ["logs"]
    assert [r.name for r in load_resources_file(as_map)] == ["logs", "website"]


def test_load_resources_file_rejects_non_list(tmp_path):
    path = write(tmp_path, "r.yaml", "resources: nope\n")
    with pytest.raises(ValueError):
        load_resources_file(path)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def test_evaluator_fails_on_mandatory_violation(assembler, registry):
    pack = assembler.assemble("s3", {"services": ["s3"]})
    report = PolicyEvaluator(registry).evaluate(pack, [PRIVATE_BUCKET, PUBLIC_BUCKET])
    assert report.status == "FAIL"
    assert report.resources_checked == 2
    assert len(report.violations) == 1
    violation = report.violations[0]
    assert violation.policy_name == "aws-s3-bucket-disallow-public-read"
    assert violation.resource_name == "website"
    assert violation.severity == "critical"
    assert violation.is_mandatory


def test_evaluator_passes_with_only_advisory_violations(assembler, registry):
    pack = assembler.assemble("rds", {"services": ["rds"]})
    report = PolicyEvaluator(registry).evaluate(
        pack, [Resource(type="aws:rds/instance:Instance", name="db", props={})]
    )
    assert report.status == "PASS"
    assert len(report.violations) == 2
    assert set(report.violations_by_policy()) == set(pack.policy_names)
    assert report.to_dict()["violation_count"] == 2


def test_evaluator_honours_pack_config(assembler, registry):
    pack = assembler.assemble(
        "s3",
        {"services": ["s3"]},
        config={"aws-s3-bucket-disallow-public-read": {"excluded_resources": ["website"]}},
    )
    report = PolicyEvaluator(registry).evaluate(pack, [PUBLIC_BUCKET])
    assert report.passed
    assert report.violations == []


def test_evaluator_skips_disabled_policies(assembler, registry):
    pack = assembler.assemble("off", {"services": ["s3"]}, enforcement_level="disabled")
    report = PolicyEvaluator(registry).evaluate(pack, [PUBLIC_BUCKET])
    assert report.policies_evaluated == []
    assert sorted(report.policies_skipped) == sorted(pack.policy_names)
    assert report.violations == []


@pytest.mark.parametrize(
    "level, status, evaluated",
    [(" mandatory", "FAIL", True), ("Mandatory ", "FAIL", True), (" Disabled", "PASS", False)],
)
def test_evaluator_normalises_enforcement_level(level, status, evaluated):
    registry = PolicyRegistry()

    def always(args, report_violation):
        report_violation("always reports")

    registry.register_policy(
        ResourceValidationPolicy(
            name="always", description="", validate_resource=always, enforcement_level=level
        ),
        CheckMetadata(vendors=["aws"], services=["s3"], severity="low"),
    )
    pack = PolicyPackAssembler(registry).assemble("padded")
    report = PolicyEvaluator(registry).evaluate(pack, [PRIVATE_BUCKET])
    assert report.status == status
    assert (report.policies_evaluated == ["always"]) is evaluated


def test_evaluator_wraps_check_errors():
    registry = PolicyRegistry()

    def explode(args, report_violation):
        raise KeyError("props")

    registry.register_policy(
        ResourceValidationPolicy(name="boom", description="", validate_resource=explode),
        CheckMetadata(vendors=["aws"], services=["s3"], severity="low"),
    )
    pack = PolicyPackAssembler(registry).assemble("boom")
    with pytest.raises(PolicyEvaluationError) as exc_info:
        PolicyEvaluator(registry).evaluate(pack, [PRIVATE_BUCKET])
    assert exc_info.value.policy_name == "boom"
    assert exc_info.value.resource_name == "logs"


def test_pack_report_json(assembler, registry):
    pack = assembler.assemble("s3", {"services": ["s3"]})
    data = json.loads(PolicyEvaluator(registry).evaluate(pack, [PUBLIC_BUCKET]).to_json())
    assert data["status"] == "FAIL"
    assert data["mandatory_violation_count"] == 1
    assert data["violations"][0]["resource"] == "website"
