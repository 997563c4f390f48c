import json

import click
import pytest
from click.testing import CliRunner

from policycatalog import __version__
from policycatalog.cli import _SEVERITY_COLOURS, _severity_style, cli
from policycatalog.core.metadata import Severity


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def pack_file(tmp_path):
    path = tmp_path / "pack.yaml"
    path.write_text(
        "version: 1\n"
        "pack:\n"
        "  name: s3-pack\n"
        "  criteria:\n"
        "    services: [s3]\n",
        encoding="utf-8",
    )
    return path


def resources_file(tmp_path, acl):
    path = tmp_path / "resources.json"
    path.write_text(
        json.dumps(
            {
                "resources": [
                    {
                        "type": "aws:s3/bucket:Bucket",
                        "name": "website",
                        "props": {"acl": acl, "serverSideEncryptionConfiguration": {"rule": {}}},
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_json(runner):
    result = runner.invoke(cli, ["list", "--vendor", "aws", "--severity", "critical", "--output", "json"])
    assert result.exit_code == 0
    names = [entry["name"] for entry in json.loads(result.output)]
    assert names == [
        "aws-ec2-securitygroup-disallow-public-internet-ingress",
        "aws-s3-bucket-disallow-public-read",
    ]


def test_list_pretty(runner):
    result = runner.invoke(cli, ["list", "--framework", "hitrust"])
    assert result.exit_code == 0
    assert "POLICIES (4)" in result.output
    assert "aws-rds-instance-disallow-low-backup-retention-period" in result.output


def test_stats_json(runner):
    result = runner.invoke(cli, ["stats", "--output", "json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["policy_count"] == 12
    assert data["vendors"]["kubernetes"] == 3


def test_coverage_and_manifest(runner):
    coverage = runner.invoke(cli, ["coverage", "--output", "json"])
    assert coverage.exit_code == 0
    assert "pcidss" in json.loads(coverage.output)

    manifest = runner.invoke(cli, ["manifest"])
    assert manifest.exit_code == 0
    assert len(json.loads(manifest.output)) == 12


def test_evaluate_pass(runner, pack_file, tmp_path):
    result = runner.invoke(
        cli, ["evaluate", str(pack_file), str(resources_file(tmp_path, "private")), "--output", "json"]
    )
    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "PASS"


def test_evaluate_fails_on_mandatory_violation(runner, pack_file, tmp_path):
    result = runner.invoke(cli, ["evaluate", str(pack_file), str(resources_file(tmp_path, "public-read"))])
    assert result.exit_code == 1
    assert "FAIL" in result.output
    assert "aws-s3-bucket-disallow-public-read" in result.output


def test_evaluate_reports_malformed_pack(runner, tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("pack:\n  name: x\n", encoding="utf-8")
    result = runner.invoke(cli, ["evaluate", str(bad), str(resources_file(tmp_path, "private"))])
    assert result.exit_code == 1
    assert "version" in result.output


def test_evaluate_rejects_scalar_criteria(runner, tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("version: 1\npack:\n  name: x\n  criteria:\n    vendors: 5\n", encoding="utf-8")
    result = runner.invoke(cli, ["evaluate", str(bad), str(resources_file(tmp_path, "private"))])
    assert result.exit_code == 1
    assert "criteria 'vendors'" in result.output


def test_evaluate_selection_stats(runner, pack_file, tmp_path):
    result = runner.invoke(
        cli,
        ["evaluate", str(pack_file), str(resources_file(tmp_path, "private")), "--selection-stats"],
    )
    assert result.exit_code == 0
    assert "Selected policies: 2" in result.output
    assert f"policycatalog: {__version__}" in result.output
    assert "aws-s3-bucket-disallow-public-read: enforcement_level: mandatory" in result.output


def test_list_severity_choices_follow_enum(runner):
    result = runner.invoke(cli, ["list", "--severity", "CRITICAL", "--output", "json"])
    assert result.exit_code == 0
    assert len(json.loads(result.output)) == 2


def test_every_severity_has_a_colour():
    assert set(_SEVERITY_COLOURS) == set(Severity)
    assert _severity_style(" Critical") == click.style(" CRITICAL", fg="red", bold=True)
    assert _severity_style("unknown") == click.style("UNKNOWN", fg="white", bold=True)
