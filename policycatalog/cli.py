"""
cli.py
------
Command-line interface for the policycatalog SDK.

Entry point: ``policycatalog``

Commands
--------
* ``list``      — show the built-in checks matching optional filter criteria.
* ``stats``     — count checks per vendor, service, framework, topic, severity.
* ``coverage``  — summarise which vendors/services each framework covers.
* ``manifest``  — print the JSON manifest of every built-in check.
* ``evaluate``  — assemble a pack from a YAML file and run it over resources.

The group option ``--plugin PATTERN`` also loads installed policy plugins
whose entry-point name matches PATTERN (see :mod:`policycatalog.plugins`).
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Tuple

import click

from policycatalog import __version__
from policycatalog.core.config import CatalogConfig
from policycatalog.core.errors import PolicyCatalogError
from policycatalog.core.metadata import Severity, parse_severity
from policycatalog.core.result_schema import PackReport
from policycatalog.packs.evaluator import PolicyEvaluator
from policycatalog.packs.file_pack import load_pack_file, load_resources_file
from policycatalog.packs.pack import PolicyPackAssembler
from policycatalog.plugins import load_plugins
from policycatalog.policies import register_builtin_policies
from policycatalog.registry.criteria import FilterCriteria
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.stats import build_policy_manifest, framework_coverage


# ---------------------------------------------------------------------------
# Helpers — rendering
# ---------------------------------------------------------------------------

_DIVIDER = "─" * 60


_SEVERITY_COLOURS = {
    Severity.LOW:      "green",
    Severity.MEDIUM:   "cyan",
    Severity.HIGH:     "yellow",
    Severity.CRITICAL: "red",
}


def _severity_style(severity: str) -> str:
    """Return a styled severity label."""
    colour = _SEVERITY_COLOURS.get(parse_severity(severity), "white")
    return click.style(severity.upper(), fg=colour, bold=True)


def _heading(title: str) -> None:
    click.echo(f"\n{_DIVIDER}")
    click.echo(click.style(f"  {title}", bold=True, fg="bright_white"))
    click.echo(_DIVIDER)


def _fail(message: str) -> None:
    click.echo(click.style(f"\n✗  {message}", fg="red"), err=True)
    sys.exit(1)


def _load_registry(strict_config: bool = False) -> PolicyRegistry:
    ctx = click.get_current_context(silent=True)
    plugins = (ctx.find_root().obj or {}).get("plugins", ()) if ctx else ()

    registry = PolicyRegistry(config=CatalogConfig(strict_config=strict_config))
    register_builtin_policies(registry)
    if plugins:
        try:
            load_plugins(registry, patterns=plugins)
        except PolicyCatalogError as exc:
            _fail(str(exc))
    return registry


_output_option = click.option(
    "--output", "output_format",
    type=click.Choice(["pretty", "json"], case_sensitive=False),
    default="pretty", show_default=True,
    help="Output format: pretty (default) or json.",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="policycatalog")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.option(
    "--plugin", "plugins", multiple=True, metavar="PATTERN",
    help="Also load installed policy plugins whose name matches PATTERN (repeatable).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, plugins: Tuple[str, ...]):
    """policycatalog — compliance policy registry and pack toolkit."""
    ctx.ensure_object(dict)
    ctx.obj["plugins"] = plugins
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# list command
# ---------------------------------------------------------------------------

@cli.command("list")
@click.option("--vendor", "vendors", multiple=True, help="Vendor to match (repeatable).")
@click.option("--service", "services", multiple=True, help="Service to match (repeatable).")
@click.option("--framework", "frameworks", multiple=True, help="Framework to match (repeatable).")
@click.option("--topic", "topics", multiple=True, help="Topic to match (repeatable).")
@click.option(
    "--severity", default=None,
    type=click.Choice([s.value for s in Severity], case_sensitive=False),
    help="Minimum severity.",
)
@_output_option
def list_policies(
    vendors: Tuple[str, ...],
    services: Tuple[str, ...],
    frameworks: Tuple[str, ...],
    topics: Tuple[str, ...],
    severity: str,
    output_format: str,
):
    """List built-in checks matching the given criteria."""
    registry = _load_registry()
    criteria = FilterCriteria(
        vendors=vendors,
        services=services,
        frameworks=frameworks,
        topics=topics,
        severity=severity,
    )
    records = registry.filter_records(criteria)

    if output_format.lower() == "json":
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    _heading(f"POLICIES ({len(records)})")
    for record in records:
        click.echo(f"  {_severity_style(record.severity.value):<20} {record.name}")
        click.echo(click.style(f"      {record.policy.description}", fg="bright_black"))
    click.echo(_DIVIDER)


# ---------------------------------------------------------------------------
# stats / coverage / manifest commands
# ---------------------------------------------------------------------------

@cli.command()
@_output_option
def stats(output_format: str):
    """Count built-in checks per metadata dimension."""
    data = _load_registry().get_stats()

    if output_format.lower() == "json":
        click.echo(json.dumps(data, indent=2))
        return

    _heading(f"REGISTRY STATISTICS ({data['policy_count']} policies)")
    for dim in ("vendors", "services", "frameworks", "topics", "severity"):
        click.echo(click.style(f"  {dim}", bold=True))
        for value, count in data[dim].items():
            click.echo(f"    {value:<20} {count}")
    click.echo(_DIVIDER)


@cli.command()
@_output_option
def coverage(output_format: str):
    """Summarise framework coverage of the built-in checks."""
    data = framework_coverage(_load_registry())

    if output_format.lower() == "json":
        click.echo(json.dumps(data, indent=2))
        return

    _heading("FRAMEWORK COVERAGE")
    for framework, entry in data.items():
        click.echo(
            f"  {click.style(framework, fg='cyan', bold=True):<30} "
            f"{entry['policy_count']} policies  "
            f"vendors: {', '.join(entry['vendors'])}  "
            f"services: {', '.join(entry['services'])}"
        )
    click.echo(_DIVIDER)


@cli.command()
def manifest():
    """Print the JSON manifest of every built-in check."""
    click.echo(json.dumps(build_policy_manifest(_load_registry()), indent=2))


# ---------------------------------------------------------------------------
# evaluate command
# ---------------------------------------------------------------------------

def _print_report(report: PackReport) -> None:
    _heading(f"POLICY PACK EVALUATION ({report.pack})")
    click.echo(f"  Resources checked  : {report.resources_checked}")
    click.echo(f"  Policies evaluated : {len(report.policies_evaluated)}")
    if report.policies_skipped:
        click.echo(f"  Policies disabled  : {len(report.policies_skipped)}")

    colour = "green" if report.passed else "red"
    click.echo(f"  Status: {click.style(report.status, fg=colour, bold=True)}")

    if report.violations:
        click.echo(click.style("\n  Violations:", fg="yellow"))
        for v in report.violations:
            click.echo(
                f"    - [{_severity_style(v.severity)}] [{v.enforcement_level}] "
                f"{v.policy_name} ({v.resource_name}): {v.message}"
            )
    click.echo(_DIVIDER)


@cli.command()
@click.argument("pack_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("resources_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--strict-config", is_flag=True, default=False,
    help="Fail on config options the selected policies do not declare.",
)
@click.option(
    "--selection-stats", is_flag=True, default=False,
    help="Print how many policies the pack selected, and which, to stderr.",
)
@_output_option
def evaluate(
    pack_file: str,
    resources_file: str,
    strict_config: bool,
    selection_stats: bool,
    output_format: str,
):
    """
    Assemble the pack described in PACK_FILE and run it over RESOURCES_FILE.

    Exits with status 1 when a mandatory policy reports a violation.
    """
    try:
        registry = _load_registry(strict_config=strict_config)
        definition = load_pack_file(pack_file)
        resources = load_resources_file(resources_file)
        assembler = PolicyPackAssembler(registry)
        pack = definition.assemble(assembler)
        report = PolicyEvaluator(registry).evaluate(pack, resources)
    except (PolicyCatalogError, ValueError, FileNotFoundError) as exc:
        _fail(str(exc))
        return

    if selection_stats:
        click.echo(assembler.selection_summary(selected_names=True), err=True)

    if output_format.lower() == "json":
        click.echo(report.to_json())
    else:
        _print_report(report)

    if not report.passed:
        sys.exit(1)


if __name__ == "__main__":
    cli()
