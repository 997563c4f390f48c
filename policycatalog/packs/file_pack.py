"""
packs/file_pack.py
------------------
Load pack definitions and resource inventories from YAML files.

Expected pack YAML structure::

    version: 1
    pack:
      name: pcidss-aws
      enforcement_level: mandatory     # optional
      criteria:
        vendors: [aws]
        frameworks: [pcidss]
        severity: high                 # minimum severity, optional
      config:
        aws-ec2-ami-restrict-image-age:
          max_age_in_days: 60
        aws-s3-bucket-disallow-public-read:
          enabled: false

A pack may cherry-pick checks by name instead of using ``criteria``::

    version: 1
    pack:
      name: hand-picked
      policies:
        - aws-s3-bucket-disallow-public-read
        - aws-rds-instance-enable-storage-encryption

Expected resources YAML (or JSON) structure::

    resources:
      - type: aws:s3/bucket:Bucket
        name: logs
        props:
          acl: private
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from policycatalog.core.metadata import parse_enforcement_level
from policycatalog.packs.pack import PolicyPack, PolicyPackAssembler
from policycatalog.registry.criteria import FilterCriteria
from policycatalog.validation.resources import Resource

PathLike = Union[str, Path]


@dataclass
class PackDefinition:
    """
    A pack as declared in a YAML file, before it is assembled.

    Attributes:
        name:              Pack name.
        criteria:          Selection criteria.
        policies:          Cherry-picked policy names; used instead of
                           ``criteria`` when set.
        enforcement_level: Optional level forced on every check.
        config:            Per-check overrides keyed by policy name.
        version:           Schema version of the source document.
        source:            Path of the file the definition came from.
    """

    name: str
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    policies: Optional[List[str]] = None
    enforcement_level: Optional[str] = None
    config: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    version: Any = 1
    source: str = ""

    def assemble(self, assembler: PolicyPackAssembler) -> PolicyPack:
        selection = self.policies if self.policies is not None else self.criteria
        return assembler.assemble(
            self.name,
            selection,
            enforcement_level=self.enforcement_level,
            config=self.config,
        )


def _read_yaml(path: Path, what: str) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse {what.lower()} YAML: {exc}") from exc


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _check_criteria(name: str, criteria: Dict[str, Any]) -> None:
    for key, value in criteria.items():
        if value is None:
            continue
        if key == "severity":
            if not isinstance(value, str):
                raise ValueError(f"Pack {name!r}: criteria 'severity' must be a string.")
        elif not isinstance(value, str) and not _is_string_list(value):
            raise ValueError(
                f"Pack {name!r}: criteria {key!r} must be a string or a list of strings."
            )


def load_pack_file(path: PathLike) -> PackDefinition:
    """
    Load and validate a pack definition file.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed :class:`PackDefinition`.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError:        If the document is malformed.
    """
    pack_path = Path(path)
    data = _read_yaml(pack_path, "Pack")

    if not isinstance(data, dict):
        raise ValueError("Pack file must be a YAML dictionary.")
    if "version" not in data:
        raise ValueError("Pack file missing top-level 'version' key.")
    pack = data.get("pack")
    if not isinstance(pack, dict):
        raise ValueError("Pack file missing or invalid 'pack' section.")

    name = pack.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Pack section requires a non-empty 'name'.")

    level = pack.get("enforcement_level")
    if level is not None and parse_enforcement_level(level) is None:
        raise ValueError(
            f"Pack {name!r}: enforcement_level must be advisory, mandatory or disabled; got {level!r}."
        )

    criteria = pack.get("criteria") or {}
    if not isinstance(criteria, dict):
        raise ValueError(f"Pack {name!r}: 'criteria' must be a mapping.")
    _check_criteria(name, criteria)

    policies = pack.get("policies")
    if policies is not None:
        if not _is_string_list(policies):
            raise ValueError(f"Pack {name!r}: 'policies' must be a list of policy names.")
        if criteria:
            raise ValueError(f"Pack {name!r}: use either 'criteria' or 'policies', not both.")

    config = pack.get("config") or {}
    if not isinstance(config, dict) or not all(isinstance(v, dict) for v in config.values()):
        raise ValueError(f"Pack {name!r}: 'config' must map policy names to option mappings.")

    return PackDefinition(
        name=name.strip(),
        criteria=FilterCriteria.from_dict(criteria),
        policies=policies,
        enforcement_level=str(level).strip().lower() if level is not None else None,
        config=config,
        version=data["version"],
        source=str(pack_path),
    )


def load_resources_file(path: PathLike) -> List[Resource]:
    """
    Load a resource inventory.

    The document is either a list of resource mappings or a mapping with a
    ``resources`` list. JSON documents parse as YAML too.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError:        If the document or any entry is malformed.
    """
    data = _read_yaml(Path(path), "Resources")
    if isinstance(data, dict):
        data = data.get("resources")
    if not isinstance(data, list):
        raise ValueError("Resources file must contain a list of resources.")
    return [Resource.from_dict(entry) for entry in data]
