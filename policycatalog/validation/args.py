"""
validation/args.py
------------------
Run-time arguments handed to a check, and the per-check configuration layer
that lets a deployer tune or switch off individual checks without editing code.

Every policy's ``config_schema`` extends :data:`POLICY_CONFIG_SCHEMA`, which
declares these options:

* ``enabled``            — ``false`` skips the check entirely.
* ``excluded_resources`` — resource names or URNs the check must not inspect.
* ``exclude_for``        — regular expressions; a resource whose name matches
                           one in full is skipped.
* ``include_for``        — regular expressions; a match here wins over
                           ``exclude_for`` and ``excluded_resources``.
* ``ignore_case``        — match the two pattern lists case-insensitively.

Checks call :func:`should_eval_policy` first and return early when it is
``False``.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

POLICY_CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "enabled": {
            "type": "boolean",
            "default": True,
            "description": "Set to false to skip this policy.",
        },
        "excluded_resources": {
            "type": "array",
            "items": {"type": "string"},
            "default": [],
            "description": "Resource names or URNs this policy should not inspect.",
        },
        "exclude_for": {
            "type": "array",
            "items": {"type": "string"},
            "default": [],
            "description": "Regular expressions matching resource names this policy should skip.",
        },
        "include_for": {
            "type": "array",
            "items": {"type": "string"},
            "default": [],
            "description": "Regular expressions matching resource names this policy must inspect, "
                           "even when excluded.",
        },
        "ignore_case": {
            "type": "boolean",
            "default": True,
            "description": "Match include_for and exclude_for case-insensitively.",
        },
    },
}


def build_config_schema(**properties: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extend the base config schema with policy-specific options.

    Example::

        build_config_schema(
            max_age_in_days={"type": "number", "default": 90},
        )

    Args:
        **properties: JSON-schema property definitions keyed by option name.

    Returns:
        A new schema dict; :data:`POLICY_CONFIG_SCHEMA` is left untouched.
    """
    schema = copy.deepcopy(POLICY_CONFIG_SCHEMA)
    schema["properties"].update(copy.deepcopy(properties))
    return schema


def schema_defaults(config_schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Collect the ``default`` of every property declared in ``config_schema``."""
    schema = config_schema or POLICY_CONFIG_SCHEMA
    defaults: Dict[str, Any] = {}
    for key, spec in (schema.get("properties") or {}).items():
        if isinstance(spec, dict) and "default" in spec:
            defaults[key] = copy.deepcopy(spec["default"])
    return defaults


def val_to_boolean(val: Union[bool, str, None]) -> Optional[bool]:
    """
    Coerce a boolean that may have been serialised as a string.

    Some providers changed property types between releases (``"true"`` vs
    ``True``); checks use this helper to stay compatible with both.

    Returns:
        ``True``/``False``, or ``None`` when the value cannot be converted.
    """
    if isinstance(val, bool):
        return val
    if isinstance(val, str):
        lowered = val.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


@dataclass
class ResourceValidationArgs:
    """
    Arguments passed to a check for one resource.

    Attributes:
        resource_type: Resource type token.
        name:          Logical resource name.
        props:         Resource input properties.
        urn:           Resource URN, if known.
        config_schema: The running policy's config schema.
        config:        Deployer overrides for the running policy.
    """

    resource_type: str
    name: str
    props: Dict[str, Any] = field(default_factory=dict)
    urn: str = ""
    config_schema: Optional[Dict[str, Any]] = None
    config: Dict[str, Any] = field(default_factory=dict)

    def get_config(self) -> Dict[str, Any]:
        """Return the schema defaults overlaid with the deployer's overrides."""
        effective = schema_defaults(self.config_schema)
        effective.update(self.config or {})
        return effective


def _as_patterns(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def _matches_any(patterns: List[str], name: str, flags: int) -> bool:
    for pattern in patterns:
        try:
            if re.fullmatch(pattern, name, flags):
                return True
        except re.error as exc:
            logger.warning("Ignoring invalid resource name pattern %r: %s", pattern, exc)
    return False


def should_eval_policy(args: ResourceValidationArgs) -> bool:
    """
    Decide whether a check should run its predicate for this resource.

    Args:
        args: The arguments of the current check invocation.

    Returns:
        ``False`` if the effective configuration disables the check (``enabled``
        set to ``false`` or ``"false"``), or excludes this resource through
        ``excluded_resources`` (name or URN) or an ``exclude_for`` pattern, and
        no ``include_for`` pattern matches the resource name. ``True`` otherwise.
    """
    config = args.get_config()

    enabled = val_to_boolean(config.get("enabled"))
    if enabled is False:
        return False

    flags = re.IGNORECASE if val_to_boolean(config.get("ignore_case")) is not False else 0
    if _matches_any(_as_patterns(config.get("include_for")), args.name, flags):
        return True

    excluded: List[str] = config.get("excluded_resources") or []
    if isinstance(excluded, str):
        excluded = [excluded]
    if args.name in excluded or (args.urn and args.urn in excluded):
        return False

    if _matches_any(_as_patterns(config.get("exclude_for")), args.name, flags):
        return False

    return True


def val_to_int(val: Any) -> Optional[int]:
    """
    Coerce a whole number that may have been serialised as a string.

    Returns:
        The integer, or ``None`` when ``val`` is missing or not a whole number.
    """
    if isinstance(val, bool) or val is None:
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return int(val) if val.is_integer() else None
    try:
        return int(str(val).strip())
    except ValueError:
        return None
