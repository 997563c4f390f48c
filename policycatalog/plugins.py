"""
plugins.py
----------
Discover third-party policy packages through package entry points.

A policy package advertises itself in its own packaging metadata::

    entry_points={
        "policycatalog.policies": [
            "acme-aws = acme_policies.aws",
        ],
    }

The target module must define:

* ``__version__``            — the package's own version.
* ``POLICYCATALOG_VERSION``  — the policycatalog version it was built against.
* ``DEFINITIONS``            — its ``PolicyDefinition`` list.

Public API
----------
* :data:`PLUGIN_GROUP`   — entry-point group scanned by default.
* :func:`load_plugins`   — register every matching plugin into a registry.
"""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from importlib.metadata import entry_points
from typing import Iterable, List, Optional

from policycatalog import __version__
from policycatalog.core.errors import PolicyRegistrationError
from policycatalog.registry.manager import PolicyRegistry

logger = logging.getLogger(__name__)

PLUGIN_GROUP = "policycatalog.policies"

_REQUIRED_ATTRS = ("__version__", "POLICYCATALOG_VERSION", "DEFINITIONS")


def load_plugins(
    registry: PolicyRegistry,
    patterns: Optional[Iterable[str]] = None,
    group: str = PLUGIN_GROUP,
) -> List[str]:
    """
    Load and register policy plugins advertised under ``group``.

    Args:
        registry: Registry the plugin checks are registered into.
        patterns: Shell-style patterns matched against entry-point names.
                  ``None`` loads every plugin in the group.
        group:    Entry-point group to scan.

    Returns:
        Names of the plugins that were loaded, in discovery order.

    Raises:
        PolicyRegistrationError: If a plugin cannot be imported, lacks a
                                 required attribute, was built against a
                                 different policycatalog version, or
                                 registers an invalid or duplicate check.
    """
    wanted = list(patterns) if patterns is not None else None
    loaded: List[str] = []

    for ep in entry_points(group=group):
        if wanted is not None and not any(fnmatchcase(ep.name, p) for p in wanted):
            continue
        try:
            module = ep.load()
        except ImportError as exc:
            raise PolicyRegistrationError(
                f"Failed to import policy plugin {ep.name!r} ({ep.value}): {exc}"
            ) from exc

        missing = [attr for attr in _REQUIRED_ATTRS if not hasattr(module, attr)]
        if missing:
            raise PolicyRegistrationError(
                f"Policy plugin {ep.name!r} must define {', '.join(missing)}."
            )
        if module.POLICYCATALOG_VERSION != __version__:
            raise PolicyRegistrationError(
                f"Policy plugin {ep.name!r} was built for policycatalog "
                f"{module.POLICYCATALOG_VERSION}, but {__version__} is installed."
            )

        registered = registry.register_definitions(module.DEFINITIONS, module=module.__name__)
        registry.register_policy_module(ep.name, module.__version__)
        logger.info("Loaded policy plugin %s %s (%d policies)", ep.name, module.__version__, len(registered))
        loaded.append(ep.name)

    if wanted is not None and not loaded:
        logger.warning("No policy plugins in group %r matched %s", group, wanted)
    return loaded


__all__ = ["PLUGIN_GROUP", "load_plugins"]
