"""
policies package — the built-in check catalog.

Each module declares its checks as module-level
:class:`~policycatalog.registry.records.ResourceValidationPolicy` objects and
lists them, with their metadata, in ``DEFINITIONS``. Nothing is registered on
import; call :func:`register_builtin_policies` with the registry to populate.
"""

from __future__ import annotations

import logging
from typing import List

from policycatalog import __version__
from policycatalog.registry.manager import PolicyRegistry
from policycatalog.registry.records import ResourceValidationPolicy

from .aws import ec2, ecs, rds, s3
from .azure import compute
from .google import storage
from .kubernetes import workloads

logger = logging.getLogger(__name__)

#: Built-in policy modules, in registration order.
BUILTIN_MODULES = (ec2, s3, rds, ecs, compute, storage, workloads)


def register_builtin_policies(registry: PolicyRegistry) -> List[ResourceValidationPolicy]:
    """
    Register every built-in check into ``registry``.

    Raises:
        PolicyRegistrationError: If any check is invalid or already registered.
    """
    registered: List[ResourceValidationPolicy] = []
    for module in BUILTIN_MODULES:
        registered.extend(registry.register_definitions(module.DEFINITIONS, module=module.__name__))
    registry.register_policy_module("policycatalog", __version__)
    logger.debug("Registered %d built-in policies", len(registered))
    return registered


__all__ = ["BUILTIN_MODULES", "register_builtin_policies"]
