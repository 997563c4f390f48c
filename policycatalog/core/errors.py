"""
core/errors.py
--------------
Exception hierarchy for the policycatalog SDK.

Registration errors are raised while policy modules load and are never
handled by the registry itself: a missing or shadowed check is a silent
compliance gap, so the load phase must abort instead.
"""

from __future__ import annotations


class PolicyCatalogError(Exception):
    """Base class for every error raised by policycatalog."""


class PolicyRegistrationError(PolicyCatalogError):
    """A policy could not be added to a registry."""


class InvalidDefinitionError(PolicyRegistrationError):
    """A registration is missing a required field or carries an invalid value."""


class DuplicateNameError(PolicyRegistrationError):
    """
    Two registrations share the same policy name.

    Attributes:
        name: The clashing policy name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Another policy with the name {name!r} already exists. "
            "Either register the policy only once, or ensure policy names are unique."
        )


class PolicyEvaluationError(PolicyCatalogError):
    """
    A check raised while validating a resource.

    Attributes:
        policy_name:   Name of the failing policy.
        resource_name: Name of the resource being validated.
    """

    def __init__(self, policy_name: str, resource_name: str, cause: Exception) -> None:
        self.policy_name = policy_name
        self.resource_name = resource_name
        super().__init__(
            f"Policy {policy_name!r} failed on resource {resource_name!r}: {cause}"
        )
