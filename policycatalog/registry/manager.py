"""
registry/manager.py
-------------------
The policy registry: an append-only, explicitly constructed collection of
:class:`~policycatalog.registry.records.PolicyRecord` objects.

Policy modules register their checks while they load; pack assemblers then
select subsets with :meth:`PolicyRegistry.filter_policies`. A registry is an
ordinary object, so tests and tools construct a fresh one instead of sharing
process-wide state::

    registry = PolicyRegistry()
    register_builtin_policies(registry)
    checks = registry.filter_policies({"vendors": ["aws"], "frameworks": ["pcidss"]})

Public API
----------
* :meth:`PolicyRegistry.register_policy`    — add one check, return it unchanged.
* :meth:`PolicyRegistry.register_definitions` — add a batch of definitions.
* :meth:`PolicyRegistry.filter_policies`    — select checks by metadata.
* :meth:`PolicyRegistry.should_eval_policy` — honour per-check overrides.
* :meth:`PolicyRegistry.get_policy_by_name` — look up a single check.
* :meth:`PolicyRegistry.get_stats`          — counts per metadata dimension.
* :meth:`PolicyRegistry.register_policy_module` — record a policy package and its version.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from policycatalog.core.config import CatalogConfig, DEFAULT_CONFIG
from policycatalog.core.errors import DuplicateNameError, InvalidDefinitionError
from policycatalog.core.metadata import (
    CheckMetadata,
    EnforcementLevel,
    SEVERITY_RANK,
    Severity,
    parse_enforcement_level,
)
from policycatalog.registry.criteria import SET_FIELDS, FilterCriteria
from policycatalog.registry.records import (
    ModuleInfo,
    PolicyDefinition,
    PolicyRecord,
    ResourceValidationPolicy,
)
from policycatalog.validation.args import ResourceValidationArgs, should_eval_policy

logger = logging.getLogger(__name__)

#: Cherry-picked checks, given as policy objects or policy names.
PolicySelection = Sequence[Union[ResourceValidationPolicy, str]]

CriteriaLike = Union[FilterCriteria, Mapping[str, Any], PolicySelection, None]


def is_policy_selection(criteria: Any) -> bool:
    """``True`` when ``criteria`` lists cherry-picked checks instead of filter criteria."""
    return isinstance(criteria, (list, tuple, set, frozenset))


#: Metadata dimensions tracked by the registry indexes.
DIMENSIONS = SET_FIELDS + ("severity",)


class PolicyRegistry:
    """
    In-memory registry of compliance checks.

    Records are kept in registration order and are never removed. Registration
    is serialised with a lock; reads are not, since the registry is only
    written while policy modules load.

    Args:
        config: A :class:`~policycatalog.core.config.CatalogConfig`. Defaults to
                :data:`~policycatalog.core.config.DEFAULT_CONFIG`.
    """

    def __init__(self, config: Optional[CatalogConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.config.validate()
        self.default_enforcement_level = parse_enforcement_level(
            self.config.default_enforcement_level
        ).value
        self._records: List[PolicyRecord] = []
        self._by_name: Dict[str, PolicyRecord] = {}
        self._index: Dict[str, Dict[str, List[str]]] = {dim: {} for dim in DIMENSIONS}
        self._modules: List[ModuleInfo] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_policy(
        self,
        policy: ResourceValidationPolicy,
        metadata: CheckMetadata,
        module: str = "",
    ) -> ResourceValidationPolicy:
        """
        Register a check together with its classification metadata.

        Args:
            policy:   The check to register.
            metadata: Vendors, services, severity, topics and frameworks.
            module:   Optional dotted path of the declaring module, used by
                      the manifest.

        Returns:
            ``policy`` itself, so the declaring module can keep exporting it.

        Raises:
            InvalidDefinitionError: If a required field is missing or invalid.
            DuplicateNameError:     If a policy with the same name is already
                                    registered. The registry is left unchanged.
        """
        self._validate(policy, metadata)

        level = policy.enforcement or self.default_enforcement_level
        record = PolicyRecord(
            policy=policy,
            metadata=metadata,
            enforcement_level=level,
            module=module,
        )

        with self._lock:
            if policy.name in self._by_name:
                raise DuplicateNameError(policy.name)
            self._records.append(record)
            self._by_name[policy.name] = record
            self._index_record(record)

        logger.debug(
            "Registered policy %s (vendors=%s, services=%s, severity=%s)",
            policy.name,
            ",".join(metadata.vendors),
            ",".join(metadata.services),
            record.severity.value,
        )
        return policy

    def register_definitions(
        self,
        definitions: Iterable[PolicyDefinition],
        module: str = "",
    ) -> List[ResourceValidationPolicy]:
        """
        Register each definition in order.

        Stops at the first failing definition; earlier ones stay registered
        and the error propagates so that loading aborts.
        """
        return [
            self.register_policy(definition.policy, definition.metadata, module=module)
            for definition in definitions
        ]

    def register_policy_module(self, name: str, version: str) -> str:
        """
        Record a policy package that registered checks into this registry.

        Args:
            name:    Distribution or module name of the package.
            version: Its version string.

        Returns:
            ``version``, so a package can write
            ``__version__ = registry.register_policy_module(...)``.
        """
        if not name:
            raise InvalidDefinitionError("Policy module name must be a non-empty string.")
        with self._lock:
            self._modules.append(ModuleInfo(name=name, version=str(version)))
        logger.debug("Registered policy module %s %s", name, version)
        return version

    @property
    def registered_modules(self) -> List[ModuleInfo]:
        return list(self._modules)

    @staticmethod
    def _validate(policy: Any, metadata: Any) -> None:
        if not isinstance(policy, ResourceValidationPolicy):
            raise InvalidDefinitionError(
                f"Expected a ResourceValidationPolicy, got {type(policy).__name__}."
            )
        if not isinstance(policy.name, str) or not policy.name.strip():
            raise InvalidDefinitionError("Policy name must be a non-empty string.")
        if not callable(policy.validate_resource):
            raise InvalidDefinitionError(
                f"Policy {policy.name!r}: validate_resource must be callable."
            )
        if (
            policy.enforcement_level is not None
            and parse_enforcement_level(policy.enforcement_level) is None
        ):
            raise InvalidDefinitionError(
                f"Policy {policy.name!r}: unknown enforcement level "
                f"{policy.enforcement_level!r}."
            )
        if not isinstance(metadata, CheckMetadata):
            raise InvalidDefinitionError(
                f"Policy {policy.name!r}: metadata must be a CheckMetadata, "
                f"got {type(metadata).__name__}."
            )
        if not metadata.vendors:
            raise InvalidDefinitionError(f"Policy {policy.name!r}: at least one vendor is required.")
        if not metadata.services:
            raise InvalidDefinitionError(f"Policy {policy.name!r}: at least one service is required.")
        if not isinstance(metadata.severity, Severity):
            raise InvalidDefinitionError(
                f"Policy {policy.name!r}: unknown severity {metadata.severity!r}."
            )

    def _index_record(self, record: PolicyRecord) -> None:
        meta = record.metadata
        for dim in SET_FIELDS:
            for value in getattr(meta, dim):
                self._index[dim].setdefault(value, []).append(record.name)
        self._index["severity"].setdefault(record.severity.value, []).append(record.name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PolicyRecord]:
        return iter(list(self._records))

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def records(self) -> List[PolicyRecord]:
        return list(self._records)

    def get_record(self, name: str) -> Optional[PolicyRecord]:
        if not name:
            return None
        return self._by_name.get(name)

    def get_policy_by_name(self, name: str) -> Optional[ResourceValidationPolicy]:
        """
        Retrieve a registered check by name.

        Args:
            name: The policy name to look up.

        Returns:
            The registered policy, or ``None`` if ``name`` is empty or unknown.
        """
        record = self.get_record(name)
        return record.policy if record else None

    def known_values(self, dimension: str) -> List[str]:
        """Sorted distinct values seen for ``dimension`` (e.g. ``"vendors"``)."""
        return sorted(self._index.get(dimension, {}))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def filter_policies(
        self,
        criteria: CriteriaLike = None,
        enforcement_level: Union[EnforcementLevel, str, None] = None,
    ) -> List[ResourceValidationPolicy]:
        """
        Select the checks whose metadata matches ``criteria``.

        The match rules are described in :mod:`policycatalog.registry.criteria`.
        Results are in registration order and the call has no effect on the
        registry, so repeated calls return identical lists.

        Criteria values that no registered check carries are logged as a
        warning; they still simply match nothing.

        Instead of criteria, a list of checks (policy objects or names) may be
        cherry-picked. Duplicates collapse, unknown entries are logged and
        skipped, and the result still follows registration order.

        Args:
            criteria:          A :class:`FilterCriteria`, an equivalent mapping,
                               or a list of cherry-picked checks. ``None`` or
                               empty criteria select every check.
            enforcement_level: Optional override. When it names a valid level,
                               each returned check is a copy carrying that level;
                               the registered check is never modified.

        Returns:
            A new list of matching checks.
        """
        selected = self._select(criteria)

        override = None
        if enforcement_level is not None:
            override = parse_enforcement_level(enforcement_level)
            if override is None:
                logger.warning(
                    "Ignoring unknown enforcement level override %r", enforcement_level
                )

        if override is None:
            return [record.policy for record in selected]
        return [
            dataclasses.replace(record.policy, enforcement_level=override)
            for record in selected
        ]

    def filter_records(self, criteria: CriteriaLike = None) -> List[PolicyRecord]:
        """Same selection as :meth:`filter_policies`, returning the records."""
        return self._select(criteria, warn=False)

    def _select(self, criteria: CriteriaLike, warn: bool = True) -> List[PolicyRecord]:
        if is_policy_selection(criteria):
            return self._pick(criteria)
        if criteria is not None and not isinstance(criteria, (FilterCriteria, Mapping)):
            logger.warning("Unsupported filter criteria %r; selecting no policies", criteria)
            return []

        crit = self._coerce_criteria(criteria)
        if warn:
            self._warn_unknown_values(crit)
        selected = [record for record in self._records if self.matches(record, crit)]
        if warn and not selected and self._records and self.config.warn_on_empty_selection:
            logger.warning("Filter criteria selected no policies: %s", crit.to_dict())
        return selected

    def _pick(self, selection: PolicySelection) -> List[PolicyRecord]:
        wanted = set()
        for item in selection:
            name = item.name if isinstance(item, ResourceValidationPolicy) else item
            if not isinstance(name, str) or name not in self._by_name:
                logger.warning("Ignoring cherry-picked policy %r: not registered", name)
                continue
            wanted.add(name)
        return [record for record in self._records if record.name in wanted]

    @staticmethod
    def matches(record: PolicyRecord, criteria: FilterCriteria) -> bool:
        meta = record.metadata
        for dim in SET_FIELDS:
            wanted = getattr(criteria, dim)
            if wanted and not set(wanted) & set(getattr(meta, dim)):
                return False
        severity = record.severity.value
        min_rank = criteria.min_rank
        if min_rank is not None and SEVERITY_RANK[severity] < min_rank:
            return False
        if criteria.severities and severity not in criteria.severities:
            return False
        return True

    @staticmethod
    def _coerce_criteria(criteria: CriteriaLike) -> FilterCriteria:
        if criteria is None:
            return FilterCriteria()
        if isinstance(criteria, FilterCriteria):
            return criteria
        return FilterCriteria.from_dict(criteria)

    def _warn_unknown_values(self, criteria: FilterCriteria) -> None:
        if not self._records:
            return
        for dim in SET_FIELDS:
            unknown = [v for v in getattr(criteria, dim) if v not in self._index[dim]]
            if unknown:
                logger.warning(
                    "No registered policy has %s %s; check the criteria for typos.",
                    dim,
                    ", ".join(repr(v) for v in unknown),
                )
        severities = list(criteria.severities)
        if criteria.severity:
            severities.append(criteria.severity)
        invalid = [s for s in severities if s not in SEVERITY_RANK]
        if invalid:
            logger.warning(
                "Unknown severity %s in filter criteria; expected one of %s.",
                ", ".join(repr(s) for s in invalid),
                ", ".join(SEVERITY_RANK),
            )

    # ------------------------------------------------------------------
    # Evaluation gate
    # ------------------------------------------------------------------

    @staticmethod
    def should_eval_policy(args: ResourceValidationArgs) -> bool:
        """See :func:`policycatalog.validation.args.should_eval_policy`."""
        return should_eval_policy(args)

    def effective_enforcement_level(self, policy: ResourceValidationPolicy) -> str:
        """The policy's own level, or the configured default when unset."""
        return policy.enforcement or self.default_enforcement_level

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """
        Return registry statistics.

        Returns:
            Dict with ``policy_count``, ``modules`` (registered policy
            packages) and, for each of ``vendors``, ``services``,
            ``frameworks``, ``topics`` and ``severity``, a mapping of value to
            number of policies.
        """
        stats: Dict[str, Any] = {"policy_count": len(self._records)}
        for dim in DIMENSIONS:
            stats[dim] = {value: len(names) for value, names in sorted(self._index[dim].items())}
        stats["modules"] = [module.to_dict() for module in self._modules]
        return stats
