"""Capability registry: tool names, their schemas and their handlers.

Tools are declared once with :meth:`CapabilityRegistry.capability`; the
declaration yields both the advertised descriptor and the validation rules.
Category sub-registries (dashboards, cards, ...) are composed into the single
flat catalog the dispatcher routes on. Categories are organizational only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from metabase_mcp.core.errors import ConfigurationError, UnknownCapabilityError
from metabase_mcp.tools.param_schema import AtLeastOne, Schema, to_json_schema, validate_arguments

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Advertised description of one tool."""

    name: str
    description: str
    input_schema: Mapping[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": dict(self.input_schema),
        }


@dataclass(frozen=True)
class Capability:
    """A descriptor bound to its handler and argument rules."""

    descriptor: CapabilityDescriptor
    handler: Handler
    params: Schema = field(default_factory=dict)
    cross_field_rules: Tuple[AtLeastOne, ...] = ()

    @property
    def name(self) -> str:
        return self.descriptor.name

    def validate(self, args: Dict[str, Any]) -> None:
        """Check required fields and types; raises ``InvalidArgumentsError``."""
        validate_arguments(
            args,
            self.params,
            tool_name=self.name,
            cross_field_rules=self.cross_field_rules,
        )


class CapabilityRegistry:
    """Ordered name -> capability table."""

    def __init__(self, category: Optional[str] = None) -> None:
        self.category = category
        self._capabilities: Dict[str, Capability] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        descriptor: CapabilityDescriptor,
        handler: Handler,
        *,
        params: Optional[Schema] = None,
        cross_field_rules: Iterable[AtLeastOne] = (),
    ) -> Capability:
        """Add a capability.

        A descriptor without a category takes this registry's category.

        Raises:
            ConfigurationError: *descriptor.name* is already registered.
        """
        if descriptor.category is None and self.category:
            descriptor = replace(descriptor, category=self.category)
        if descriptor.name in self._capabilities:
            existing = self._capabilities[descriptor.name].descriptor.category
            raise ConfigurationError(
                f"Tool '{descriptor.name}'"
                + (f" from category '{descriptor.category}'" if descriptor.category else "")
                + " is already registered"
                + (f" in category '{existing}'" if existing else "")
            )
        capability = Capability(
            descriptor=descriptor,
            handler=handler,
            params=dict(params or {}),
            cross_field_rules=tuple(cross_field_rules),
        )
        self._capabilities[descriptor.name] = capability
        return capability

    def capability(
        self,
        name: str,
        description: str,
        params: Optional[Schema] = None,
        *,
        cross_field_rules: Iterable[AtLeastOne] = (),
    ) -> Callable[[Handler], Handler]:
        """Decorator that registers a handler with a schema built from *params*."""
        params = dict(params or {})
        rules = tuple(cross_field_rules)

        def decorator(func: Handler) -> Handler:
            descriptor = CapabilityDescriptor(
                name=name,
                description=description,
                input_schema=to_json_schema(params),
                category=self.category,
            )
            self.register(descriptor, func, params=params, cross_field_rules=rules)
            return func

        return decorator

    def include(self, other: "CapabilityRegistry") -> "CapabilityRegistry":
        """Merge *other*'s capabilities into this registry, keeping order."""
        for capability in other:
            self.register(
                capability.descriptor,
                capability.handler,
                params=capability.params,
                cross_field_rules=capability.cross_field_rules,
            )
        return self

    @classmethod
    def compose(cls, *registries: "CapabilityRegistry") -> "CapabilityRegistry":
        """Build one flat registry from category sub-registries.

        Raises:
            ConfigurationError: a name appears in more than one sub-registry.
        """
        combined = cls()
        for registry in registries:
            combined.include(registry)
        return combined

    def without(self, names: Iterable[str]) -> "CapabilityRegistry":
        """Return a copy that omits *names* (used for disabled tools)."""
        excluded = set(names)
        unknown = excluded - set(self._capabilities)
        if unknown:
            logger.warning("Ignoring unknown disabled tools: %s", ", ".join(sorted(unknown)))
        trimmed = CapabilityRegistry(self.category)
        for capability in self:
            if capability.name not in excluded:
                trimmed._capabilities[capability.name] = capability
        return trimmed

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Capability:
        try:
            return self._capabilities[name]
        except KeyError:
            raise UnknownCapabilityError(name) from None

    def resolve(self, name: str) -> Handler:
        """Return the handler registered for *name*.

        Raises:
            UnknownCapabilityError: *name* is not in the catalog.
        """
        return self.get(name).handler

    def list_descriptors(self) -> List[CapabilityDescriptor]:
        """All descriptors in registration order."""
        return [capability.descriptor for capability in self._capabilities.values()]

    def names(self) -> List[str]:
        return list(self._capabilities)

    def categories(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for capability in self:
            grouped.setdefault(capability.descriptor.category or "general", []).append(capability.name)
        return grouped

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def __iter__(self) -> Iterator[Capability]:
        return iter(list(self._capabilities.values()))
