from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..collect.model import CollectorConfig
from ..util.errors import ConfigError
from .base import CATEGORY_ORDER, ServiceCategory, ServiceDefinition


class ServiceRegistry:
    """
    Registry mapping service names (and aliases) to ServiceDefinitions.
    Registration order is preserved and is the default collection order.
    """

    def __init__(self) -> None:
        self._map: Dict[str, ServiceDefinition] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, definition: ServiceDefinition) -> None:
        self._map[definition.name] = definition
        for alias in definition.aliases:
            self._aliases[alias] = definition.name

    def get(self, name: str) -> Optional[ServiceDefinition]:
        key = name.strip().lower()
        return self._map.get(self._aliases.get(key, key))

    def names(self) -> List[str]:
        return list(self._map.keys())

    def definitions(self) -> List[ServiceDefinition]:
        return list(self._map.values())


_global_registry = ServiceRegistry()


def register_service(definition: ServiceDefinition) -> None:
    _global_registry.register(definition)


def get_service(name: str) -> Optional[ServiceDefinition]:
    return _global_registry.get(name)


def list_services() -> List[ServiceDefinition]:
    return _global_registry.definitions()


def service_names() -> List[str]:
    return _global_registry.names()


def services_by_category() -> Dict[ServiceCategory, List[str]]:
    grouped: Dict[ServiceCategory, List[str]] = {}
    for definition in list_services():
        grouped.setdefault(definition.category, []).append(definition.name)
    return {cat: sorted(grouped[cat]) for cat in CATEGORY_ORDER if cat in grouped}


def resolve_services(names: Optional[Iterable[str]] = None) -> List[ServiceDefinition]:
    """
    Resolve requested service names (aliases allowed) into definitions, preserving
    request order and dropping duplicates. None or empty means every service.
    """
    requested = [n for n in (names or []) if n and n.strip()]
    if not requested:
        return list_services()
    resolved: List[ServiceDefinition] = []
    unknown: List[str] = []
    for name in requested:
        definition = get_service(name)
        if definition is None:
            unknown.append(name)
        elif definition not in resolved:
            resolved.append(definition)
    if unknown:
        raise ConfigError(
            f"Unknown service(s): {', '.join(unknown)}. "
            f"Supported services: {', '.join(service_names())}"
        )
    return resolved


def build_collectors(names: Optional[Iterable[str]] = None) -> List[CollectorConfig]:
    return [definition.build() for definition in resolve_services(names)]


def _register_builtin_services() -> None:
    from . import compute, devtools, integration, management, networking, security, storage

    for module in (compute, storage, networking, security, management, integration, devtools):
        for definition in module.SERVICES:
            register_service(definition)


_register_builtin_services()
