from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Tuple

from ..collect.model import CollectorConfig

CollectorFactory = Callable[[], CollectorConfig]


class ServiceCategory(Enum):
    COMPUTE = "compute"
    STORAGE = "storage"
    NETWORKING = "networking"
    SECURITY = "security"
    MANAGEMENT = "management"
    INTEGRATION = "integration"
    DEVTOOLS = "devtools"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ServiceCategory.COMPUTE: "Compute & Containers",
    ServiceCategory.STORAGE: "Storage & Database",
    ServiceCategory.NETWORKING: "Networking",
    ServiceCategory.SECURITY: "Security & Identity",
    ServiceCategory.MANAGEMENT: "Management & Monitoring",
    ServiceCategory.INTEGRATION: "Application Integration",
    ServiceCategory.DEVTOOLS: "Developer Tools",
}

# Listing order for `list-services`.
CATEGORY_ORDER = tuple(ServiceCategory)


@dataclass(frozen=True)
class ServiceDefinition:
    """
    A collectable service: its name, display category, and a factory that builds
    a fresh CollectorConfig (pure data, no I/O).
    """

    name: str
    category: ServiceCategory
    factory: CollectorFactory
    aliases: Tuple[str, ...] = ()

    def build(self) -> CollectorConfig:
        return self.factory()
