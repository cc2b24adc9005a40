"""Table of translated xDS resources, grouped by resource type."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResourceVersionTable:
    """All translated xDS resources, keyed by resource type URL."""

    xds_resources: dict[str, list[Any] | None] = field(default_factory=dict)

    def add_xds_resource(self, resource_type: str, resource: Any) -> None:
        """Append ``resource`` to the resources of ``resource_type``."""
        if self.xds_resources.get(resource_type) is None:
            self.xds_resources[resource_type] = []
        self.xds_resources[resource_type].append(resource)

    def deep_copy(self) -> ResourceVersionTable:
        """Return a copy sharing no resource objects with this table."""
        return ResourceVersionTable(copy.deepcopy(self.xds_resources))