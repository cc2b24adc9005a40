"""Resource model for gateway classes, gateways, services and routes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime

# Permissions the controllers need: (API group, resources, verbs).
RBAC_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    (
        "gateway.networking.k8s.io",
        ("gatewayclasses", "gateways", "httproutes", "referencepolicies", "referencegrants"),
        ("get", "list", "watch"),
    ),
    (
        "gateway.networking.k8s.io",
        ("gatewayclasses/status", "gateways/status", "httproutes/status"),
        ("update",),
    ),
    ("", ("secrets", "services", "namespaces"), ("get", "list", "watch")),
)


@dataclass(frozen=True, order=True)
class NamespacedName:
    """Key of an object: its namespace and name."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ConditionStatus(str, enum.Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    """A status condition on a resource."""

    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    generation: int = 0
    labels: dict[str, str] = field(default_factory=dict)
    creation_timestamp: datetime | None = None


@dataclass
class _Object:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def generation(self) -> int:
        return self.metadata.generation


@dataclass
class GatewayClass(_Object):
    controller_name: str = ""
    conditions: list[Condition] = field(default_factory=list)


class AddressType(str, enum.Enum):
    IP_ADDRESS = "IPAddress"
    HOSTNAME = "Hostname"


@dataclass
class GatewayAddress:
    type: AddressType
    value: str


@dataclass
class Gateway(_Object):
    gateway_class_name: str = ""
    addresses: list[GatewayAddress] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class LoadBalancerIngress:
    ip: str = ""
    hostname: str = ""


@dataclass
class Service(_Object):
    ingress: list[LoadBalancerIngress] = field(default_factory=list)


@dataclass
class HTTPBackendRef:
    name: str
    group: str | None = None
    kind: str | None = None
    namespace: str | None = None
    port: int | None = None
    weight: int | None = None


@dataclass
class HTTPRouteRule:
    backend_refs: list[HTTPBackendRef] = field(default_factory=list)


@dataclass
class HTTPRoute(_Object):
    hostnames: list[str] = field(default_factory=list)
    rules: list[HTTPRouteRule] = field(default_factory=list)


class ObjectNotFoundError(LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, key: object) -> None:
        super().__init__(f"{key} not found")
        self.key = key


def namespaced_name(obj: _Object) -> NamespacedName:
    """Return the namespace/name key of ``obj``."""
    return NamespacedName(namespace=obj.metadata.namespace, name=obj.metadata.name)