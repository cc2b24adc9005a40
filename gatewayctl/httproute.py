"""Backend references of HTTP routes: validation and service index keys."""

from __future__ import annotations

from gatewayctl.api import HTTPBackendRef, HTTPRoute, NamespacedName

KIND_SERVICE = "Service"
# The core API group, which Services belong to, is the empty string.
CORE_GROUP = ""
# Name of the index from HTTP routes to the services they reference.
SERVICE_HTTPROUTE_INDEX = "serviceHTTPRouteBackendRef"


class InvalidBackendRefError(ValueError):
    """Raised when a backend reference does not point at a local Service."""


def validate_backend_ref(ref: HTTPBackendRef | None) -> None:
    """Check that ``ref`` references a Service in the route's own namespace.

    A missing reference is accepted. Raises InvalidBackendRefError otherwise.
    """
    if ref is None:
        return
    if ref.group is not None and ref.group != CORE_GROUP:
        raise InvalidBackendRefError("invalid group; must be nil or empty string")
    if ref.kind is not None and ref.kind != KIND_SERVICE:
        raise InvalidBackendRefError(f'invalid kind "{ref.kind}"; must be "{KIND_SERVICE}"')
    if ref.namespace is not None:
        raise InvalidBackendRefError("invalid namespace; must be nil")


def backend_service_keys(route: HTTPRoute) -> list[str]:
    """Return ``namespace/name`` keys of the Services ``route`` sends traffic to.

    A backend without an explicit kind is a Service, the API default. A backend
    without an explicit namespace lives in the route's namespace.
    """
    keys: list[str] = []
    for rule in route.rules:
        for backend in rule.backend_refs:
            kind = KIND_SERVICE if backend.kind is None else backend.kind
            if kind != KIND_SERVICE:
                continue
            namespace = route.namespace if backend.namespace is None else backend.namespace
            keys.append(str(NamespacedName(namespace=namespace, name=backend.name)))
    return keys