import pytest

from gatewayctl.api import HTTPBackendRef, HTTPRoute, HTTPRouteRule, NamespacedName, ObjectMeta
from gatewayctl.httproute import (
    KIND_SERVICE,
    InvalidBackendRefError,
    backend_service_keys,
    validate_backend_ref,
)


def _route(*rules: list[HTTPBackendRef], namespace: str = "routes") -> HTTPRoute:
    return HTTPRoute(
        metadata=ObjectMeta(name="route", namespace=namespace),
        rules=[HTTPRouteRule(backend_refs=list(refs)) for refs in rules],
    )


@pytest.mark.parametrize(
    "ref",
    [
        None,
        HTTPBackendRef(name="svc"),
        HTTPBackendRef(name="svc", group=""),
        HTTPBackendRef(name="svc", kind="Service"),
        HTTPBackendRef(name="svc", group="", kind="Service", port=80),
    ],
)
def test_valid_refs_pass(ref):
    assert validate_backend_ref(ref) is None


def test_invalid_group():
    with pytest.raises(InvalidBackendRefError, match="invalid group; must be nil or empty string"):
        validate_backend_ref(HTTPBackendRef(name="svc", group="apps"))


def test_invalid_kind_names_kind():
    with pytest.raises(InvalidBackendRefError) as info:
        validate_backend_ref(HTTPBackendRef(name="svc", kind="Deployment"))
    assert str(info.value) == 'invalid kind "Deployment"; must be "Service"'


def test_invalid_namespace():
    with pytest.raises(InvalidBackendRefError, match="invalid namespace; must be nil"):
        validate_backend_ref(HTTPBackendRef(name="svc", namespace="other"))


def test_group_checked_before_kind():
    with pytest.raises(InvalidBackendRefError, match="invalid group"):
        validate_backend_ref(HTTPBackendRef(name="svc", group="apps", kind="Deployment"))


def test_error_is_value_error():
    with pytest.raises(ValueError):
        validate_backend_ref(HTTPBackendRef(name="svc", namespace="x"))


def test_keys_default_to_route_namespace():
    route = _route([HTTPBackendRef(name="a")], namespace="shop")
    assert backend_service_keys(route) == [str(NamespacedName("shop", "a"))]


def test_keys_use_explicit_namespace():
    route = _route([HTTPBackendRef(name="a", namespace="other", kind=KIND_SERVICE)])
    assert backend_service_keys(route) == [str(NamespacedName("other", "a"))]


def test_keys_skip_non_service_kinds_and_keep_order():
    route = _route(
        [HTTPBackendRef(name="a"), HTTPBackendRef(name="skip", kind="HTTPRoute")],
        [HTTPBackendRef(name="b", kind="Service")],
    )
    assert backend_service_keys(route) == [
        str(NamespacedName("routes", "a")),
        str(NamespacedName("routes", "b")),
    ]


def test_keys_empty_without_rules():
    assert backend_service_keys(_route()) == []