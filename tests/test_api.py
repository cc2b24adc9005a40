import pytest

from gatewayctl.api import (
    ConditionStatus,
    Gateway,
    GatewayClass,
    HTTPRoute,
    NamespacedName,
    ObjectMeta,
    ObjectNotFoundError,
    Service,
    namespaced_name,
)


@pytest.mark.parametrize("kind", [Gateway, Service, HTTPRoute, GatewayClass])
def test_namespaced_name_of_objects(kind):
    obj = kind(metadata=ObjectMeta(name="web", namespace="prod"))
    assert namespaced_name(obj) == NamespacedName(namespace="prod", name="web")


def test_str_joins_namespace_and_name():
    assert str(NamespacedName("prod", "web")) == "prod/web"


def test_str_of_cluster_scoped_name_keeps_separator():
    assert str(NamespacedName(name="web")) == "/web"


def test_namespaced_name_is_usable_as_key():
    store = {NamespacedName("a", "b"): 1}
    assert store[NamespacedName("a", "b")] == 1
    assert NamespacedName("a", "c") not in store


def test_object_properties_forward_metadata():
    gw = Gateway(metadata=ObjectMeta(name="g", namespace="ns", generation=3))
    assert (gw.name, gw.namespace, gw.generation) == ("g", "ns", 3)


def test_condition_status_parses_from_strings():
    assert ConditionStatus("True") is ConditionStatus.TRUE
    assert ConditionStatus("False") is ConditionStatus.FALSE
    assert ConditionStatus("True") == "True"


def test_condition_status_rejects_unknown_value():
    with pytest.raises(ValueError):
        ConditionStatus("Maybe")


def test_object_not_found_error_carries_key():
    key = NamespacedName("ns", "missing")
    with pytest.raises(LookupError) as info:
        raise ObjectNotFoundError(key)
    assert info.value.key == key
    assert str(key) in str(info.value)


def test_default_lists_are_independent():
    first = Gateway()
    second = Gateway()
    first.conditions.append(object())
    assert second.conditions == []