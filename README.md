# gatewayctl

Building blocks for a gateway control plane that drives Envoy: status
conditions for Gateway API objects, helpers that decide which gateway
classes, gateways and HTTP route backends the controller manages, and
building of xDS routes and clusters with a per-node snapshot cache.

It has no third-party dependencies.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `gatewayctl.env` – `lookup(key, default)` reads an environment variable
  and converts it to the type of the default: `str`, `int` or
  `datetime.timedelta` (durations written like `"1h30m"`, `"1.5s"` or
  `"-250ms"`). The default is returned when the variable is unset or cannot
  be converted; any other type of default raises `TypeError`.
- `gatewayctl.api` – plain data classes for the objects the control plane
  works with: `GatewayClass`, `Gateway`, `GatewayAddress`, `Service`,
  `LoadBalancerIngress`, `HTTPRoute`, `HTTPRouteRule`, `HTTPBackendRef`,
  `Condition`, `ObjectMeta`, the enums `ConditionStatus` and `AddressType`,
  `NamespacedName` (which prints as `namespace/name`), `namespaced_name(obj)`
  and `ObjectNotFoundError`. `RBAC_RULES` lists the API permissions the
  controllers need.
- `gatewayctl.conditions` – computes and merges status conditions:
  `set_gateway_class_accepted`, `set_gateway_status` (which also fills the
  gateway's addresses from a service's load-balancer ingress, IPs first),
  `merge_conditions`, `condition_changed` and `new_condition`.
- `gatewayctl.updates` – `UpdateHandler` applies queued status `Update`s
  through a client that offers `get(resource, key)` and
  `update_status(obj)`, retrying when the client raises `ConflictError`.
  `UpdateHandler.writer()` returns an `UpdateWriter`, whose `send` drops
  updates until the handler's `start(stop_event)` has begun.
  `is_status_equal` lets the handler skip writes that would change nothing.
- `gatewayctl.controllers` – `is_accepted`, `gateways_of_class`,
  `ControlledClasses` (the oldest matching class, then the alphabetically
  first, is the accepted one), `GatewayClassReconciler` and
  `GatewayReconciler`, whose `has_matching_controller` tells whether an
  object belongs to the configured controller name.
- `gatewayctl.httproute` – `validate_backend_ref` raises
  `InvalidBackendRefError` for backends that are not local Services;
  `backend_service_keys` lists the `namespace/name` keys of the Services a
  route refers to.
- `gatewayctl.resource_table` – `ResourceVersionTable` holds xDS resources
  grouped by type URL, with `add_xds_resource` and `deep_copy`.
- `gatewayctl.xds_routes` – builds xDS routes, route matches, redirect and
  direct-response actions, clusters and endpoints, as dictionaries shaped
  like the JSON form of the xDS messages, from `XdsHTTPRoute` descriptions.
- `gatewayctl.snapshot_cache` – `SnapshotCache` remembers which node each
  discovery stream belongs to, versions each new snapshot, hands it to every
  known node, and gives a node the latest snapshot on its first request.
  `LogWrapper` offers printf-style `debugf`, `infof`, `warnf` and `errorf`.

## Example

```python
from gatewayctl.api import GatewayClass, ObjectMeta
from gatewayctl.conditions import set_gateway_class_accepted

gc = GatewayClass(metadata=ObjectMeta(name="eg", generation=3))
set_gateway_class_accepted(gc, True)
print(gc.conditions[0].status)  # ConditionStatus.TRUE
```

## What it does not do

The package is a library, not a running control plane. It has no command
to start, does not talk to a Kubernetes API server or watch objects, does
not serve xDS over gRPC, and does not build listeners, TLS settings or
secrets; callers supply clients, streams and listener configuration
themselves.