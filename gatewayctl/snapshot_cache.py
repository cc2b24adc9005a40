"""Snapshot cache of xDS resources, kept per node and fed by stream callbacks."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

_TYPE_PREFIX = "type.googleapis.com/"

ENDPOINT_TYPE = _TYPE_PREFIX + "envoy.config.endpoint.v3.ClusterLoadAssignment"
CLUSTER_TYPE = _TYPE_PREFIX + "envoy.config.cluster.v3.Cluster"
ROUTE_TYPE = _TYPE_PREFIX + "envoy.config.route.v3.RouteConfiguration"
SCOPED_ROUTE_TYPE = _TYPE_PREFIX + "envoy.config.route.v3.ScopedRouteConfiguration"
VIRTUAL_HOST_TYPE = _TYPE_PREFIX + "envoy.config.route.v3.VirtualHost"
LISTENER_TYPE = _TYPE_PREFIX + "envoy.config.listener.v3.Listener"
SECRET_TYPE = _TYPE_PREFIX + "envoy.extensions.transport_sockets.tls.v3.Secret"
RUNTIME_TYPE = _TYPE_PREFIX + "envoy.service.runtime.v3.Runtime"
EXTENSION_CONFIG_TYPE = _TYPE_PREFIX + "envoy.config.core.v3.TypedExtensionConfig"

KNOWN_RESOURCE_TYPES = frozenset(
    {
        ENDPOINT_TYPE,
        CLUSTER_TYPE,
        ROUTE_TYPE,
        SCOPED_ROUTE_TYPE,
        VIRTUAL_HOST_TYPE,
        LISTENER_TYPE,
        SECRET_TYPE,
        RUNTIME_TYPE,
        EXTENSION_CONFIG_TYPE,
    }
)

_MAX_VERSION = 2**63 - 1


class LogWrapper:
    """Printf-style levelled logging on top of a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _format(template: str, args: tuple[Any, ...]) -> str:
        if not args:
            return template
        return template.replace("%v", "%s") % args

    def debugf(self, template: str, *args: Any) -> None:
        self.logger.debug(self._format(template, args))

    def infof(self, template: str, *args: Any) -> None:
        self.logger.info(self._format(template, args))

    def warnf(self, template: str, *args: Any) -> None:
        self.logger.warning(self._format(template, args))

    def errorf(self, template: str, *args: Any) -> None:
        self.logger.error(self._format(template, args))


@dataclass
class Node:
    """The proxy node that opened a discovery stream."""

    id: str = ""
    user_agent_build_version: tuple[int, int, int] | None = None


@dataclass
class DiscoveryRequest:
    """A state-of-the-world discovery request."""

    node: Node | None = None
    version_info: str = ""
    response_nonce: str = ""
    resource_names: list[str] = field(default_factory=list)
    type_url: str = ""
    error_detail: tuple[int, str] | None = None


@dataclass
class DeltaDiscoveryRequest:
    """An incremental discovery request."""

    node: Node | None = None
    response_nonce: str = ""
    resource_names_subscribe: list[str] = field(default_factory=list)
    resource_names_unsubscribe: list[str] = field(default_factory=list)
    type_url: str = ""
    error_detail: tuple[int, str] | None = None


@dataclass
class Snapshot:
    """A versioned set of resources, grouped by type URL."""

    version: str
    resources: dict[str, list[Any]] = field(default_factory=dict)


class SnapshotError(Exception):
    """Raised when a snapshot cannot be built, found or attached to a node."""


def _node_hash(node: Node | None) -> str:
    return "" if node is None else node.id


def _node_version(node: Node | None) -> str:
    if node is None or node.user_agent_build_version is None:
        return ""
    major, minor, patch = node.user_agent_build_version
    return f"v{major}.{minor}.{patch}"


def _new_snapshot(version: str, resources: Mapping[str, Sequence[Any] | None]) -> Snapshot:
    grouped: dict[str, list[Any]] = {}
    for type_url, items in resources.items():
        if type_url not in KNOWN_RESOURCE_TYPES:
            raise SnapshotError(f"unknown resource type: {type_url}")
        grouped[type_url] = list(items or [])
    return Snapshot(version=version, resources=grouped)


class SnapshotCache:
    """Stores snapshots per node and tracks which node each stream belongs to."""

    def __init__(self, ads: bool = False, logger: logging.Logger | None = None) -> None:
        self.ads = ads
        self.log = LogWrapper(logger)
        self.snapshot_version = 0
        self.last_snapshot: Snapshot | None = None
        self.fetch_requests: Counter[str] = Counter()
        self.fetch_responses: Counter[str] = Counter()
        self._snapshots: dict[str, Snapshot] = {}
        self._stream_nodes: dict[int, str] = {}
        self._lock = threading.RLock()

    def _next_version(self) -> str:
        if self.snapshot_version == _MAX_VERSION:
            self.snapshot_version = 0
        self.snapshot_version += 1
        return str(self.snapshot_version)

    def generate_new_snapshot(self, resources: Mapping[str, Sequence[Any] | None]) -> Snapshot:
        """Build a snapshot with a new version and hand it to every known node."""
        with self._lock:
            snapshot = _new_snapshot(self._next_version(), resources)
            self.last_snapshot = snapshot
            for node_id in self.node_ids():
                self.log.debugf("Generating a snapshot with Node %s", node_id)
                self.set_snapshot(node_id, snapshot)
            return snapshot

    def set_snapshot(self, node_id: str, snapshot: Snapshot) -> None:
        with self._lock:
            self._snapshots[node_id] = snapshot

    def get_snapshot(self, node_id: str) -> Snapshot:
        """Return the snapshot of ``node_id``; raise SnapshotError if it has none."""
        with self._lock:
            try:
                return self._snapshots[node_id]
            except KeyError:
                raise SnapshotError(f"no snapshot found for node {node_id}") from None

    def node_ids(self) -> list[str]:
        """Return the node ID of every open stream, empty for unidentified ones."""
        with self._lock:
            return list(self._stream_nodes.values())

    def _resolve_node(self, stream_id: int, node: Node | None, kind: str) -> str:
        node_id = self._stream_nodes.get(stream_id, "")
        if node_id:
            return node_id
        node_id = _node_hash(node)
        if not node_id:
            raise SnapshotError(
                f"couldn't hash the node ID from the first {kind} request on stream {stream_id}"
            )
        self.log.debugf("First %s request on stream %d, got nodeID %s", kind, stream_id, node_id)
        self._stream_nodes[stream_id] = node_id
        return node_id

    def _ensure_snapshot(self, node_id: str) -> bool:
        if self.last_snapshot is None:
            return False
        if node_id not in self._snapshots:
            self.set_snapshot(node_id, self.last_snapshot)
        return True

    def on_stream_open(self, stream_id: int, type_url: str) -> None:
        with self._lock:
            self._stream_nodes[stream_id] = ""

    def on_stream_closed(self, stream_id: int) -> None:
        with self._lock:
            self._stream_nodes.pop(stream_id, None)

    def on_stream_request(self, stream_id: int, request: DiscoveryRequest) -> None:
        """Record the stream's node and give it the latest snapshot if it has none."""
        with self._lock:
            node_id = self._resolve_node(stream_id, request.node, "discovery")
            if not self._ensure_snapshot(node_id):
                return
            node_version = _node_version(request.node)
            self.log.debugf(
                "Got a new request, version_info %s, response_nonce %s, nodeID %s, node_version %s",
                request.version_info,
                request.response_nonce,
                node_id,
                node_version,
            )
            code, message = request.error_detail or (0, "")
            self.log.debugf(
                "handling v3 xDS resource request, version_info %s, response_nonce %s, "
                "nodeID %s, node_version %s, resource_names %v, type_url %s, "
                "errorCode %d, errorMessage %s",
                request.version_info,
                request.response_nonce,
                node_id,
                node_version,
                request.resource_names,
                request.type_url,
                code,
                message,
            )

    def on_stream_response(self, stream_id: int, request: DiscoveryRequest, response: Any) -> None:
        node_id = self._stream_nodes.get(stream_id, "")
        if not node_id:
            self.log.errorf(
                "Tried to send a response to a node we haven't seen yet on stream %d", stream_id
            )
        self.log.debugf("Sending Response on stream %d to node %s", stream_id, node_id)

    def on_delta_stream_open(self, stream_id: int, type_url: str) -> None:
        with self._lock:
            self._stream_nodes[stream_id] = ""

    def on_delta_stream_closed(self, stream_id: int) -> None:
        with self._lock:
            self._stream_nodes.pop(stream_id, None)

    def on_stream_delta_request(self, stream_id: int, request: DeltaDiscoveryRequest) -> None:
        """Incremental counterpart of :meth:`on_stream_request`."""
        with self._lock:
            node_id = self._resolve_node(stream_id, request.node, "incremental discovery")
            if not self._ensure_snapshot(node_id):
                return
            node_version = _node_version(request.node)
            self.log.debugf(
                "Got a new request, response_nonce %s, nodeID %s, node_version %s",
                request.response_nonce,
                node_id,
                node_version,
            )
            code, message = request.error_detail or (0, "")
            self.log.debugf(
                "handling v3 xDS resource request, response_nonce %s, nodeID %s, "
                "node_version %s, resource_names_subscribe %v, resource_names_unsubscribe %v, "
                "type_url %s, errorCode %d, errorMessage %s",
                request.response_nonce,
                node_id,
                node_version,
                request.resource_names_subscribe,
                request.resource_names_unsubscribe,
                request.type_url,
                code,
                message,
            )

    def on_stream_delta_response(
        self, stream_id: int, request: DeltaDiscoveryRequest, response: Any
    ) -> None:
        node_id = self._stream_nodes.get(stream_id, "")
        if not node_id:
            self.log.errorf(
                "Tried to send a response to a node we haven't seen yet on stream %d", stream_id
            )
        self.log.debugf("Sending Incremental Response on stream %d to node %s", stream_id, node_id)

    def on_fetch_request(self, request: DiscoveryRequest) -> None:
        """Count a REST fetch request by its type URL; fetches never fail."""
        with self._lock:
            self.fetch_requests[request.type_url] += 1

    def on_fetch_response(self, request: DiscoveryRequest, response: Any) -> None:
        """Count a REST fetch response by the type URL of its request."""
        with self._lock:
            self.fetch_responses[request.type_url] += 1