import logging

import pytest

from gatewayctl.snapshot_cache import (
    CLUSTER_TYPE,
    LISTENER_TYPE,
    DeltaDiscoveryRequest,
    DiscoveryRequest,
    LogWrapper,
    Node,
    SnapshotCache,
    SnapshotError,
)

LOGGER_NAME = "test.snapshot"


@pytest.fixture
def cache():
    return SnapshotCache(logger=logging.getLogger(LOGGER_NAME))


def resources():
    return {CLUSTER_TYPE: [{"name": "cluster_a"}], LISTENER_TYPE: [{"name": "listener_a"}]}


def test_versions_increment(cache):
    first = cache.generate_new_snapshot(resources())
    second = cache.generate_new_snapshot(resources())
    assert first.version == "1"
    assert second.version == "2"
    assert cache.last_snapshot is second


def test_version_wraps_at_int64_max(cache):
    cache.snapshot_version = 2**63 - 1
    assert cache.generate_new_snapshot(resources()).version == "1"


def test_unknown_resource_type_rejected(cache):
    with pytest.raises(SnapshotError):
        cache.generate_new_snapshot({"type.googleapis.com/unknown": []})
    assert cache.last_snapshot is None


def test_snapshot_holds_resources(cache):
    snap = cache.generate_new_snapshot(resources())
    assert snap.resources[CLUSTER_TYPE] == [{"name": "cluster_a"}]


def test_request_before_snapshot_records_node_only(cache):
    cache.on_stream_open(1, CLUSTER_TYPE)
    cache.on_stream_request(1, DiscoveryRequest(node=Node(id="node-a")))
    assert cache.node_ids() == ["node-a"]
    with pytest.raises(SnapshotError):
        cache.get_snapshot("node-a")


def test_generate_sends_to_known_nodes(cache):
    cache.on_stream_open(1, CLUSTER_TYPE)
    cache.on_stream_request(1, DiscoveryRequest(node=Node(id="node-a")))
    snap = cache.generate_new_snapshot(resources())
    assert cache.get_snapshot("node-a") is snap


def test_request_after_snapshot_assigns_latest(cache):
    snap = cache.generate_new_snapshot(resources())
    cache.on_stream_open(7, CLUSTER_TYPE)
    cache.on_stream_request(
        7, DiscoveryRequest(node=Node(id="node-b", user_agent_build_version=(1, 23, 0)))
    )
    assert cache.get_snapshot("node-b") is snap


def test_later_request_keeps_node_without_node_field(cache):
    cache.on_stream_open(2, CLUSTER_TYPE)
    cache.on_stream_request(2, DiscoveryRequest(node=Node(id="node-c")))
    cache.on_stream_request(2, DiscoveryRequest(node=None))
    assert cache.node_ids() == ["node-c"]


def test_first_request_without_node_raises(cache):
    cache.on_stream_open(3, CLUSTER_TYPE)
    with pytest.raises(SnapshotError, match="stream 3"):
        cache.on_stream_request(3, DiscoveryRequest(node=None))


def test_stream_closed_forgets_node(cache):
    cache.on_stream_open(4, CLUSTER_TYPE)
    cache.on_stream_request(4, DiscoveryRequest(node=Node(id="node-d")))
    cache.on_stream_closed(4)
    assert cache.node_ids() == []


def test_delta_stream_lifecycle(cache):
    snap = cache.generate_new_snapshot(resources())
    cache.on_delta_stream_open(5, CLUSTER_TYPE)
    cache.on_stream_delta_request(5, DeltaDiscoveryRequest(node=Node(id="node-e")))
    assert cache.get_snapshot("node-e") is snap
    cache.on_delta_stream_closed(5)
    assert cache.node_ids() == []


def test_delta_first_request_without_node_raises(cache):
    cache.on_delta_stream_open(6, CLUSTER_TYPE)
    with pytest.raises(SnapshotError, match="incremental"):
        cache.on_stream_delta_request(6, DeltaDiscoveryRequest())


def test_response_to_unknown_stream_logs_error(cache, caplog):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        cache.on_stream_response(9, DiscoveryRequest(), None)
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "stream 9" in errors[0].getMessage()


def test_log_wrapper_levels_and_formatting(caplog):
    wrapper = LogWrapper(logging.getLogger(LOGGER_NAME))
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        wrapper.debugf("value %s and %d", "x", 3)
        wrapper.infof("names %v", ["a"])
        wrapper.warnf("plain")
        wrapper.errorf("failed %s", "here")
    got = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert got == [
        (logging.DEBUG, "value x and 3"),
        (logging.INFO, "names ['a']"),
        (logging.WARNING, "plain"),
        (logging.ERROR, "failed here"),
    ]