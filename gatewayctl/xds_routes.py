"""Building of xDS routes and clusters from the intermediate route model.

Resources are plain dictionaries laid out like the JSON form of the xDS
messages, so they can be serialised or compared directly.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

Resource = dict[str, Any]

XDS_CLUSTER_NAME = "xds_cluster"
DEFAULT_API_VERSION = "V3"
CONNECT_TIMEOUT = "5s"
REDIRECT_FOUND = 302


@dataclass
class StringMatch:
    """A match on a path, header or query parameter; at most one kind is used."""

    name: str = ""
    exact: str | None = None
    prefix: str | None = None
    safe_regex: str | None = None


@dataclass
class RouteDestination:
    """An upstream endpoint of a route."""

    host: str
    port: int
    weight: int = 0


@dataclass
class RedirectPath:
    """How a redirect rewrites the path."""

    full_replace: str | None = None
    prefix_match_replace: str | None = None


@dataclass
class Redirect:
    """A redirect answered instead of forwarding the request."""

    scheme: str | None = None
    hostname: str | None = None
    path: RedirectPath | None = None
    port: int | None = None
    status_code: int | None = None


@dataclass
class DirectResponse:
    """A fixed response answered instead of forwarding the request."""

    status_code: int
    body: str | None = None


@dataclass
class XdsHTTPRoute:
    """One route of an HTTP listener in the intermediate model."""

    name: str
    path_match: StringMatch | None = None
    header_matches: list[StringMatch] = field(default_factory=list)
    query_param_matches: list[StringMatch] = field(default_factory=list)
    destinations: list[RouteDestination] = field(default_factory=list)
    redirect: Redirect | None = None
    direct_response: DirectResponse | None = None


def get_xds_route_name(listener_name: str) -> str:
    return f"route_{listener_name}"


def get_xds_listener_name(listener_name: str, listener_port: int) -> str:
    return f"listener_{listener_name}_{listener_port}"


def get_xds_secret_name(listener_name: str) -> str:
    return f"secret_{listener_name}"


def get_xds_cluster_name(route_name: str) -> str:
    return f"cluster_{route_name}"


def _regex_matcher(regex: str) -> Resource:
    return {"googleRe2": {}, "regex": regex}


def build_xds_string_matcher(match: StringMatch) -> Resource:
    """Build a string matcher; exact wins over prefix, prefix over regex."""
    if match.exact is not None:
        return {"exact": match.exact}
    if match.prefix is not None:
        return {"prefix": match.prefix}
    if match.safe_regex is not None:
        return {"safeRegex": _regex_matcher(match.safe_regex)}
    return {}


def build_xds_route_match(
    path_match: StringMatch | None,
    header_matches: list[StringMatch] | None,
    query_param_matches: list[StringMatch] | None,
) -> Resource:
    """Build a route match; with no matches at all it matches every path."""
    header_matches = header_matches or []
    query_param_matches = query_param_matches or []
    if path_match is None and not header_matches and not query_param_matches:
        return {"prefix": "/"}

    out: Resource = {}
    if path_match is not None:
        if path_match.exact is not None:
            out["path"] = path_match.exact
        elif path_match.prefix is not None:
            out["prefix"] = path_match.prefix
        elif path_match.safe_regex is not None:
            out["safeRegex"] = _regex_matcher(path_match.safe_regex)

    if header_matches:
        out["headers"] = [
            {"name": m.name, "stringMatch": build_xds_string_matcher(m)} for m in header_matches
        ]
    if query_param_matches:
        out["queryParameters"] = [
            {"name": m.name, "stringMatch": build_xds_string_matcher(m)}
            for m in query_param_matches
        ]
    return out


def build_xds_route_action(route_name: str) -> Resource:
    """Build an action forwarding to the cluster of ``route_name``."""
    return {"cluster": get_xds_cluster_name(route_name)}


def build_xds_redirect_action(redirect: Redirect) -> Resource:
    """Build a redirect action; only 302 is set explicitly, 301 is the default."""
    out: Resource = {}
    if redirect.scheme is not None:
        out["schemeRedirect"] = redirect.scheme
    if redirect.path is not None:
        if redirect.path.full_replace is not None:
            out["pathRedirect"] = redirect.path.full_replace
        elif redirect.path.prefix_match_replace is not None:
            out["prefixRewrite"] = redirect.path.prefix_match_replace
    if redirect.hostname is not None:
        out["hostRedirect"] = redirect.hostname
    if redirect.port is not None:
        out["portRedirect"] = redirect.port
    if redirect.status_code == REDIRECT_FOUND:
        out["responseCode"] = "FOUND"
    return out


def build_xds_direct_response_action(response: DirectResponse) -> Resource:
    """Build a direct response action with an optional inline body."""
    out: Resource = {"status": response.status_code}
    if response.body is not None:
        out["body"] = {"inlineString": response.body}
    return out


def build_xds_route(http_route: XdsHTTPRoute) -> Resource:
    """Build the xDS route for ``http_route``.

    A direct response takes precedence over a redirect, which takes precedence
    over forwarding to the route's cluster.
    """
    route: Resource = {
        "match": build_xds_route_match(
            http_route.path_match, http_route.header_matches, http_route.query_param_matches
        )
    }
    if http_route.direct_response is not None:
        route["directResponse"] = build_xds_direct_response_action(http_route.direct_response)
    elif http_route.redirect is not None:
        route["redirect"] = build_xds_redirect_action(http_route.redirect)
    else:
        route["route"] = build_xds_route_action(http_route.name)
    return route


def build_xds_endpoints(destinations: list[RouteDestination]) -> list[Resource]:
    """Build load-balanced TCP endpoints; a weight of zero is left unset."""
    endpoints: list[Resource] = []
    for destination in destinations:
        endpoint: Resource = {
            "endpoint": {
                "address": {
                    "socketAddress": {
                        "protocol": "TCP",
                        "address": destination.host,
                        "portValue": destination.port,
                    }
                }
            }
        }
        if destination.weight != 0:
            endpoint["loadBalancingWeight"] = destination.weight
        endpoints.append(endpoint)
    return endpoints


def build_xds_cluster(http_route: XdsHTTPRoute) -> Resource:
    """Build a static round-robin cluster holding the route's destinations."""
    cluster_name = get_xds_cluster_name(http_route.name)
    # One locality with weight 1: the value does not matter with a single
    # locality, but some load balancers need it set.
    locality = {
        "locality": {},
        "lbEndpoints": build_xds_endpoints(http_route.destinations),
        "loadBalancingWeight": 1,
    }
    return {
        "name": cluster_name,
        "type": "STATIC",
        "connectTimeout": CONNECT_TIMEOUT,
        "lbPolicy": "ROUND_ROBIN",
        "loadAssignment": {"clusterName": cluster_name, "endpoints": [locality]},
        "dnsLookupFamily": "V4_ONLY",
        "commonLbConfig": {"localityWeightedLbConfig": {}},
        "outlierDetection": {},
    }


_CONFIG_SOURCE: Resource = {
    "resourceApiVersion": DEFAULT_API_VERSION,
    "apiConfigSource": {
        "apiType": "GRPC",
        "transportApiVersion": DEFAULT_API_VERSION,
        "setNodeOnFirstMessageOnly": True,
        "grpcServices": [{"envoyGrpc": {"clusterName": XDS_CLUSTER_NAME}}],
    },
}


def make_config_source() -> Resource:
    """Return a config source pointing at the xDS cluster over gRPC."""
    return copy.deepcopy(_CONFIG_SOURCE)