"""Selection of the gateway classes and gateways this controller manages."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from gatewayctl.api import (
    ConditionStatus,
    Gateway,
    GatewayClass,
    NamespacedName,
)
from gatewayctl.conditions import GATEWAY_CLASS_CONDITION_ACCEPTED

GATEWAY_CONTROLLER_NAME = "gateway.envoyproxy.io/gatewayclass-controller"


class _Client(Protocol):
    def get(self, resource: type, key: NamespacedName) -> Any: ...


def is_accepted(gateway_class: GatewayClass | None) -> bool:
    """Tell whether ``gateway_class`` carries the Accepted=True condition."""
    if gateway_class is None:
        return False
    return any(
        cond.type == GATEWAY_CLASS_CONDITION_ACCEPTED and cond.status == ConditionStatus.TRUE
        for cond in gateway_class.conditions
    )


def gateways_of_class(
    gateway_class: GatewayClass | None, gateways: Iterable[Gateway] | None
) -> list[Gateway]:
    """Return the gateways that reference ``gateway_class`` by name."""
    if gateway_class is None or gateways is None:
        return []
    return [gw for gw in gateways if gw.gateway_class_name == gateway_class.name]


def _before(a: datetime | None, b: datetime | None) -> bool:
    # A missing timestamp counts as the earliest possible time.
    if a is None:
        return b is not None
    if b is None:
        return False
    return a < b


def _same_time(a: datetime | None, b: datetime | None) -> bool:
    if a is None or b is None:
        return a is b
    return a == b


@dataclass
class ControlledClasses:
    """Gateway classes matching this controller, tracking the oldest of them."""

    matched_classes: list[GatewayClass] = field(default_factory=list)
    oldest_class: GatewayClass | None = None

    def add_match(self, gateway_class: GatewayClass) -> None:
        """Record a matching class; the oldest, then alphabetically first, wins."""
        self.matched_classes.append(gateway_class)
        oldest = self.oldest_class
        if oldest is None:
            self.oldest_class = gateway_class
            return
        created = gateway_class.metadata.creation_timestamp
        oldest_created = oldest.metadata.creation_timestamp
        if _before(created, oldest_created):
            self.oldest_class = gateway_class
        elif _same_time(created, oldest_created) and gateway_class.name < oldest.name:
            self.oldest_class = gateway_class

    def accepted_class(self) -> GatewayClass | None:
        return self.oldest_class

    def not_accepted_classes(self) -> list[GatewayClass]:
        """Return every matched class other than the accepted one."""
        if self.oldest_class is None:
            return []
        accepted_name = self.oldest_class.name
        return [gc for gc in self.matched_classes if gc.name != accepted_name]


class GatewayReconciler:
    """Decides which gateways belong to the configured controller."""

    def __init__(
        self,
        client: _Client,
        class_controller: str = GATEWAY_CONTROLLER_NAME,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.class_controller = class_controller
        self._log = logger or logging.getLogger(__name__)

    def has_matching_controller(self, obj: object) -> bool:
        """Tell whether ``obj`` is a gateway whose class uses this controller."""
        if not isinstance(obj, Gateway):
            self._log.info("unexpected object type, bypassing reconciliation object=%r", obj)
            return False
        key = NamespacedName(name=obj.gateway_class_name)
        try:
            gateway_class = self.client.get(GatewayClass, key)
        except Exception:
            self._log.exception("failed to get gatewayclass name=%s", obj.gateway_class_name)
            return False
        if gateway_class.controller_name != self.class_controller:
            self._log.info(
                "gatewayclass name for gateway doesn't match configured name "
                "namespace=%s name=%s",
                obj.namespace,
                obj.name,
            )
            return False
        return True

    def accepted_class(self, classes: Iterable[GatewayClass] | None) -> GatewayClass | None:
        """Return the first class of this controller with Accepted=True, if any."""
        if classes is None:
            return None
        for gateway_class in classes:
            if gateway_class.controller_name == self.class_controller and is_accepted(
                gateway_class
            ):
                return gateway_class
        return None


class GatewayClassReconciler:
    """Decides which gateway classes belong to the configured controller."""

    def __init__(
        self,
        controller: str = GATEWAY_CONTROLLER_NAME,
        logger: logging.Logger | None = None,
        client: _Client | None = None,
    ) -> None:
        self.controller = controller
        self.client = client
        self._log = logger or logging.getLogger(__name__)

    def has_matching_controller(self, obj: object) -> bool:
        """Tell whether ``obj`` is a gateway class naming this controller."""
        if not isinstance(obj, GatewayClass):
            self._log.info("bypassing reconciliation due to unexpected object type type=%r", obj)
            return False
        if obj.controller_name == self.controller:
            self._log.info("enqueueing gatewayclass name=%s", obj.name)
            return True
        self._log.info(
            "bypassing reconciliation due to controller name controller=%s",
            obj.controller_name,
        )
        return False