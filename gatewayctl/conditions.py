"""Computation and merging of status conditions for gateways and classes."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from gatewayctl.api import (
    AddressType,
    Condition,
    ConditionStatus,
    Gateway,
    GatewayAddress,
    GatewayClass,
    Service,
)

GATEWAY_CLASS_CONDITION_ACCEPTED = "Accepted"
GATEWAY_CLASS_REASON_ACCEPTED = "Accepted"
REASON_OLDER_GATEWAY_CLASS_EXISTS = "OlderGatewayClassExists"

GATEWAY_CONDITION_SCHEDULED = "Scheduled"
GATEWAY_REASON_SCHEDULED = "Scheduled"
GATEWAY_CONDITION_READY = "Ready"
GATEWAY_REASON_READY = "Ready"
GATEWAY_REASON_ADDRESS_NOT_ASSIGNED = "AddressNotAssigned"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_condition(
    type_: str,
    status: str,
    reason: str,
    message: str,
    last_transition_time: datetime,
    observed_generation: int,
) -> Condition:
    """Build a condition from its parts."""
    return Condition(
        type=type_,
        status=status,
        reason=reason,
        message=message,
        observed_generation=observed_generation,
        last_transition_time=last_transition_time,
    )


def compute_gateway_class_accepted_condition(
    gateway_class: GatewayClass, accepted: bool
) -> Condition:
    """Compute the Accepted condition of a gateway class."""
    if accepted:
        return new_condition(
            GATEWAY_CLASS_CONDITION_ACCEPTED,
            ConditionStatus.TRUE,
            GATEWAY_CLASS_REASON_ACCEPTED,
            "Valid GatewayClass",
            _now(),
            gateway_class.generation,
        )
    return new_condition(
        GATEWAY_CLASS_CONDITION_ACCEPTED,
        ConditionStatus.FALSE,
        REASON_OLDER_GATEWAY_CLASS_EXISTS,
        "Invalid GatewayClass: another older GatewayClass with the same Spec.Controller exists",
        _now(),
        gateway_class.generation,
    )


def compute_gateway_scheduled_condition(gateway: Gateway, scheduled: bool) -> Condition:
    """Compute the Scheduled condition of a gateway."""
    if scheduled:
        return new_condition(
            GATEWAY_CONDITION_SCHEDULED,
            ConditionStatus.TRUE,
            GATEWAY_REASON_SCHEDULED,
            "The Gateway has been scheduled by Envoy Gateway",
            _now(),
            gateway.generation,
        )
    return new_condition(
        GATEWAY_CONDITION_SCHEDULED,
        ConditionStatus.FALSE,
        GATEWAY_REASON_SCHEDULED,
        "The Gateway has not been scheduled by Envoy Gateway",
        _now(),
        gateway.generation,
    )


def compute_gateway_ready_condition(gateway: Gateway) -> Condition:
    """Compute the Ready condition of a gateway from its assigned addresses."""
    if not gateway.addresses:
        return new_condition(
            GATEWAY_CONDITION_READY,
            ConditionStatus.FALSE,
            GATEWAY_REASON_ADDRESS_NOT_ASSIGNED,
            "No addresses have been assigned to the Gateway",
            _now(),
            gateway.generation,
        )
    return new_condition(
        GATEWAY_CONDITION_READY,
        ConditionStatus.TRUE,
        GATEWAY_REASON_READY,
        "Address assigned to the Gateway",
        _now(),
        gateway.generation,
    )


def condition_changed(a: Condition, b: Condition) -> bool:
    """Tell whether status, reason or message differ between two conditions."""
    return a.status != b.status or a.reason != b.reason or a.message != b.message


def merge_conditions(conditions: list[Condition], *updates: Condition) -> list[Condition]:
    """Return ``conditions`` with ``updates`` applied.

    A condition of a known type is replaced (with the update's transition time)
    only when it changed; conditions of new types are appended.
    """
    merged = list(conditions)
    additions: list[Condition] = []
    for update in updates:
        add = True
        for index, current in enumerate(merged):
            if current.type != update.type:
                continue
            add = False
            if condition_changed(current, update):
                merged[index] = replace(
                    current,
                    status=update.status,
                    reason=update.reason,
                    message=update.message,
                    observed_generation=update.observed_generation,
                    last_transition_time=update.last_transition_time,
                )
                break
        if add:
            additions.append(update)
    return merged + additions


def _gateway_addresses(service: Service | None) -> list[GatewayAddress]:
    ips: list[str] = []
    hostnames: list[str] = []
    if service is not None:
        for ingress in service.ingress:
            if ingress.ip:
                ips.append(ingress.ip)
            elif ingress.hostname:
                hostnames.append(ingress.hostname)
    return [GatewayAddress(AddressType.IP_ADDRESS, ip) for ip in ips] + [
        GatewayAddress(AddressType.HOSTNAME, host) for host in hostnames
    ]


def set_gateway_status(gateway: Gateway, scheduled: bool, service: Service | None) -> Gateway:
    """Update the addresses and conditions of ``gateway`` and return it."""
    gateway.addresses = _gateway_addresses(service)
    gateway.conditions = merge_conditions(
        gateway.conditions,
        compute_gateway_scheduled_condition(gateway, scheduled),
        compute_gateway_ready_condition(gateway),
    )
    return gateway


def set_gateway_class_accepted(gateway_class: GatewayClass, accepted: bool) -> GatewayClass:
    """Insert or update the Accepted condition of ``gateway_class`` and return it."""
    gateway_class.conditions = merge_conditions(
        gateway_class.conditions,
        compute_gateway_class_accepted_condition(gateway_class, accepted),
    )
    return gateway_class