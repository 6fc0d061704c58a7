"""RolePolicy — static mapping from actor role to capability set."""

from __future__ import annotations

from cargoflow.domain.value_objects.enums import Capability, Role

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset({
        Capability.TRANSITION_CARGO,
        Capability.MANAGE_ASSIGNMENTS,
        Capability.CALL_CLIENT,
        Capability.CALL_DRIVER,
        Capability.DOWNLOAD_RECEIPT,
        Capability.UPLOAD_PROOF,
        Capability.REPORT_ISSUE,
    }),
    Role.DRIVER: frozenset({
        Capability.ACCEPT_CARGO,
        Capability.ADVANCE_OWN_DELIVERY,
        Capability.CALL_CLIENT,
    }),
    Role.CLIENT: frozenset({
        Capability.CANCEL_OWN_CARGO,
        Capability.CALL_DRIVER,
        Capability.DOWNLOAD_RECEIPT,
        Capability.TRACK_OWN_CARGO,
    }),
}


def capabilities_for(role: Role | str | None) -> frozenset[Capability]:
    """Pure lookup: the capabilities a role holds.

    Accepts a ``Role`` or its string value. Unknown or missing roles yield the
    empty set; this function never raises.
    """
    try:
        return ROLE_CAPABILITIES.get(Role(role), frozenset())
    except ValueError:
        return frozenset()


def has_capability(role: Role | str | None, capability: Capability) -> bool:
    return capability in capabilities_for(role)
