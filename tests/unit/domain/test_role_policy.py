"""Tests for RolePolicy."""

import pytest

from cargoflow.domain.policies.role_policy import capabilities_for, has_capability
from cargoflow.domain.value_objects.enums import Capability, Role


def test_admin_capabilities():
    caps = capabilities_for(Role.ADMIN)
    assert Capability.TRANSITION_CARGO in caps
    assert Capability.MANAGE_ASSIGNMENTS in caps
    assert Capability.ACCEPT_CARGO not in caps


def test_driver_capabilities():
    assert capabilities_for("driver") == frozenset({
        Capability.ACCEPT_CARGO,
        Capability.ADVANCE_OWN_DELIVERY,
        Capability.CALL_CLIENT,
    })


def test_client_capabilities():
    caps = capabilities_for(Role.CLIENT)
    assert Capability.CANCEL_OWN_CARGO in caps
    assert Capability.TRACK_OWN_CARGO in caps
    assert Capability.TRANSITION_CARGO not in caps


@pytest.mark.parametrize("role", ["auditor", "", None, "ADMIN"])
def test_unknown_role_has_no_capabilities(role):
    assert capabilities_for(role) == frozenset()


def test_has_capability():
    assert has_capability(Role.DRIVER, Capability.ACCEPT_CARGO)
    assert not has_capability(Role.CLIENT, Capability.ACCEPT_CARGO)
