"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class CargoStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    ACCEPTED = "accepted"
    PARTIALLY_ASSIGNED = "partially_assigned"
    FULLY_ASSIGNED = "fully_assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"

    @classmethod
    def _missing_(cls, value):
        # Driver and client screens call fully_assigned "assigned"
        if isinstance(value, str) and value.strip().lower() == "assigned":
            return cls.FULLY_ASSIGNED
        return None

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").upper()


class CargoPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not AssignmentStatus.PENDING


class DriverDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class Role(str, Enum):
    ADMIN = "admin"
    DRIVER = "driver"
    CLIENT = "client"


class Capability(str, Enum):
    TRANSITION_CARGO = "transition_cargo"
    MANAGE_ASSIGNMENTS = "manage_assignments"
    CALL_CLIENT = "call_client"
    CALL_DRIVER = "call_driver"
    DOWNLOAD_RECEIPT = "download_receipt"
    UPLOAD_PROOF = "upload_proof"
    REPORT_ISSUE = "report_issue"
    ACCEPT_CARGO = "accept_cargo"
    ADVANCE_OWN_DELIVERY = "advance_own_delivery"
    CANCEL_OWN_CARGO = "cancel_own_cargo"
    TRACK_OWN_CARGO = "track_own_cargo"


class ActionId(str, Enum):
    # Status-changing
    TRANSITION_CARGO = "transition_cargo"
    ACCEPT_CARGO = "accept_cargo"
    PICK_UP = "pick_up"
    START_TRANSIT = "start_transit"
    MARK_DELIVERED = "mark_delivered"
    CANCEL_CARGO = "cancel_cargo"

    # Negotiation
    PROPOSE_ASSIGNMENT = "propose_assignment"
    UPDATE_ASSIGNMENT = "update_assignment"
    CANCEL_ASSIGNMENT = "cancel_assignment"
    EXPIRE_ASSIGNMENT = "expire_assignment"
    ACCEPT_ASSIGNMENT = "accept_assignment"
    REJECT_ASSIGNMENT = "reject_assignment"

    # Communication / documents
    CALL_CLIENT = "call_client"
    CALL_DRIVER = "call_driver"
    TRACK_CARGO = "track_cargo"
    DOWNLOAD_RECEIPT = "download_receipt"
    UPLOAD_PROOF = "upload_proof"
    REPORT_ISSUE = "report_issue"
