"""Lifecycle state machines for proposals and reservations.

A StateMachine only validates moves; it never touches the store. Callers
apply the returned status (and, for reservations, the cascaded vehicle
status) themselves, inside a single transaction.
"""
from typing import Dict, FrozenSet, Iterable, Optional

from dealermaster.data_structures import (
    ProposalStatus, ReservationStatus, VehicleStatus, ReservationTransition
)
from dealermaster.result import Result, ErrorType


class StateMachine:
    """Table-driven transition validator.

    Args:
        name: Entity name used in error messages.
        initial: Status new records start in.
        transitions: Mapping of status to the statuses reachable from it.
    """

    def __init__(self, name: str, initial: str, transitions: Dict[str, Iterable[str]]):
        self.name = name
        self.initial = initial
        self._transitions: Dict[str, FrozenSet[str]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    @property
    def states(self) -> FrozenSet[str]:
        found = set(self._transitions)
        for targets in self._transitions.values():
            found.update(targets)
        return frozenset(found)

    def allowed_targets(self, current: str) -> FrozenSet[str]:
        return self._transitions.get(current, frozenset())

    def is_terminal(self, status: str) -> bool:
        return not self.allowed_targets(status)

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.allowed_targets(current)

    def transition(self, current: str, target: str) -> Result[str]:
        """Validate a move from current to target.

        Returns:
            Result.ok(target) when legal, otherwise a failed Result with
            error_type UNKNOWN_STATE or ILLEGAL_TRANSITION.
        """
        for status in (current, target):
            if status not in self.states:
                return Result.fail(f"Unknown {self.name} status '{status}'", ErrorType.UNKNOWN_STATE)

        if not self.can_transition(current, target):
            return Result.fail(
                f"Cannot move {self.name} from '{current}' to '{target}'",
                ErrorType.ILLEGAL_TRANSITION
            )
        return Result.ok(target)


PROPOSAL_MACHINE = StateMachine(
    "proposal",
    ProposalStatus.NEGOTIATING,
    {
        ProposalStatus.NEGOTIATING: {ProposalStatus.SENT, ProposalStatus.CANCELLED},
        ProposalStatus.SENT: {ProposalStatus.APPROVED, ProposalStatus.REJECTED, ProposalStatus.CANCELLED},
        ProposalStatus.APPROVED: {ProposalStatus.SOLD},
        ProposalStatus.REJECTED: set(),
        ProposalStatus.CANCELLED: set(),
        ProposalStatus.SOLD: set(),
    }
)

RESERVATION_MACHINE = StateMachine(
    "reservation",
    ReservationStatus.ACTIVE,
    {
        ReservationStatus.ACTIVE: {ReservationStatus.CONVERTED, ReservationStatus.CANCELLED},
        ReservationStatus.CONVERTED: set(),
        ReservationStatus.CANCELLED: set(),
    }
)

# Vehicle availability forced by each reservation status
RESERVATION_VEHICLE_STATUS = {
    ReservationStatus.ACTIVE: VehicleStatus.RESERVED,
    ReservationStatus.CONVERTED: VehicleStatus.SOLD,
    ReservationStatus.CANCELLED: VehicleStatus.AVAILABLE,
}


def apply_reservation_transition(reservation, target: str) -> Result[ReservationTransition]:
    """Compute a reservation status change together with its vehicle cascade.

    Args:
        reservation: Reservation whose status should change. A reservation
            without an id is treated as being created, so its only legal
            target is the initial status.
        target: Requested reservation status.

    Returns:
        Result holding a ReservationTransition on success.
    """
    current: Optional[str] = reservation.status if reservation.id is not None else None

    if current is None:
        if target != RESERVATION_MACHINE.initial:
            return Result.fail(
                f"New reservations must start as '{RESERVATION_MACHINE.initial}'",
                ErrorType.ILLEGAL_TRANSITION
            )
    else:
        check = RESERVATION_MACHINE.transition(current, target)
        if not check:
            return check

    return Result.ok(ReservationTransition(
        reservation_id=reservation.id,
        vehicle_id=reservation.vehicle_id,
        previous_status=current,
        new_status=target,
        vehicle_status=RESERVATION_VEHICLE_STATUS[target],
    ))
