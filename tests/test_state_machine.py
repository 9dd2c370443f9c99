"""Tests for the proposal and reservation state machines."""
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.data_structures import (
    ProposalStatus, Reservation, ReservationStatus, VehicleStatus
)
from dealermaster.result import ErrorType
from dealermaster.services.state_machine import (
    PROPOSAL_MACHINE, RESERVATION_MACHINE, apply_reservation_transition
)

LEGAL_PROPOSAL_MOVES = {
    (ProposalStatus.NEGOTIATING, ProposalStatus.SENT),
    (ProposalStatus.NEGOTIATING, ProposalStatus.CANCELLED),
    (ProposalStatus.SENT, ProposalStatus.APPROVED),
    (ProposalStatus.SENT, ProposalStatus.REJECTED),
    (ProposalStatus.SENT, ProposalStatus.CANCELLED),
    (ProposalStatus.APPROVED, ProposalStatus.SOLD),
}


class TestProposalMachine(unittest.TestCase):

    def test_every_pair(self):
        """Only the documented moves are legal; everything else is rejected."""
        for current in ProposalStatus.ALL:
            for target in ProposalStatus.ALL:
                result = PROPOSAL_MACHINE.transition(current, target)
                if (current, target) in LEGAL_PROPOSAL_MOVES:
                    self.assertTrue(result.success, f"{current} -> {target}")
                    self.assertEqual(result.value, target)
                else:
                    self.assertFalse(result.success, f"{current} -> {target}")
                    self.assertEqual(result.error_type, ErrorType.ILLEGAL_TRANSITION)

    def test_cancelled_cannot_be_approved(self):
        result = PROPOSAL_MACHINE.transition(ProposalStatus.CANCELLED, ProposalStatus.APPROVED)
        self.assertFalse(result)
        self.assertIn("cancelled", result.error)

    def test_terminal_states(self):
        for status in (ProposalStatus.REJECTED, ProposalStatus.CANCELLED, ProposalStatus.SOLD):
            self.assertTrue(PROPOSAL_MACHINE.is_terminal(status))
        self.assertFalse(PROPOSAL_MACHINE.is_terminal(ProposalStatus.APPROVED))

    def test_unknown_status(self):
        result = PROPOSAL_MACHINE.transition("pendente", ProposalStatus.SENT)
        self.assertEqual(result.error_type, ErrorType.UNKNOWN_STATE)

    def test_states(self):
        self.assertEqual(PROPOSAL_MACHINE.states, frozenset(ProposalStatus.ALL))
        self.assertEqual(PROPOSAL_MACHINE.initial, ProposalStatus.NEGOTIATING)


class TestReservationMachine(unittest.TestCase):

    def test_moves(self):
        self.assertTrue(RESERVATION_MACHINE.can_transition(ReservationStatus.ACTIVE, ReservationStatus.CONVERTED))
        self.assertTrue(RESERVATION_MACHINE.can_transition(ReservationStatus.ACTIVE, ReservationStatus.CANCELLED))
        self.assertFalse(RESERVATION_MACHINE.can_transition(ReservationStatus.CANCELLED, ReservationStatus.ACTIVE))
        self.assertFalse(RESERVATION_MACHINE.can_transition(ReservationStatus.CONVERTED, ReservationStatus.CANCELLED))

    def test_new_reservation_forces_reserved(self):
        reservation = Reservation(vehicle_id=3, client_id=1, vendor_id="v1")
        transition = apply_reservation_transition(reservation, ReservationStatus.ACTIVE).unwrap()

        self.assertIsNone(transition.previous_status)
        self.assertEqual(transition.new_status, ReservationStatus.ACTIVE)
        self.assertEqual(transition.vehicle_id, 3)
        self.assertEqual(transition.vehicle_status, VehicleStatus.RESERVED)

    def test_new_reservation_must_start_active(self):
        reservation = Reservation(vehicle_id=3, client_id=1, vendor_id="v1")
        result = apply_reservation_transition(reservation, ReservationStatus.CONVERTED)
        self.assertFalse(result)
        self.assertEqual(result.error_type, ErrorType.ILLEGAL_TRANSITION)

    def test_cascades(self):
        reservation = Reservation(vehicle_id=3, client_id=1, vendor_id="v1", id=10)

        converted = apply_reservation_transition(reservation, ReservationStatus.CONVERTED).unwrap()
        self.assertEqual(converted.vehicle_status, VehicleStatus.SOLD)
        self.assertEqual(converted.previous_status, ReservationStatus.ACTIVE)

        cancelled = apply_reservation_transition(reservation, ReservationStatus.CANCELLED).unwrap()
        self.assertEqual(cancelled.vehicle_status, VehicleStatus.AVAILABLE)

    def test_terminal_reservation(self):
        reservation = Reservation(vehicle_id=3, client_id=1, vendor_id="v1",
                                  status=ReservationStatus.CANCELLED, id=10)
        result = apply_reservation_transition(reservation, ReservationStatus.CONVERTED)
        self.assertFalse(result)
        with self.assertRaises(ValueError):
            result.unwrap()


if __name__ == '__main__':
    unittest.main()
