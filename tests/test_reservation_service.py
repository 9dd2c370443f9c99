"""Tests for reservation lifecycle and vehicle status cascade."""
import os
import sys
import unittest
from unittest.mock import patch

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.database import DatabaseManager
from dealermaster.engine import DealerEngine
from dealermaster.data_structures import (
    Actor, Client, Vehicle, ReservationStatus, UserRole, VehicleStatus
)
from dealermaster.exceptions import (
    ConflictError,
    IllegalTransitionError,
    ReservationNotFoundError,
    TransactionError,
    VehicleNotFoundError,
)


class ReservationTestCase(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.engine = DealerEngine(self.db)
        self.vendor = Actor("vendor-1")
        self.vehicle_id = self.db.add_vehicle(Vehicle("Honda", "Civic", 2020, 2021, 115000))
        self.client_id = self.db.add_client(Client("Bruno", vendor_id="vendor-1"))

    def tearDown(self):
        self.db.close()

    def vehicle_status(self):
        return self.db.get_vehicle(self.vehicle_id).status


class TestReservationLifecycle(ReservationTestCase):

    def test_create_reserves_vehicle(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor,
                                                  deposit_amount=2000, reservation_date="2026-03-25")

        self.assertEqual(reservation.status, ReservationStatus.ACTIVE)
        self.assertEqual(self.vehicle_status(), VehicleStatus.RESERVED)
        self.assertRegex(reservation.number, r"^RES\d{10}$")
        self.assertEqual(reservation.expiry_date, "2026-04-04")
        self.assertEqual(self.db.get_reservation(reservation.id).vendor_id, "vendor-1")

    def test_cancel_releases_vehicle(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        transition = self.engine.change_reservation_status(reservation.id, ReservationStatus.CANCELLED)

        self.assertEqual(transition.vehicle_status, VehicleStatus.AVAILABLE)
        self.assertEqual(self.vehicle_status(), VehicleStatus.AVAILABLE)
        self.assertEqual(self.db.get_reservation(reservation.id).status, ReservationStatus.CANCELLED)

    def test_convert_sells_vehicle(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.reservation_service.convert(reservation.id)

        self.assertEqual(self.vehicle_status(), VehicleStatus.SOLD)
        self.assertEqual(self.db.get_reservation(reservation.id).status, ReservationStatus.CONVERTED)

    def test_terminal_reservation_cannot_move(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.reservation_service.cancel(reservation.id)

        with self.assertRaises(IllegalTransitionError):
            self.engine.reservation_service.convert(reservation.id)
        self.assertEqual(self.vehicle_status(), VehicleStatus.AVAILABLE)

    def test_rereserve_after_cancel(self):
        first = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.reservation_service.cancel(first.id)

        second = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.assertEqual(second.status, ReservationStatus.ACTIVE)
        self.assertEqual(self.vehicle_status(), VehicleStatus.RESERVED)


class TestReservationConflicts(ReservationTestCase):

    def test_second_active_reservation_rejected(self):
        self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        with self.assertRaises(ConflictError):
            self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.assertEqual(len(self.db.get_reservations()), 1)

    def test_sold_vehicle_rejected(self):
        self.db.update_vehicle_status(self.vehicle_id, VehicleStatus.SOLD)
        with self.assertRaises(ConflictError):
            self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)

    def test_missing_vehicle(self):
        with self.assertRaises(VehicleNotFoundError):
            self.engine.reserve_vehicle(999, self.client_id, self.vendor)

    def test_missing_reservation(self):
        with self.assertRaises(ReservationNotFoundError):
            self.engine.change_reservation_status(999, ReservationStatus.CANCELLED)

    def test_failed_cascade_rolls_back(self):
        """If the vehicle update fails, the reservation status change is undone too."""
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)

        with patch.object(self.db, 'update_vehicle_status', side_effect=TransactionError("disk full")):
            with self.assertRaises(TransactionError):
                self.engine.change_reservation_status(reservation.id, ReservationStatus.CANCELLED)

        self.assertEqual(self.db.get_reservation(reservation.id).status, ReservationStatus.ACTIVE)
        self.assertEqual(self.vehicle_status(), VehicleStatus.RESERVED)


class TestReservationDeletion(ReservationTestCase):

    def test_delete_releases_vehicle(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.delete_reservation(reservation.id)

        self.assertIsNone(self.db.get_reservation(reservation.id))
        self.assertEqual(self.vehicle_status(), VehicleStatus.AVAILABLE)

    def test_delete_keeps_sold_vehicle(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.reservation_service.convert(reservation.id)

        with self.assertLogs('dealermaster.services.reservation_service', level='WARNING'):
            self.engine.delete_reservation(reservation.id)
        self.assertEqual(self.vehicle_status(), VehicleStatus.SOLD)

    def test_delete_old_reservation_keeps_new_hold(self):
        first = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)
        self.engine.reservation_service.cancel(first.id)
        self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)

        self.engine.delete_reservation(first.id)
        self.assertEqual(self.vehicle_status(), VehicleStatus.RESERVED)


class TestReservationExpiryAndScope(ReservationTestCase):

    def test_expire_overdue(self):
        self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor, reservation_date="2026-01-01")

        self.assertEqual(self.engine.expire_reservations(as_of="2026-01-11"), 0)
        self.assertEqual(self.engine.expire_reservations(as_of="2026-01-12"), 1)
        self.assertEqual(self.vehicle_status(), VehicleStatus.AVAILABLE)

    def test_visibility(self):
        reservation = self.engine.reserve_vehicle(self.vehicle_id, self.client_id, self.vendor)

        self.assertEqual(len(self.engine.list_reservations(Actor("admin", UserRole.ADMIN))), 1)
        self.assertEqual(len(self.engine.list_reservations(self.vendor)), 1)
        self.assertEqual(len(self.engine.list_reservations(Actor("vendor-2"))), 0)
        self.assertEqual(len(self.engine.list_reservations(Actor(str(self.client_id), UserRole.CLIENT))), 1)

        with self.assertRaises(ReservationNotFoundError):
            self.engine.change_reservation_status(reservation.id, ReservationStatus.CANCELLED, Actor("vendor-2"))


if __name__ == '__main__':
    unittest.main()
