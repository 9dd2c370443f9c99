"""Reservation lifecycle service for DealerMaster.

Every reservation write is paired with the vehicle status it forces and
both are applied inside one DatabaseManager.transaction().
"""
import logging
from datetime import datetime
from dateutil.relativedelta import relativedelta

from dealermaster.config import (
    RESERVATION_NUMBER_PREFIX,
    RESERVATION_VALIDITY_DAYS,
    DATE_FORMAT_STORAGE,
)
from dealermaster.data_structures import (
    Actor, Reservation, ReservationStatus, ReservationTransition, VehicleStatus
)
from dealermaster.exceptions import (
    ClientNotFoundError,
    ConflictError,
    IllegalTransitionError,
    InvalidAmountError,
    ReservationNotFoundError,
    VehicleNotFoundError,
)
from .state_machine import apply_reservation_transition
from .visibility import can_view, record_filters

logger = logging.getLogger(__name__)


class ReservationService:
    """Creates, transitions and deletes vehicle reservations."""

    def __init__(self, db_manager):
        self.db = db_manager

    def _apply(self, transition: ReservationTransition):
        if transition.reservation_id is not None:
            self.db.update_reservation_status(transition.reservation_id, transition.new_status)
        self.db.update_vehicle_status(transition.vehicle_id, transition.vehicle_status)

    def get_reservation(self, reservation_id, actor: Actor = None) -> Reservation:
        reservation = self.db.get_reservation(reservation_id)
        if reservation is None or (actor is not None and not can_view(actor, reservation)):
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def list_reservations(self, actor: Actor, status=None):
        return self.db.get_reservations(status=status, **record_filters(actor))

    def create_reservation(self, vehicle_id, client_id, actor: Actor, deposit_amount=0.0,
                           notes=None, reservation_date=None) -> Reservation:
        """Hold an available vehicle for a client.

        Args:
            vehicle_id: Vehicle to reserve.
            client_id: Client the vehicle is held for.
            actor: Vendor making the reservation.
            deposit_amount: Deposit paid by the client.
            notes: Free text notes.
            reservation_date: Date in YYYY-MM-DD format (default: today).

        Returns:
            The stored Reservation.

        Raises:
            VehicleNotFoundError: If the vehicle does not exist.
            ClientNotFoundError: If the client does not exist.
            ConflictError: If the vehicle is not available or already held.
        """
        if deposit_amount < 0:
            raise InvalidAmountError("Deposit cannot be negative", deposit_amount=deposit_amount)

        if reservation_date is None:
            reservation_date = datetime.now().strftime(DATE_FORMAT_STORAGE)
        start = datetime.strptime(reservation_date, DATE_FORMAT_STORAGE)
        expiry_date = (start + relativedelta(days=RESERVATION_VALIDITY_DAYS)).strftime(DATE_FORMAT_STORAGE)

        with self.db.transaction():
            vehicle = self.db.get_vehicle(vehicle_id)
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)
            if self.db.get_client(client_id) is None:
                raise ClientNotFoundError(client_id)

            existing = self.db.get_active_reservation_for_vehicle(vehicle_id)
            if existing is not None:
                raise ConflictError("Vehicle already has an active reservation",
                                    {'vehicle_id': vehicle_id, 'reservation': existing.number})
            if vehicle.status != VehicleStatus.AVAILABLE:
                raise ConflictError("Vehicle is not available",
                                    {'vehicle_id': vehicle_id, 'status': vehicle.status})

            reservation = Reservation(
                vehicle_id=vehicle_id,
                client_id=client_id,
                vendor_id=actor.user_id,
                deposit_amount=deposit_amount,
                reservation_date=reservation_date,
                expiry_date=expiry_date,
                notes=notes,
            )
            transition = apply_reservation_transition(reservation, ReservationStatus.ACTIVE).unwrap()

            reservation.status = transition.new_status
            reservation.number = self.db.generate_document_number(RESERVATION_NUMBER_PREFIX, "reservations")
            self.db.add_reservation(reservation)
            self._apply(transition)

        logger.info("Reservation %s holds vehicle %s until %s", reservation.number, vehicle_id, expiry_date)
        return reservation

    def transition(self, reservation_id, target, actor: Actor = None) -> ReservationTransition:
        """Move a reservation to a new status and cascade the vehicle status.

        Raises:
            ReservationNotFoundError: If the reservation does not exist.
            IllegalTransitionError: If the move is not allowed.
        """
        with self.db.transaction():
            reservation = self.get_reservation(reservation_id, actor)
            result = apply_reservation_transition(reservation, target)
            if not result:
                raise IllegalTransitionError("reservation", reservation.status, target)
            transition = result.value
            self._apply(transition)

        logger.info("Reservation %s: %s -> %s (vehicle %s)", reservation.number,
                    transition.previous_status, transition.new_status, transition.vehicle_status)
        return transition

    def cancel(self, reservation_id, actor: Actor = None):
        return self.transition(reservation_id, ReservationStatus.CANCELLED, actor)

    def convert(self, reservation_id, actor: Actor = None):
        return self.transition(reservation_id, ReservationStatus.CONVERTED, actor)

    def delete_reservation(self, reservation_id, actor: Actor = None):
        """Delete a reservation and release its vehicle.

        The vehicle goes back to 'available' unless it has been sold or is
        held by another active reservation.
        """
        with self.db.transaction():
            reservation = self.get_reservation(reservation_id, actor)
            vehicle = self.db.get_vehicle(reservation.vehicle_id)
            self.db.delete_reservation(reservation.id)

            if vehicle is None:
                return
            if vehicle.status == VehicleStatus.SOLD:
                logger.warning("Deleted reservation %s of sold vehicle %s; vehicle status kept",
                               reservation.number, vehicle.id)
                return
            if self.db.get_active_reservation_for_vehicle(vehicle.id) is not None:
                return
            self.db.update_vehicle_status(vehicle.id, VehicleStatus.AVAILABLE)

    def expire_overdue(self, as_of=None):
        """Cancel active reservations whose expiry date has passed.

        Args:
            as_of: Reference date in YYYY-MM-DD format (default: today).

        Returns:
            Number of reservations cancelled.
        """
        if as_of is None:
            as_of = datetime.now().strftime(DATE_FORMAT_STORAGE)

        expired = 0
        with self.db.transaction():
            for reservation in self.db.get_reservations(status=ReservationStatus.ACTIVE):
                if reservation.expiry_date and reservation.expiry_date < as_of:
                    transition = apply_reservation_transition(reservation, ReservationStatus.CANCELLED).unwrap()
                    self._apply(transition)
                    expired += 1

        if expired:
            logger.info("Expired %d reservations as of %s", expired, as_of)
        return expired
