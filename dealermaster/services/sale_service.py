"""Sale recording service for DealerMaster."""
import logging
from datetime import datetime

from dealermaster.config import DATE_FORMAT_STORAGE
from dealermaster.data_structures import Actor, ProposalStatus, ReservationStatus, Sale, VehicleStatus
from dealermaster.exceptions import (
    ConflictError,
    IllegalTransitionError,
    ProposalNotFoundError,
    VehicleNotFoundError,
)
from .state_machine import PROPOSAL_MACHINE, apply_reservation_transition
from .visibility import can_view

logger = logging.getLogger(__name__)


class SaleService:
    """Closes approved proposals into sales."""

    def __init__(self, db_manager):
        self.db = db_manager

    def commission_for(self, proposal) -> float:
        """Vendor commission: the bank's commission on the financed amount, 0 without a bank."""
        if not proposal.bank_id:
            return 0.0
        bank = self.db.get_bank(proposal.bank_id)
        if bank is None:
            return 0.0
        return proposal.financed_amount * (bank.commission_percent / 100)

    def record_sale(self, proposal_id, actor: Actor = None, sale_date=None) -> Sale:
        """Record the sale of an approved proposal.

        In one transaction the proposal moves to 'sold', the vehicle is marked
        sold, the vehicle's active reservation (if any) is converted and a
        sale row is written.

        Args:
            proposal_id: Approved proposal being closed.
            actor: Acting user; must be able to see the proposal.
            sale_date: Date in YYYY-MM-DD format (default: today).

        Returns:
            The stored Sale.

        Raises:
            ProposalNotFoundError: If the proposal does not exist or is not visible.
            IllegalTransitionError: If the proposal is not approved.
            ConflictError: If the vehicle has already been sold.
        """
        if sale_date is None:
            sale_date = datetime.now().strftime(DATE_FORMAT_STORAGE)

        with self.db.transaction():
            proposal = self.db.get_proposal(proposal_id)
            if proposal is None or (actor is not None and not can_view(actor, proposal)):
                raise ProposalNotFoundError(proposal_id)

            check = PROPOSAL_MACHINE.transition(proposal.status, ProposalStatus.SOLD)
            if not check:
                raise IllegalTransitionError("proposal", proposal.status, ProposalStatus.SOLD)

            vehicle = self.db.get_vehicle(proposal.vehicle_id)
            if vehicle is None:
                raise VehicleNotFoundError(proposal.vehicle_id)
            if vehicle.status == VehicleStatus.SOLD:
                raise ConflictError("Vehicle has already been sold", {'vehicle_id': vehicle.id})

            reservation = self.db.get_active_reservation_for_vehicle(vehicle.id)
            if reservation is not None:
                transition = apply_reservation_transition(reservation, ReservationStatus.CONVERTED).unwrap()
                self.db.update_reservation_status(transition.reservation_id, transition.new_status)

            self.db.update_proposal_status(proposal.id, check.value)
            self.db.update_vehicle_status(vehicle.id, VehicleStatus.SOLD)

            sale = Sale(
                proposal_id=proposal.id,
                vehicle_id=vehicle.id,
                client_id=proposal.client_id,
                vendor_id=proposal.vendor_id,
                total_value=proposal.down_payment + proposal.total_amount,
                commission_value=self.commission_for(proposal),
                sale_date=sale_date,
            )
            self.db.add_sale(sale)

        logger.info("Sale recorded for proposal %s: %.2f (commission %.2f)",
                    proposal.number, sale.total_value, sale.commission_value)
        return sale
