"""Proposal lifecycle service for DealerMaster.

This service handles:
- Promoting a priced deal or a saved simulation to a proposal
- Status changes validated by the proposal state machine
- Client and vendor signatures
- Listing proposals visible to an actor
"""
import logging
from datetime import datetime
from dateutil.relativedelta import relativedelta

from dealermaster.config import PROPOSAL_NUMBER_PREFIX, DATE_FORMAT_STORAGE
from dealermaster.data_structures import Actor, DealResult, DealType, Proposal, ProposalStatus
from dealermaster.exceptions import (
    BankNotFoundError,
    ClientNotFoundError,
    IllegalTransitionError,
    InvalidAmountError,
    ProposalNotFoundError,
    SimulationNotFoundError,
    VehicleNotFoundError,
)
from .state_machine import PROPOSAL_MACHINE
from .visibility import can_view, record_filters

logger = logging.getLogger(__name__)

SIGNATURE_COLUMNS = {
    'client': 'client_signature',
    'vendor': 'vendor_signature',
}


class ProposalService:
    """Creates proposals and moves them through their lifecycle.

    Selling a proposal is not a plain status change: it also marks the
    vehicle sold and records a sale, so it is done by SaleService.
    """

    def __init__(self, db_manager):
        self.db = db_manager

    def get_proposal(self, proposal_id, actor: Actor = None) -> Proposal:
        """Fetch a proposal, hiding records the actor may not see.

        Raises:
            ProposalNotFoundError: If missing or not visible to the actor.
        """
        proposal = self.db.get_proposal(proposal_id)
        if proposal is None or (actor is not None and not can_view(actor, proposal)):
            raise ProposalNotFoundError(proposal_id)
        return proposal

    def list_proposals(self, actor: Actor, status=None):
        return self.db.get_proposals(status=status, **record_filters(actor))

    def create_proposal_from_result(self, result: DealResult, vehicle_id, client_id, actor: Actor,
                                    simulation_id=None, notes=None, first_due_date=None) -> Proposal:
        """Promote a priced deal to a proposal in 'negotiating' status.

        Args:
            result: The DealResult produced by DealPricer.
            vehicle_id: Vehicle being sold.
            client_id: Buying client.
            actor: Vendor creating the proposal.
            simulation_id: Simulation the result came from, if any.
            notes: Free text notes.
            first_due_date: First installment due date (YYYY-MM-DD). Defaults
                to one month from today for financed deals.

        Returns:
            The stored Proposal.
        """
        if self.db.get_vehicle(vehicle_id) is None:
            raise VehicleNotFoundError(vehicle_id)
        if self.db.get_client(client_id) is None:
            raise ClientNotFoundError(client_id)
        if result.deal_type == DealType.BANK_FINANCED and self.db.get_bank(result.bank_id) is None:
            raise BankNotFoundError(result.bank_id)
        if result.vehicle_price < 0:
            raise InvalidAmountError("Vehicle price cannot be negative", vehicle_price=result.vehicle_price)

        if first_due_date is None and result.deal_type != DealType.CASH:
            first_due_date = (datetime.now() + relativedelta(months=1)).strftime(DATE_FORMAT_STORAGE)

        proposal = Proposal(
            client_id=client_id,
            vehicle_id=vehicle_id,
            vendor_id=actor.user_id,
            deal_type=result.deal_type,
            vehicle_price=result.vehicle_price,
            down_payment=result.down_payment,
            financed_amount=result.financed_amount,
            installment_count=result.installment_count,
            installment_value=result.installment_value,
            total_amount=result.total_value,
            bank_id=result.bank_id if result.deal_type == DealType.BANK_FINANCED else None,
            cash_price=result.cash_price if result.deal_type == DealType.CASH else None,
            status=PROPOSAL_MACHINE.initial,
            notes=notes,
            simulation_id=simulation_id,
            first_due_date=first_due_date,
            number=self.db.generate_document_number(PROPOSAL_NUMBER_PREFIX, "proposals"),
        )
        self.db.add_proposal(proposal)
        logger.info("Proposal %s created by %s (%s)", proposal.number, actor.user_id, proposal.deal_type)
        return proposal

    def create_proposal_from_simulation(self, simulation_id, actor: Actor, notes=None) -> Proposal:
        simulation = self.db.get_simulation(simulation_id)
        if simulation is None or not can_view(actor, simulation):
            raise SimulationNotFoundError(simulation_id)
        if simulation.vehicle_id is None:
            raise VehicleNotFoundError()
        return self.create_proposal_from_result(
            simulation.result, simulation.vehicle_id, simulation.client_id, actor,
            simulation_id=simulation.id, notes=notes
        )

    def change_status(self, proposal_id, target, actor: Actor = None) -> Proposal:
        """Move a proposal to a new status.

        Raises:
            ProposalNotFoundError: If the proposal does not exist.
            IllegalTransitionError: If the move is not allowed, or the target
                is 'sold' (use SaleService.record_sale).
        """
        proposal = self.get_proposal(proposal_id, actor)

        if target == ProposalStatus.SOLD:
            raise IllegalTransitionError("proposal", proposal.status, target)

        result = PROPOSAL_MACHINE.transition(proposal.status, target)
        if not result:
            raise IllegalTransitionError("proposal", proposal.status, target)

        self.db.update_proposal_status(proposal.id, result.value)
        logger.info("Proposal %s: %s -> %s", proposal.number, proposal.status, result.value)
        proposal.status = result.value
        return proposal

    def send(self, proposal_id, actor: Actor = None):
        return self.change_status(proposal_id, ProposalStatus.SENT, actor)

    def approve(self, proposal_id, actor: Actor = None):
        return self.change_status(proposal_id, ProposalStatus.APPROVED, actor)

    def reject(self, proposal_id, actor: Actor = None):
        return self.change_status(proposal_id, ProposalStatus.REJECTED, actor)

    def cancel(self, proposal_id, actor: Actor = None):
        return self.change_status(proposal_id, ProposalStatus.CANCELLED, actor)

    def sign(self, proposal_id, party, signature, actor: Actor = None) -> Proposal:
        """Attach a signature. Allowed at any status.

        Args:
            party: 'client' or 'vendor'.
            signature: Encoded signature image.
        """
        if party not in SIGNATURE_COLUMNS:
            raise ValueError(f"Unknown signing party '{party}'.")
        proposal = self.get_proposal(proposal_id, actor)
        column = SIGNATURE_COLUMNS[party]
        self.db.update_proposal_signature(proposal.id, column, signature)
        setattr(proposal, column, signature)
        return proposal

    def delete_proposal(self, proposal_id, actor: Actor = None):
        proposal = self.get_proposal(proposal_id, actor)
        self.db.delete_proposal(proposal.id)
