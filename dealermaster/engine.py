"""Business logic engine for DealerMaster.

This module provides the DealerEngine class which acts as a facade over
the focused service classes in dealermaster/services/.

Service Classes:
    - DealPricer: Deal pricing and bank comparison (pure)
    - SimulationService: Saved simulations
    - ProposalService: Proposal lifecycle
    - ReservationService: Reservation lifecycle with vehicle cascade
    - SaleService: Sale recording
"""
import logging

from dealermaster.config import MAX_DIRECT_INSTALLMENTS
from dealermaster.data_structures import Actor, BankFinancedDeal, DirectFinancedDeal, CashDeal
from dealermaster.exceptions import BankNotFoundError, VehicleNotFoundError
from dealermaster.reports import DashboardReport
from dealermaster.services import (
    DealPricer, ProposalService, ReservationService, SaleService, SimulationService
)
from dealermaster.services.simulation_service import default_inputs
from dealermaster.services.visibility import visible_banks

logger = logging.getLogger(__name__)


class DealerEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Attributes:
        db: DatabaseManager instance for data persistence.
        pricer: DealPricer configured from the store settings (lazy-loaded).
        simulation_service: SimulationService instance (lazy-loaded).
        proposal_service: ProposalService instance (lazy-loaded).
        reservation_service: ReservationService instance (lazy-loaded).
        sale_service: SaleService instance (lazy-loaded).
    """

    def __init__(self, db_manager):
        self.db = db_manager
        self._pricer = None
        self._simulation_service = None
        self._proposal_service = None
        self._reservation_service = None
        self._sale_service = None
        self._dashboard = None

    @property
    def pricer(self):
        """Lazy-load DealPricer with the direct financing cap from settings."""
        if self._pricer is None:
            raw = self.db.get_setting("max_direct_installments", MAX_DIRECT_INSTALLMENTS)
            try:
                cap = int(raw)
            except (TypeError, ValueError):
                logger.warning("Invalid max_direct_installments setting %r, using %d", raw, MAX_DIRECT_INSTALLMENTS)
                cap = MAX_DIRECT_INSTALLMENTS
            self._pricer = DealPricer(max_direct_installments=cap)
        return self._pricer

    @property
    def simulation_service(self):
        """Lazy-load SimulationService instance."""
        if self._simulation_service is None:
            self._simulation_service = SimulationService(self.db)
        return self._simulation_service

    @property
    def proposal_service(self):
        """Lazy-load ProposalService instance."""
        if self._proposal_service is None:
            self._proposal_service = ProposalService(self.db)
        return self._proposal_service

    @property
    def reservation_service(self):
        """Lazy-load ReservationService instance."""
        if self._reservation_service is None:
            self._reservation_service = ReservationService(self.db)
        return self._reservation_service

    @property
    def sale_service(self):
        """Lazy-load SaleService instance."""
        if self._sale_service is None:
            self._sale_service = SaleService(self.db)
        return self._sale_service

    @property
    def dashboard(self):
        if self._dashboard is None:
            self._dashboard = DashboardReport(self.db)
        return self._dashboard

    def set_max_direct_installments(self, value):
        """Persist a new direct financing cap and rebuild the pricer."""
        self.db.set_setting("max_direct_installments", int(value))
        self._pricer = None

    # ===== PRICING =====

    def _vehicle_price(self, vehicle_id):
        vehicle = self.db.get_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)
        return vehicle.price

    def simulator_defaults(self, vehicle_id):
        """Suggested down payment and terms for a vehicle."""
        return default_inputs(self._vehicle_price(vehicle_id))

    def price_bank_financed(self, bank_id, vehicle_price, down_payment, requested_term):
        bank = self.db.get_bank(bank_id)
        if bank is None:
            raise BankNotFoundError(bank_id)
        return self.pricer.price_deal(BankFinancedDeal(bank, vehicle_price, down_payment, requested_term))

    def price_direct_financed(self, vehicle_price, down_payment, term_months):
        return self.pricer.price_deal(DirectFinancedDeal(vehicle_price, down_payment, term_months))

    def price_cash(self, vehicle_price, cash_price=None):
        return self.pricer.price_deal(CashDeal(vehicle_price, cash_price))

    def compare_banks(self, actor: Actor, vehicle_price, down_payment, requested_term):
        """Rank the banks visible to the actor for a financing request."""
        banks = visible_banks(actor, self.db.get_banks())
        return self.pricer.compare_banks(vehicle_price, down_payment, requested_term, banks)

    def get_banks(self, actor: Actor):
        return visible_banks(actor, self.db.get_banks())

    # ===== SIMULATIONS & PROPOSALS =====

    def save_simulation(self, result, vehicle_id, client_id, actor: Actor):
        """Delegates to SimulationService."""
        return self.simulation_service.save_simulation(result, vehicle_id, client_id, actor)

    def create_proposal_from_result(self, result, vehicle_id, client_id, actor: Actor, **kwargs):
        """Delegates to ProposalService."""
        return self.proposal_service.create_proposal_from_result(result, vehicle_id, client_id, actor, **kwargs)

    def list_simulations(self, actor: Actor):
        return self.simulation_service.list_simulations(actor)

    def create_proposal_from_simulation(self, simulation_id, actor: Actor, notes=None):
        return self.proposal_service.create_proposal_from_simulation(simulation_id, actor, notes)

    def change_proposal_status(self, proposal_id, target, actor: Actor = None):
        """Delegates to ProposalService."""
        return self.proposal_service.change_status(proposal_id, target, actor)

    def sign_proposal(self, proposal_id, party, signature, actor: Actor = None):
        return self.proposal_service.sign(proposal_id, party, signature, actor)

    def list_proposals(self, actor: Actor, status=None):
        return self.proposal_service.list_proposals(actor, status)

    def delete_proposal(self, proposal_id, actor: Actor = None):
        return self.proposal_service.delete_proposal(proposal_id, actor)

    def record_sale(self, proposal_id, actor: Actor = None, sale_date=None):
        """Delegates to SaleService."""
        return self.sale_service.record_sale(proposal_id, actor, sale_date)

    # ===== RESERVATIONS =====

    def reserve_vehicle(self, vehicle_id, client_id, actor: Actor, deposit_amount=0.0, notes=None,
                        reservation_date=None):
        """Delegates to ReservationService."""
        return self.reservation_service.create_reservation(
            vehicle_id, client_id, actor, deposit_amount, notes, reservation_date
        )

    def change_reservation_status(self, reservation_id, target, actor: Actor = None):
        return self.reservation_service.transition(reservation_id, target, actor)

    def delete_reservation(self, reservation_id, actor: Actor = None):
        return self.reservation_service.delete_reservation(reservation_id, actor)

    def list_reservations(self, actor: Actor, status=None):
        return self.reservation_service.list_reservations(actor, status)

    def expire_reservations(self, as_of=None):
        return self.reservation_service.expire_overdue(as_of)

    # ===== REPORTING =====

    def get_dashboard_stats(self, actor: Actor):
        return self.dashboard.get_stats(actor)

    def import_legacy_proposals(self, records):
        """Import proposals exported by older versions of the system."""
        count = self.db.import_legacy_proposals(records)
        logger.info("Imported %d legacy proposals", count)
        return count
