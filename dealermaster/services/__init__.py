"""Services package for DealerMaster business logic.

The pricing core (amortization, rate_resolver, deal_pricer, state_machine)
is pure; the remaining services apply its results to the store.
"""

from .deal_pricer import DealPricer
from .state_machine import StateMachine, PROPOSAL_MACHINE, RESERVATION_MACHINE, apply_reservation_transition
from .proposal_service import ProposalService
from .reservation_service import ReservationService
from .sale_service import SaleService
from .simulation_service import SimulationService

__all__ = ['DealPricer', 'StateMachine', 'PROPOSAL_MACHINE', 'RESERVATION_MACHINE',
           'apply_reservation_transition', 'ProposalService', 'ReservationService',
           'SaleService', 'SimulationService']
