"""Simulation persistence for DealerMaster."""
import logging

from dealermaster.config import (
    SIMULATION_NUMBER_PREFIX,
    DEFAULT_BANK_INSTALLMENTS,
    DEFAULT_DIRECT_INSTALLMENTS,
)
from dealermaster.data_structures import Actor, DealResult, Simulation
from dealermaster.exceptions import ClientNotFoundError, SimulationNotFoundError, VehicleNotFoundError
from .deal_pricer import default_down_payment
from .visibility import can_view, record_filters

logger = logging.getLogger(__name__)


def default_inputs(vehicle_price: float) -> dict:
    """Simulator inputs suggested when a vehicle is picked."""
    return {
        'down_payment': default_down_payment(vehicle_price),
        'bank_installments': DEFAULT_BANK_INSTALLMENTS,
        'direct_installments': DEFAULT_DIRECT_INSTALLMENTS,
    }


class SimulationService:
    """Stores priced deals so they can be reviewed or promoted later."""

    def __init__(self, db_manager):
        self.db = db_manager

    def save_simulation(self, result: DealResult, vehicle_id, client_id, actor: Actor) -> Simulation:
        """Persist a priced deal for a client.

        Raises:
            ValueError: If no client is given.
            ClientNotFoundError: If the client does not exist.
            VehicleNotFoundError: If a vehicle is given but does not exist.
        """
        if client_id is None:
            raise ValueError("A client is required to save a simulation.")
        if self.db.get_client(client_id) is None:
            raise ClientNotFoundError(client_id)
        if vehicle_id is not None and self.db.get_vehicle(vehicle_id) is None:
            raise VehicleNotFoundError(vehicle_id)

        simulation = Simulation(
            vehicle_id=vehicle_id,
            client_id=client_id,
            vendor_id=actor.user_id,
            result=result,
            number=self.db.generate_document_number(SIMULATION_NUMBER_PREFIX, "simulations"),
        )
        self.db.add_simulation(simulation)
        logger.info("Simulation %s saved for client %s", simulation.number, client_id)
        return simulation

    def get_simulation(self, simulation_id, actor: Actor = None) -> Simulation:
        """Fetch a saved simulation, hiding records the actor may not see.

        Raises:
            SimulationNotFoundError: If missing or not visible to the actor.
        """
        simulation = self.db.get_simulation(simulation_id)
        if simulation is None or (actor is not None and not can_view(actor, simulation)):
            raise SimulationNotFoundError(simulation_id)
        return simulation

    def list_simulations(self, actor: Actor):
        return self.db.get_simulations_df(**record_filters(actor))
