"""Custom exceptions for DealerMaster."""


class DealerMasterError(Exception):
    """Base exception for all DealerMaster errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(DealerMasterError):
    """Raised when a database operation fails."""
    pass


class TransactionError(DatabaseError):
    """Raised when a database transaction fails to complete."""
    pass


class InvalidAmountError(DealerMasterError):
    """Raised for negative prices, down payments above price, or a non-positive financed principal."""

    def __init__(self, message: str, **amounts):
        super().__init__(message, amounts)


class InvalidTermError(DealerMasterError):
    """Raised when an installment count is not positive or exceeds the configured cap."""

    def __init__(self, term, max_term: int = None):
        details = {'term': term}
        if max_term is not None:
            details['max_term'] = max_term
            message = f"Installment count must be between 1 and {max_term}"
        else:
            message = "Installment count must be at least 1"
        super().__init__(message, details)


class InvalidRateTableError(DealerMasterError):
    """Raised when a bank's rate table is absent or malformed."""
    pass


class NoActiveBanksError(DealerMasterError):
    """Raised when bank financing is priced against an empty eligible-bank set."""

    def __init__(self, considered: int = 0):
        super().__init__("No active banks available for financing", {'considered': considered})


class ConflictError(DealerMasterError):
    """Raised when a write would contradict the current state of a linked record."""
    pass


class IllegalTransitionError(DealerMasterError):
    """Raised when a status change is not allowed by the lifecycle."""

    def __init__(self, entity: str, current: str, target: str):
        details = {
            'entity': entity,
            'current': current,
            'target': target
        }
        message = f"Cannot move {entity} from '{current}' to '{target}'"
        super().__init__(message, details)


class NotFoundError(DealerMasterError):
    """Raised when a referenced record cannot be found."""

    entity = "Record"

    def __init__(self, record_id=None):
        details = {}
        message = f"{self.entity} not found"
        if record_id is not None:
            details['id'] = record_id
            message = f"{self.entity} with ID {record_id} not found"
        super().__init__(message, details)


class VehicleNotFoundError(NotFoundError):
    entity = "Vehicle"


class BankNotFoundError(NotFoundError):
    entity = "Bank"


class ClientNotFoundError(NotFoundError):
    entity = "Client"


class ProposalNotFoundError(NotFoundError):
    entity = "Proposal"


class ReservationNotFoundError(NotFoundError):
    entity = "Reservation"


class SimulationNotFoundError(NotFoundError):
    entity = "Simulation"
