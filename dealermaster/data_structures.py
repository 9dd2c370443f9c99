from dataclasses import dataclass, field
from typing import List, Dict, Optional


# =============================================================================
# STATUS / ENUM VALUES
# =============================================================================

class VehicleStatus:
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    ALL = (AVAILABLE, RESERVED, SOLD)


class FuelType:
    GASOLINE = "gasoline"
    ETHANOL = "ethanol"
    FLEX = "flex"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    ALL = (GASOLINE, ETHANOL, FLEX, DIESEL, ELECTRIC, HYBRID)


class TransmissionType:
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    CVT = "cvt"
    AUTOMATED = "automated"
    ALL = (MANUAL, AUTOMATIC, CVT, AUTOMATED)


class DealType:
    BANK_FINANCED = "bank_financed"
    DIRECT_FINANCED = "direct_financed"
    CASH = "cash"
    ALL = (BANK_FINANCED, DIRECT_FINANCED, CASH)


class ProposalStatus:
    NEGOTIATING = "negotiating"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    SOLD = "sold"
    ALL = (NEGOTIATING, SENT, APPROVED, REJECTED, CANCELLED, SOLD)


class ReservationStatus:
    ACTIVE = "active"
    CONVERTED = "converted"
    CANCELLED = "cancelled"
    ALL = (ACTIVE, CONVERTED, CANCELLED)


class UserRole:
    ADMIN = "admin"
    VENDOR = "vendor"
    CLIENT = "client"
    ALL = (ADMIN, VENDOR, CLIENT)


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class Actor:
    """The acting user as supplied by the identity provider."""
    user_id: str
    role: str = UserRole.VENDOR

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class Vehicle:
    brand: str
    model: str
    year_fab: int
    year_model: int
    price: float
    color: str = ""
    version: Optional[str] = None
    mileage: int = 0
    fuel: str = FuelType.FLEX
    transmission: str = TransmissionType.MANUAL
    plate: Optional[str] = None
    chassis: Optional[str] = None
    renavam: Optional[str] = None
    crv_number: Optional[str] = None
    status: str = VehicleStatus.AVAILABLE
    photos: List[str] = field(default_factory=list)
    description: Optional[str] = None
    id: Optional[int] = None

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model} {self.year_model}"


@dataclass
class Bank:
    """A lender and its discrete monthly rate table (percent per month, keyed by term)."""
    name: str
    rates: Optional[Dict[int, float]] = None
    commission_percent: float = 0.0
    is_active: bool = True
    id: Optional[int] = None


@dataclass
class Client:
    name: str
    cpf: str = ""
    phone: str = ""
    email: str = ""
    vendor_id: Optional[str] = None
    funnel_stage: str = "lead"
    id: Optional[int] = None


# =============================================================================
# DEAL INPUTS (one variant per deal type)
# =============================================================================

@dataclass(frozen=True)
class BankFinancedDeal:
    bank: Bank
    vehicle_price: float
    down_payment: float
    requested_term: int
    deal_type = DealType.BANK_FINANCED


@dataclass(frozen=True)
class DirectFinancedDeal:
    vehicle_price: float
    down_payment: float
    term_months: int
    deal_type = DealType.DIRECT_FINANCED


@dataclass(frozen=True)
class CashDeal:
    vehicle_price: float
    cash_price: Optional[float] = None
    deal_type = DealType.CASH


@dataclass(frozen=True)
class DealResult:
    """Normalized pricing outcome shared by every deal type."""
    deal_type: str
    vehicle_price: float
    down_payment: float
    financed_amount: float
    installment_count: int
    installment_value: float
    total_value: float
    cet_estimate: float = 0.0
    vendor_commission: float = 0.0
    store_margin: float = 0.0
    monthly_rate_percent: float = 0.0
    used_term: Optional[int] = None
    bank_id: Optional[int] = None
    bank_name: Optional[str] = None
    cash_price: Optional[float] = None


@dataclass(frozen=True)
class BankQuote:
    bank: Bank
    result: DealResult
    recommended: bool = False


@dataclass(frozen=True)
class ScheduleRow:
    number: int
    installment: float
    interest: float
    principal: float
    balance: float


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

@dataclass
class Simulation:
    vehicle_id: Optional[int]
    client_id: int
    vendor_id: str
    result: DealResult
    number: Optional[str] = None
    created_at: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Proposal:
    client_id: int
    vehicle_id: int
    vendor_id: str
    deal_type: str
    vehicle_price: float
    down_payment: float = 0.0
    financed_amount: float = 0.0
    installment_count: int = 1
    installment_value: float = 0.0
    total_amount: float = 0.0
    bank_id: Optional[int] = None
    cash_price: Optional[float] = None
    status: str = ProposalStatus.NEGOTIATING
    client_signature: Optional[str] = None
    vendor_signature: Optional[str] = None
    notes: Optional[str] = None
    simulation_id: Optional[int] = None
    first_due_date: Optional[str] = None
    number: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Reservation:
    vehicle_id: int
    client_id: int
    vendor_id: str
    status: str = ReservationStatus.ACTIVE
    deposit_amount: float = 0.0
    reservation_date: Optional[str] = None
    expiry_date: Optional[str] = None
    notes: Optional[str] = None
    number: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Sale:
    proposal_id: int
    vehicle_id: int
    client_id: int
    vendor_id: str
    total_value: float
    commission_value: float = 0.0
    sale_date: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class ReservationTransition:
    """Reservation status change plus the vehicle status it forces, applied as one unit."""
    reservation_id: Optional[int]
    vehicle_id: int
    previous_status: Optional[str]
    new_status: str
    vehicle_status: str
