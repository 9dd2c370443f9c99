"""Normalization of legacy records at the store boundary.

Older exports use Portuguese enum values, other column names
(`installments`, `total_value`, `seller_id`, ...) and, for proposals, may
lack a deal type altogether and carry the deprecated `is_own_financing` flag
instead. These helpers convert such records into the current shape once, on
import, so nothing downstream has to guess.
"""
from dealermaster.data_structures import (
    DealType, ProposalStatus, ReservationStatus, VehicleStatus, FuelType, TransmissionType
)

DEAL_TYPE_ALIASES = {
    'financiamento_bancario': DealType.BANK_FINANCED,
    'bancario': DealType.BANK_FINANCED,
    'financiamento_direto': DealType.DIRECT_FINANCED,
    'direto': DealType.DIRECT_FINANCED,
    'a_vista': DealType.CASH,
    'avista': DealType.CASH,
}

PROPOSAL_STATUS_ALIASES = {
    'negociacao': ProposalStatus.NEGOTIATING,
    'pendente': ProposalStatus.NEGOTIATING,
    'enviada': ProposalStatus.SENT,
    'em_analise': ProposalStatus.SENT,
    'aprovada': ProposalStatus.APPROVED,
    'reprovada': ProposalStatus.REJECTED,
    'recusada': ProposalStatus.REJECTED,
    'cancelada': ProposalStatus.CANCELLED,
    'vendida': ProposalStatus.SOLD,
}

RESERVATION_STATUS_ALIASES = {
    'ativa': ReservationStatus.ACTIVE,
    'convertida': ReservationStatus.CONVERTED,
    'cancelada': ReservationStatus.CANCELLED,
    'expirada': ReservationStatus.CANCELLED,
}

VEHICLE_STATUS_ALIASES = {
    'disponivel': VehicleStatus.AVAILABLE,
    'reservado': VehicleStatus.RESERVED,
    'vendido': VehicleStatus.SOLD,
}

FUEL_ALIASES = {
    'gasolina': FuelType.GASOLINE,
    'etanol': FuelType.ETHANOL,
    'eletrico': FuelType.ELECTRIC,
    'elétrico': FuelType.ELECTRIC,
    'hibrido': FuelType.HYBRID,
    'híbrido': FuelType.HYBRID,
}

TRANSMISSION_ALIASES = {
    'automatico': TransmissionType.AUTOMATIC,
    'automático': TransmissionType.AUTOMATIC,
    'automatizado': TransmissionType.AUTOMATED,
}

# Legacy column name -> current column name
PROPOSAL_FIELD_ALIASES = {
    'proposal_number': 'number',
    'seller_id': 'vendor_id',
    'installments': 'installment_count',
    'total_value': 'total_amount',
    'type': 'deal_type',
    'bank': 'bank_name',
    'cashPrice': 'cash_price',
    'isOwnFinancing': 'is_own_financing',
}


def _canonical(value, aliases, allowed, default):
    if value is None:
        return default
    key = str(value).strip().lower()
    if key in allowed:
        return key
    return aliases.get(key, default)


def infer_deal_type(record: dict) -> str:
    """Determine a proposal's deal type, falling back to legacy hints.

    Order: explicit type, `is_own_financing`, presence of a bank, presence
    of a cash price. Records with none of these are cash sales.
    """
    explicit = record.get('deal_type', record.get('type'))
    deal_type = _canonical(explicit, DEAL_TYPE_ALIASES, DealType.ALL, None)
    if deal_type:
        return deal_type

    if record.get('is_own_financing') or record.get('isOwnFinancing'):
        return DealType.DIRECT_FINANCED
    if record.get('bank_id') or record.get('bank'):
        return DealType.BANK_FINANCED
    if record.get('cash_price') or record.get('cashPrice'):
        return DealType.CASH
    return DealType.CASH


def normalize_proposal_record(record: dict) -> dict:
    """Convert a proposal record of any vintage into the current column set."""
    normalized = {}
    for key, value in record.items():
        normalized[PROPOSAL_FIELD_ALIASES.get(key, key)] = value

    deal_type = infer_deal_type(record)
    normalized['deal_type'] = deal_type
    normalized['status'] = _canonical(
        normalized.get('status'), PROPOSAL_STATUS_ALIASES, ProposalStatus.ALL, ProposalStatus.NEGOTIATING
    )

    normalized.pop('is_own_financing', None)

    if deal_type != DealType.BANK_FINANCED:
        normalized['bank_id'] = None
    if deal_type != DealType.CASH:
        normalized['cash_price'] = None

    if deal_type == DealType.CASH:
        price = float(normalized.get('vehicle_price') or 0)
        cash_price = float(normalized.get('cash_price') or 0) or price
        normalized['cash_price'] = cash_price
        normalized['financed_amount'] = 0.0
        normalized['installment_count'] = 1
        normalized['installment_value'] = 0.0
        normalized['total_amount'] = float(normalized.get('total_amount') or 0) or cash_price
    else:
        count = int(normalized.get('installment_count') or 1)
        value = float(normalized.get('installment_value') or 0)
        normalized['installment_count'] = count
        normalized['installment_value'] = value
        normalized['total_amount'] = value * count

    return normalized


def normalize_reservation_record(record: dict) -> dict:
    normalized = dict(record)
    if 'seller_id' in normalized:
        normalized['vendor_id'] = normalized.pop('seller_id')
    if 'reservation_number' in normalized:
        normalized['number'] = normalized.pop('reservation_number')
    normalized['status'] = _canonical(
        normalized.get('status'), RESERVATION_STATUS_ALIASES, ReservationStatus.ALL, ReservationStatus.ACTIVE
    )
    return normalized


def normalize_vehicle_record(record: dict) -> dict:
    normalized = dict(record)
    normalized['status'] = _canonical(
        normalized.get('status'), VEHICLE_STATUS_ALIASES, VehicleStatus.ALL, VehicleStatus.AVAILABLE
    )
    normalized['fuel'] = _canonical(normalized.get('fuel'), FUEL_ALIASES, FuelType.ALL, FuelType.FLEX)
    normalized['transmission'] = _canonical(
        normalized.get('transmission'), TRANSMISSION_ALIASES, TransmissionType.ALL, TransmissionType.MANUAL
    )
    return normalized
