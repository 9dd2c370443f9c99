"""Bank rate table parsing and nearest-tier lookup."""
import json
from typing import Dict, Optional, Tuple

from dealermaster.config import RATE_TIERS
from dealermaster.exceptions import InvalidRateTableError

RateTable = Dict[int, float]


def parse_rate_table(raw) -> Optional[RateTable]:
    """Normalize a stored rate table into {term: monthly_rate_percent}.

    Accepts None, a JSON string, or a mapping whose keys may be strings
    (as they come back from JSON). A table must define exactly the terms
    in RATE_TIERS.

    Raises:
        InvalidRateTableError: If the table is malformed.
    """
    if raw is None or raw == "":
        return None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidRateTableError(f"Rate table is not valid JSON: {e}")
        if raw is None:
            return None

    if not isinstance(raw, dict):
        raise InvalidRateTableError("Rate table must be a mapping of term to rate",
                                    {'type': type(raw).__name__})

    table = {}
    for key, value in raw.items():
        try:
            term = int(key)
            rate = float(value)
        except (TypeError, ValueError):
            raise InvalidRateTableError("Rate table entries must be numeric", {'key': key, 'value': value})
        if rate < 0:
            raise InvalidRateTableError("Rates cannot be negative", {'term': term, 'rate': rate})
        table[term] = rate

    if set(table) != set(RATE_TIERS):
        raise InvalidRateTableError(
            "Rate table must define exactly the terms " + ", ".join(str(t) for t in RATE_TIERS),
            {'terms': sorted(table)}
        )
    return table


def nearest_tier(requested_term: int) -> int:
    """Closest rate tier by absolute difference; ties go to the lower tier."""
    best = RATE_TIERS[0]
    for tier in RATE_TIERS[1:]:
        if abs(tier - requested_term) < abs(best - requested_term):
            best = tier
    return best


def resolve_rate(rate_table: Optional[RateTable], requested_term: int) -> Tuple[int, float]:
    """Pick the rate a bank charges for a requested installment count.

    No interpolation is done: a 30-month request reuses the 24-month rate.

    Args:
        rate_table: Bank rate table, {term: monthly rate percent}.
        requested_term: Installment count asked for by the customer.

    Returns:
        Tuple of (used_term, monthly_rate_percent).

    Raises:
        InvalidRateTableError: If the bank has no rate table or lacks the tier.
    """
    if not rate_table:
        raise InvalidRateTableError("Bank has no rate table")

    used_term = nearest_tier(requested_term)
    if used_term not in rate_table:
        raise InvalidRateTableError("Rate table is missing a tier", {'term': used_term})
    return used_term, float(rate_table[used_term])
