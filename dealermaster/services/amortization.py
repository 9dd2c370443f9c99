"""Installment calculators for financed and direct deals.

Values are kept at full float precision; rounding to cents is a display
concern handled in dealermaster.formatters.
"""
from typing import List

from dealermaster.data_structures import ScheduleRow


def compute_financed_installment(principal: float, monthly_rate: float, term_months: int) -> float:
    """Fixed installment under the Price (French) amortization system.

    Args:
        principal: Amount being financed.
        monthly_rate: Periodic interest as a ratio (0.015 for 1.5% a month).
        term_months: Number of installments, must be positive.

    Returns:
        The installment value. With a zero rate this is principal / term.

    Raises:
        ValueError: If term_months is not positive or monthly_rate is negative.
    """
    if term_months <= 0:
        raise ValueError("term_months must be positive")
    if monthly_rate < 0:
        raise ValueError("monthly_rate cannot be negative")

    if monthly_rate == 0:
        return principal / term_months

    growth = (1 + monthly_rate) ** term_months
    coefficient = (monthly_rate * growth) / (growth - 1)
    return principal * coefficient


def compute_direct_installment(vehicle_price: float, down_payment: float, term_months: int) -> float:
    """Zero-interest installment for the store's own financing.

    Returns 0 when there is nothing to finance or the term is below one.
    """
    principal = vehicle_price - down_payment
    if term_months < 1 or principal <= 0:
        return 0.0
    return compute_financed_installment(principal, 0.0, term_months)


def build_amortization_schedule(principal: float, monthly_rate: float, term_months: int) -> List[ScheduleRow]:
    """Month-by-month breakdown of a Price-system loan.

    Each row splits the fixed installment into interest on the outstanding
    balance and principal repaid. The last row absorbs the float residue so
    the closing balance is exactly zero.
    """
    installment = compute_financed_installment(principal, monthly_rate, term_months)
    rows = []
    balance = principal

    for number in range(1, term_months + 1):
        interest = balance * monthly_rate
        amortized = installment - interest
        if number == term_months:
            amortized = balance
        balance -= amortized
        rows.append(ScheduleRow(
            number=number,
            installment=installment,
            interest=interest,
            principal=amortized,
            balance=max(balance, 0.0)
        ))

    return rows
