"""Deal pricing service for DealerMaster.

This service turns a deal request into a normalized DealResult for each of
the three deal structures:
- Bank financing (Price amortization at the bank's tier rate)
- Direct financing (zero-interest installments from the store)
- Cash sale

Pricing is pure: no clock, no store access, no hidden state. The same input
always produces the same result.
"""
import logging
import math
from typing import Iterable, List

from dealermaster.config import (
    CET_MARKUP,
    STORE_MARGIN_RATE,
    MAX_DIRECT_INSTALLMENTS,
    DIRECT_FINANCING_BANK_MARKERS,
    DEFAULT_DOWN_PAYMENT_RATIO,
)
from dealermaster.data_structures import (
    Bank, BankQuote, BankFinancedDeal, DirectFinancedDeal, CashDeal, DealResult, DealType
)
from dealermaster.exceptions import InvalidAmountError, InvalidTermError, NoActiveBanksError
from .amortization import compute_financed_installment, compute_direct_installment
from .rate_resolver import resolve_rate

logger = logging.getLogger(__name__)


def is_direct_financing_placeholder(bank: Bank) -> bool:
    """Check whether a bank record stands for the store's own financing."""
    name = (bank.name or "").lower()
    return any(marker in name for marker in DIRECT_FINANCING_BANK_MARKERS)


def _require_finite(**amounts):
    for name, value in amounts.items():
        if value is not None and not math.isfinite(value):
            raise InvalidAmountError(f"{name} must be a finite number", **{name: value})


def default_down_payment(vehicle_price: float) -> float:
    """Suggested down payment when a vehicle is picked in the simulator."""
    return float(round(vehicle_price * DEFAULT_DOWN_PAYMENT_RATIO))


class DealPricer:
    """Prices bank-financed, direct-financed and cash deals.

    Attributes:
        max_direct_installments: Upper bound for direct financing terms.
    """

    def __init__(self, max_direct_installments: int = MAX_DIRECT_INSTALLMENTS):
        self.max_direct_installments = max_direct_installments

    def price_deal(self, deal) -> DealResult:
        """Price a deal according to its type.

        Args:
            deal: A BankFinancedDeal, DirectFinancedDeal or CashDeal.

        Returns:
            The priced DealResult.

        Raises:
            InvalidAmountError: For negative or non-finite amounts, or a non-positive financed principal.
            InvalidTermError: For an out-of-range installment count.
            InvalidRateTableError: If the bank has no usable rate table.
            TypeError: If deal is not one of the supported variants.
        """
        if isinstance(deal, BankFinancedDeal):
            return self.price_bank_financed(deal)
        if isinstance(deal, DirectFinancedDeal):
            return self.price_direct_financed(deal)
        if isinstance(deal, CashDeal):
            return self.price_cash(deal)
        raise TypeError(f"Unsupported deal input: {type(deal).__name__}")

    @staticmethod
    def _financed_amount(vehicle_price: float, down_payment: float) -> float:
        _require_finite(vehicle_price=vehicle_price, down_payment=down_payment)
        if vehicle_price < 0:
            raise InvalidAmountError("Vehicle price cannot be negative", vehicle_price=vehicle_price)
        if down_payment < 0:
            raise InvalidAmountError("Down payment cannot be negative", down_payment=down_payment)
        if down_payment > vehicle_price:
            raise InvalidAmountError("Down payment exceeds vehicle price",
                                     vehicle_price=vehicle_price, down_payment=down_payment)

        financed = vehicle_price - down_payment
        if financed <= 0:
            raise InvalidAmountError("Financed amount must be positive",
                                     vehicle_price=vehicle_price, down_payment=down_payment)
        return financed

    def price_bank_financed(self, deal: BankFinancedDeal) -> DealResult:
        financed = self._financed_amount(deal.vehicle_price, deal.down_payment)
        if deal.requested_term <= 0:
            raise InvalidTermError(deal.requested_term)

        bank = deal.bank
        used_term, rate_percent = resolve_rate(bank.rates, deal.requested_term)
        monthly_rate = rate_percent / 100

        installment = compute_financed_installment(financed, monthly_rate, deal.requested_term)

        return DealResult(
            deal_type=DealType.BANK_FINANCED,
            vehicle_price=deal.vehicle_price,
            down_payment=deal.down_payment,
            financed_amount=financed,
            installment_count=deal.requested_term,
            installment_value=installment,
            total_value=installment * deal.requested_term,
            cet_estimate=monthly_rate * 12 * CET_MARKUP,
            vendor_commission=financed * (bank.commission_percent / 100),
            store_margin=deal.vehicle_price * STORE_MARGIN_RATE,
            monthly_rate_percent=rate_percent,
            used_term=used_term,
            bank_id=bank.id,
            bank_name=bank.name,
        )

    def price_direct_financed(self, deal: DirectFinancedDeal) -> DealResult:
        financed = self._financed_amount(deal.vehicle_price, deal.down_payment)
        if deal.term_months <= 0:
            raise InvalidTermError(deal.term_months)
        if self.max_direct_installments is not None and deal.term_months > self.max_direct_installments:
            raise InvalidTermError(deal.term_months, self.max_direct_installments)

        installment = compute_direct_installment(deal.vehicle_price, deal.down_payment, deal.term_months)

        return DealResult(
            deal_type=DealType.DIRECT_FINANCED,
            vehicle_price=deal.vehicle_price,
            down_payment=deal.down_payment,
            financed_amount=financed,
            installment_count=deal.term_months,
            installment_value=installment,
            total_value=installment * deal.term_months,
            store_margin=deal.vehicle_price * STORE_MARGIN_RATE,
        )

    def price_cash(self, deal: CashDeal) -> DealResult:
        _require_finite(vehicle_price=deal.vehicle_price, cash_price=deal.cash_price)
        if deal.vehicle_price < 0:
            raise InvalidAmountError("Vehicle price cannot be negative", vehicle_price=deal.vehicle_price)
        if deal.cash_price is not None and deal.cash_price < 0:
            raise InvalidAmountError("Cash price cannot be negative", cash_price=deal.cash_price)

        # Unset or zero cash price means the listed price
        cash_price = deal.cash_price or deal.vehicle_price

        return DealResult(
            deal_type=DealType.CASH,
            vehicle_price=deal.vehicle_price,
            down_payment=0.0,
            financed_amount=0.0,
            installment_count=1,
            installment_value=0.0,
            total_value=cash_price,
            cash_price=cash_price,
        )

    def eligible_banks(self, banks: Iterable[Bank]) -> List[Bank]:
        """Banks that may take part in a financing comparison."""
        eligible = []
        for bank in banks:
            if not bank.is_active:
                continue
            if is_direct_financing_placeholder(bank):
                continue
            if not bank.rates:
                logger.warning("Skipping bank %r: no rate table", bank.name)
                continue
            eligible.append(bank)
        return eligible

    def compare_banks(self, vehicle_price: float, down_payment: float, requested_term: int,
                      banks: Iterable[Bank]) -> List[BankQuote]:
        """Price the same request against every eligible bank.

        Quotes are sorted by installment value, lowest first; the first one
        is flagged as recommended.

        Raises:
            NoActiveBanksError: If no bank is eligible.
        """
        banks = list(banks)
        eligible = self.eligible_banks(banks)
        if not eligible:
            raise NoActiveBanksError(considered=len(banks))

        priced = []
        for bank in eligible:
            deal = BankFinancedDeal(bank, vehicle_price, down_payment, requested_term)
            priced.append((bank, self.price_bank_financed(deal)))

        # list.sort is stable, so equal installments keep the input order
        priced.sort(key=lambda item: item[1].installment_value)

        logger.debug("Compared %d banks for %s over %d months", len(priced), vehicle_price, requested_term)
        return [
            BankQuote(bank=bank, result=result, recommended=(idx == 0))
            for idx, (bank, result) in enumerate(priced)
        ]
