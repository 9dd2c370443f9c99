"""Centralized configuration for DealerMaster.

This module contains all magic numbers, default values, and business rule
constants used by the pricing engine and the store. Values that may be
changed at runtime are also read from the `settings` table via
DatabaseManager.get_setting().
"""
import logging

# =============================================================================
# BANK RATE TABLES
# =============================================================================

# Terms (in months) for which a bank publishes a monthly rate
RATE_TIERS = (12, 24, 36, 48, 60)

# =============================================================================
# PRICING HEURISTICS
# =============================================================================

# CET estimate markup over the nominal annualized rate (15%)
CET_MARKUP = 1.15

# Store margin over vehicle price (5%)
STORE_MARGIN_RATE = 0.05

# Maximum number of installments for direct (own) financing
MAX_DIRECT_INSTALLMENTS = 120

# Name fragments identifying the store's own financing placeholder bank
DIRECT_FINANCING_BANK_MARKERS = ("próprio", "proprio", "autos da serra")

# =============================================================================
# SIMULATOR DEFAULTS
# =============================================================================

# Default down payment as a fraction of vehicle price (20%)
DEFAULT_DOWN_PAYMENT_RATIO = 0.2

# Default installment count for bank financing
DEFAULT_BANK_INSTALLMENTS = 48

# Default installment count for direct financing
DEFAULT_DIRECT_INSTALLMENTS = 12

# =============================================================================
# INVENTORY & DOCUMENTS
# =============================================================================

# Maximum number of photos per vehicle
MAX_VEHICLE_PHOTOS = 5

# Days a reservation holds a vehicle
RESERVATION_VALIDITY_DAYS = 10

# Document number prefixes
PROPOSAL_NUMBER_PREFIX = "PROP"
RESERVATION_NUMBER_PREFIX = "RES"
SIMULATION_NUMBER_PREFIX = "SIM"

# =============================================================================
# DISPLAY FORMATS
# =============================================================================

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Date format for display
DATE_FORMAT_DISPLAY = "%d/%m/%Y"

# Currency symbol for display
CURRENCY_SYMBOL = "R$"

# =============================================================================
# LOGGING
# =============================================================================

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVEL = logging.INFO


def configure_logging(level=None):
    """Apply the default log format to the root logger."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
