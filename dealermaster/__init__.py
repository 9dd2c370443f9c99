"""DealerMaster: dealership financing simulation and proposal pricing."""

__version__ = "1.0.0"
