"""CourtReserve tennis court auto-booker."""

__version__ = "0.1.0"
