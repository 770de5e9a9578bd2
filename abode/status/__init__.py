"""Status derivation package."""

from abode.status.engine import StatusEngine, month_window

__all__ = ["StatusEngine", "month_window"]
