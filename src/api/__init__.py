"""Request/response boundary for planner calculations."""

from api.calculate import CalculateHandler

__all__ = [
    'CalculateHandler',
]
