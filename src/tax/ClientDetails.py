import os
import json
import math
import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "default"
DEFAULT_ANNUAL_RETURN = 0.05
DEFAULT_TIME_HORIZON = 40
MIN_HORIZON_YEARS = 1
MAX_HORIZON_YEARS = 75


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


class ClientDetails:
    """Per-client planner defaults from reference/clients.json.

    Each client entry may carry defaults (annualReturn, timeHorizonYears)
    and constraints (minHorizonYears, maxHorizonYears). Unknown client ids
    resolve to the 'default' client.
    """

    def __init__(self, reference_dir: Optional[str] = None):
        self.reference_dir = reference_dir or os.path.normpath(os.path.join(os.path.dirname(__file__), '..', '..', 'reference'))
        with open(os.path.join(self.reference_dir, 'clients.json'), 'r') as f:
            self.clients = json.load(f)

    def normalizeClientId(self, client_id: Optional[str]) -> str:
        value = (client_id or '').strip().lower()
        if value in self.clients:
            return value
        if value:
            logger.warning("Unknown client id %r, using %s", client_id, DEFAULT_CLIENT_ID)
        return DEFAULT_CLIENT_ID

    def client(self, client_id: Optional[str]) -> dict:
        return self.clients.get(self.normalizeClientId(client_id), {})

    def defaultValue(self, client_id: Optional[str], key: str) -> Optional[float]:
        return _number(self.clients.get(client_id, {}).get('defaults', {}).get(key))

    def resolveAnnualReturn(self, client_id: Optional[str], override=None) -> tuple:
        """Returns (value, source) for the assumed annual return.

        Sources in priority order: override, client_default,
        fallback_default (the 'default' client), hardcoded_fallback.
        """
        override_value = _number(override)
        if override_value is not None:
            return override_value, "override"
        resolved = self.normalizeClientId(client_id)
        value = self.defaultValue(resolved, 'annualReturn')
        if value is not None:
            return value, "client_default"
        value = self.defaultValue(DEFAULT_CLIENT_ID, 'annualReturn')
        if value is not None:
            return value, "fallback_default"
        return DEFAULT_ANNUAL_RETURN, "hardcoded_fallback"

    def resolveTimeHorizon(self, client_id: Optional[str], override=None) -> tuple:
        """Returns (years, source, notes) for the planning horizon.

        An override is rounded and clamped to [1, 75] years, with a note when
        clamping changed it. Sources: override, client_default, fallback.
        """
        override_value = _number(override)
        if override_value is not None:
            rounded = int(math.floor(override_value + 0.5))
            clamped = min(MAX_HORIZON_YEARS, max(MIN_HORIZON_YEARS, rounded))
            notes = [f"timeHorizonYearsOverride clamped to {clamped}"] if clamped != rounded else []
            return clamped, "override", notes
        resolved = self.normalizeClientId(client_id)
        value = self.defaultValue(resolved, 'timeHorizonYears')
        if value is not None:
            return int(value), "client_default", []
        value = self.defaultValue(DEFAULT_CLIENT_ID, 'timeHorizonYears')
        if value is not None:
            return int(value), "fallback", []
        return DEFAULT_TIME_HORIZON, "fallback", []
