"""
Home Assistant Sensor Client

Read-only access to temperature entities through the Home Assistant REST
API, used when the refrigerator probes are already integrated there.
"""

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

# States Home Assistant reports while an entity has no value
UNAVAILABLE_STATES = ("unavailable", "unknown", "")


class HAClient:
    """Fetches entity states from Home Assistant."""

    def __init__(self, base_url: str, token: str, timeout: float = 5):
        """Initialize client.

        Args:
            base_url: Home Assistant URL (e.g., "http://supervisor/core")
            token: Long-lived access token
            timeout: Request timeout in seconds; a sampling tick waits this long at most
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Authorization"] = f"Bearer {token}"

    def get_state(self, entity_id: str) -> dict[str, Any]:
        """Fetch the state object of one entity.

        Raises:
            ValueError: If Home Assistant does not know the entity
            RuntimeError: If the request fails for any other reason
        """
        try:
            response = self.session.get(f"{self.base_url}/api/states/{entity_id}", timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise ValueError(f"Entity not found: {entity_id}")
            raise RuntimeError(f"Home Assistant rejected state request for {entity_id}: {e}")
        except requests.exceptions.RequestException as e:
            raise RuntimeError(f"HA API request failed: {e}")

        return response.json()

    def get_temperature(self, entity_id: str) -> float:
        """Current temperature of a sensor or climate entity in °C.

        Climate entities carry it in attributes.current_temperature, sensors
        in their state. Readings in °F are converted.

        Raises:
            ValueError: If the entity has no usable temperature
        """
        state = self.get_state(entity_id)
        attributes = state.get("attributes") or {}

        if entity_id.split(".", 1)[0] == "climate":
            raw = attributes.get("current_temperature")
        else:
            raw = state.get("state")

        if raw is None or str(raw).strip().lower() in UNAVAILABLE_STATES:
            raise ValueError(f"{entity_id} has no temperature (state: {raw!r})")

        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ValueError(f"{entity_id} reported a non-numeric temperature: {raw!r}")

        if attributes.get("unit_of_measurement") == "°F":
            value = round((value - 32) * 5 / 9, 2)
        return value
