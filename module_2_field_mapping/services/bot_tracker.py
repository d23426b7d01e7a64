import logging
import random
from datetime import datetime, timezone
from typing import Optional

from module_2_field_mapping.core.models import BotLocation, BotStatus

logger = logging.getLogger(__name__)


class BotTracker:
    """Follow the field bot's reported position and status."""

    def __init__(
        self,
        lat: Optional[float] = 14.5995,
        lng: Optional[float] = 120.9842,
        drift: float = 0.001,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.drift = max(drift, 0.0)
        self._rng = rng or random.Random()
        self._location: Optional[BotLocation] = None
        if lat is not None and lng is not None:
            self.update_fix(lat, lng)

    def current(self) -> Optional[BotLocation]:
        return self._location

    def update_fix(self, lat: float, lng: float, now: Optional[datetime] = None) -> BotLocation:
        status = self._location.status if self._location else BotStatus.ONLINE
        self._location = BotLocation(
            lat=lat,
            lng=lng,
            last_update=now or datetime.now(timezone.utc),
            status=status,
        )
        return self._location

    def lose_fix(self) -> None:
        if self._location is not None:
            logger.info("Bot location unavailable; clearing last known fix")
        self._location = None

    def set_status(self, status: BotStatus) -> Optional[BotLocation]:
        if self._location is None:
            return None
        self._location = self._location.model_copy(update={"status": status})
        return self._location

    def tick(self, now: Optional[datetime] = None) -> Optional[BotLocation]:
        """Advance the simulated feed by one refresh interval."""

        if self._location is None:
            return None
        lat = self._location.lat + (self._rng.random() - 0.5) * self.drift
        lng = self._location.lng + (self._rng.random() - 0.5) * self.drift
        return self.update_fix(lat, lng, now)
