import logging
from typing import Callable, Iterable, List, Optional, Set, Tuple

from module_2_field_mapping.core.models import Marker, new_marker_id

logger = logging.getLogger(__name__)

MarkerListener = Callable[[Tuple[Marker, ...]], None]


class MarkerStore:
    """Host-side source of truth for user-placed markers.

    Every operation runs to completion without yielding, so on the single
    event loop no two writers can interleave.
    """

    def __init__(self, label_prefix: str = "Obstacle") -> None:
        self.label_prefix = label_prefix
        self._markers: List[Marker] = []
        self._issued_ids: Set[str] = set()
        self._listeners: List[MarkerListener] = []
        self.version = 0

    def append(self, lat: float, lng: float, title: Optional[str] = None) -> Marker:
        marker = Marker(
            lat=lat,
            lng=lng,
            title=title or f"{self.label_prefix} {len(self._markers) + 1}",
            marker_id=self._fresh_id(),
        )
        self._markers.append(marker)
        self._changed()
        return marker

    def replace_all(self, markers: Iterable[Marker]) -> None:
        accepted: List[Marker] = []
        seen: Set[str] = set()
        for marker in markers:
            if marker.key in seen:
                logger.warning(
                    "Duplicate marker id %s for '%s'; assigning a new id",
                    marker.key,
                    marker.title,
                )
                marker = marker.model_copy(update={"marker_id": self._fresh_id()})
            seen.add(marker.key)
            accepted.append(marker)
        self._issued_ids.update(seen)
        self._markers = accepted
        self._changed()

    def clear(self) -> None:
        self._markers = []
        self._changed()

    def snapshot(self) -> Tuple[Marker, ...]:
        return tuple(self._markers)

    def keys(self) -> List[str]:
        return [marker.key for marker in self._markers]

    def subscribe(self, listener: MarkerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._markers)

    def _fresh_id(self) -> str:
        marker_id = new_marker_id()
        while marker_id in self._issued_ids:
            marker_id = new_marker_id()
        self._issued_ids.add(marker_id)
        return marker_id

    def _changed(self) -> None:
        self.version += 1
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
