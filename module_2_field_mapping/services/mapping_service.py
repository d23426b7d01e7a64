import logging
import math
from typing import List, Optional, Tuple

from module_2_field_mapping.adapters.document_store import DocumentStoreError, JsonDocumentStore
from module_2_field_mapping.adapters.renderer_bridge import RendererBridge
from module_2_field_mapping.core.marker_store import MarkerStore
from module_2_field_mapping.core.models import MapClickEvent, Marker, RenderCommand


logger = logging.getLogger(__name__)


class FieldMappingService:
    """Coordinate marker placement, renderer sync, and document persistence."""

    def __init__(
        self,
        store: MarkerStore,
        bridge: RendererBridge,
        documents: JsonDocumentStore,
        default_user: str = "local",
    ) -> None:
        self.store = store
        self.bridge = bridge
        self.documents = documents
        self.default_user = default_user
        self.store.subscribe(self._on_store_change)
        self.bridge.on_map_click(self.handle_map_click)
        self.bridge.on_ready(self.sync)

    def markers(self) -> List[Marker]:
        return list(self.store.snapshot())

    def place_marker(self, lat: float, lng: float) -> Marker:
        marker = self.store.append(lat, lng)
        logger.info("Placed %s at (%.6f, %.6f)", marker.title, marker.lat, marker.lng)
        return marker

    def submit_coordinates(self, lat_text: str, lng_text: str) -> Optional[Marker]:
        """Place a marker from typed coordinates; unparseable input is ignored."""

        parsed = self._parse_coordinates(lat_text, lng_text)
        if parsed is None:
            logger.debug("Ignoring coordinate entry (%r, %r)", lat_text, lng_text)
            return None
        return self.place_marker(*parsed)

    def handle_map_click(self, event: MapClickEvent) -> Marker:
        return self.place_marker(event.lat, event.lng)

    def clear(self) -> None:
        self.store.clear()

    def load(self, user_id: Optional[str] = None) -> List[Marker]:
        user_id = user_id or self.default_user
        try:
            document = self.documents.load(user_id)
        except DocumentStoreError as exc:
            logger.warning("Falling back to an empty marker set for '%s': %s", user_id, exc)
            document = None
        markers = document.markers if document else []
        self.store.replace_all(markers)
        logger.info("Loaded %d marker(s) for '%s'", len(markers), user_id)
        return self.markers()

    def save(self, user_id: Optional[str] = None) -> bool:
        user_id = user_id or self.default_user
        try:
            self.documents.save(user_id, self.store.snapshot())
        except DocumentStoreError as exc:
            logger.warning("Unable to save markers for '%s': %s", user_id, exc)
            return False
        logger.info("Saved %d marker(s) for '%s'", len(self.store), user_id)
        return True

    def current_command(self) -> RenderCommand:
        return self._command(self.store.snapshot())

    def sync(self) -> None:
        self.bridge.send(self.current_command())

    def _on_store_change(self, snapshot: Tuple[Marker, ...]) -> None:
        self.bridge.send(self._command(snapshot))

    def _command(self, snapshot: Tuple[Marker, ...]) -> RenderCommand:
        return RenderCommand(markers=list(snapshot), version=self.store.version)

    @staticmethod
    def _parse_coordinates(lat_text: str, lng_text: str) -> Optional[Tuple[float, float]]:
        try:
            lat = float(str(lat_text).strip())
            lng = float(str(lng_text).strip())
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            return None
        return lat, lng
