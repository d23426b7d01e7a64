import json
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# Finite, in-range coordinates only; stored documents cannot hold NaN or infinity.
Latitude = Annotated[float, Field(ge=-90.0, le=90.0, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180.0, le=180.0, allow_inf_nan=False)]


def new_marker_id() -> str:
    return uuid4().hex


class Marker(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: Latitude
    lng: Longitude
    title: str
    marker_id: str = Field(default_factory=new_marker_id)

    @property
    def key(self) -> str:
        return self.marker_id

    def popup_html(self) -> str:
        return f"<b>{self.title}</b><br>Lat: {self.lat:.6f}<br>Lng: {self.lng:.6f}"


class MarkerDocument(BaseModel):
    user_id: str
    markers: List[Marker] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class RenderCommand(BaseModel):
    """Outbound instruction for the map renderer carrying the full marker set."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["set_markers"] = "set_markers"
    markers: List[Marker] = Field(default_factory=list)
    version: int = 0

    def to_script(self) -> str:
        payload = json.dumps([marker.model_dump() for marker in self.markers])
        return (
            f"window.markers = {payload};\n"
            "if (window.updateMarkers) {\n"
            "  window.updateMarkers();\n"
            "}"
        )


class MapClickEvent(BaseModel):
    type: Literal["mapClick"]
    lat: Latitude
    lng: Longitude


class RendererState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class Viewport(BaseModel):
    lat: Latitude
    lng: Longitude
    zoom: int = Field(default=13, ge=0, le=22)


class BotStatus(str, Enum):
    ONLINE = "online"
    WORKING = "working"
    OFFLINE = "offline"


STATUS_COLORS = {
    BotStatus.ONLINE: "#2e7d32",
    BotStatus.WORKING: "#ff9800",
    BotStatus.OFFLINE: "#f44336",
}


class BotLocation(BaseModel):
    lat: float
    lng: float
    last_update: datetime
    status: BotStatus = BotStatus.ONLINE

    @property
    def status_color(self) -> str:
        return STATUS_COLORS.get(self.status, "#666")


class ReconcileReport(BaseModel):
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    replaced: List[str] = Field(default_factory=list)
    teardown: bool = False

    @property
    def mutated(self) -> bool:
        return bool(self.added or self.removed or self.replaced or self.teardown)
