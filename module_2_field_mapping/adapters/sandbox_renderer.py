"""In-process stand-in for the isolated map renderer.

The renderer owns its own task and inbox and never touches host state: it
learns about markers only through delivered commands and reports user
interaction only through posted messages.
"""

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from module_2_field_mapping.core.models import Marker, ReconcileReport, RenderCommand, Viewport
from module_2_field_mapping.core.reconciler import ReconciliationProtocol, RendererMirror

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerHandle:
    handle_id: int
    lat: float
    lng: float
    popup: str


@dataclass
class SandboxMarkerLayer:
    """Drawing surface holding the live marker handles."""

    handles: Dict[int, MarkerHandle] = field(default_factory=dict)
    size_invalidations: int = 0
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def add_marker(self, marker: Marker) -> MarkerHandle:
        handle = MarkerHandle(
            handle_id=next(self._ids),
            lat=marker.lat,
            lng=marker.lng,
            popup=marker.popup_html(),
        )
        self.handles[handle.handle_id] = handle
        return handle

    def remove_marker(self, handle: MarkerHandle) -> None:
        self.handles.pop(handle.handle_id, None)

    def invalidate_size(self) -> None:
        self.size_invalidations += 1


@dataclass(frozen=True)
class _Settle:
    reason: str


InboxItem = Union[RenderCommand, _Settle]


class SandboxRenderer:
    def __init__(
        self,
        post_message: Callable[[str], None],
        on_load_end: Optional[Callable[[], None]] = None,
        center: Tuple[float, float] = (14.5995, 120.9842),
        zoom: int = 13,
    ) -> None:
        self._post_message = post_message
        self._on_load_end = on_load_end
        self.viewport = Viewport(lat=center[0], lng=center[1], zoom=zoom)
        self.size: Tuple[int, int] = (0, 0)
        self.markers_slot: List[Marker] = []
        self.layer: Optional[SandboxMarkerLayer] = None
        self.mirror: Optional[RendererMirror] = None
        self.protocol: Optional[ReconciliationProtocol] = None
        self.last_report: Optional[ReconcileReport] = None
        self._inbox: Optional["asyncio.Queue[InboxItem]"] = None
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue()
        self.layer = SandboxMarkerLayer()
        self.mirror = RendererMirror()
        self.protocol = ReconciliationProtocol(self.layer, self.mirror)
        self.markers_slot = []
        self._task = asyncio.create_task(self._run(), name="sandbox-renderer")
        logger.info(
            "Renderer initialized at (%.4f, %.4f) zoom %d",
            self.viewport.lat,
            self.viewport.lng,
            self.viewport.zoom,
        )
        self._settle("ready")
        if self._on_load_end is not None:
            self._loop.call_soon(self._on_load_end)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self.protocol is not None:
            self.protocol.reconcile([])
        self.mirror = None
        self.protocol = None
        self.layer = None
        self._inbox = None
        logger.info("Renderer torn down")

    def deliver(self, command: RenderCommand) -> None:
        if not self.running or self._inbox is None:
            raise RuntimeError("renderer is not initialized")
        self._inbox.put_nowait(command)

    def pan_to(self, lat: float, lng: float) -> None:
        self.viewport = self.viewport.model_copy(update={"lat": lat, "lng": lng})
        self._settle("moveend")

    def zoom_to(self, zoom: int) -> None:
        self.viewport = self.viewport.model_copy(update={"zoom": zoom})
        self._settle("zoomend")

    def resize(self, width: int, height: int) -> None:
        self.size = (width, height)
        if self.layer is not None:
            self.layer.invalidate_size()
        self._settle("resize")

    def click(self, lat: float, lng: float) -> None:
        payload = json.dumps({"type": "mapClick", "lat": lat, "lng": lng})
        self.post_raw(payload)

    def post_raw(self, payload: str) -> None:
        if self._loop is None:
            logger.debug("Renderer not started; message discarded")
            return
        self._loop.call_soon(self._post_message, payload)

    async def idle(self) -> None:
        """Wait until every delivered command and settle has been applied."""

        if self._inbox is not None:
            await self._inbox.join()

    def update_markers(self) -> ReconcileReport:
        self.last_report = self.protocol.reconcile(self.markers_slot)
        return self.last_report

    def mirror_keys(self) -> List[str]:
        return self.mirror.keys() if self.mirror is not None else []

    def _settle(self, reason: str) -> None:
        if self.running and self._inbox is not None:
            self._inbox.put_nowait(_Settle(reason=reason))

    async def _run(self) -> None:
        while True:
            item = await self._inbox.get()
            try:
                if isinstance(item, RenderCommand):
                    self.markers_slot = list(item.markers)
                    self.update_markers()
                else:
                    report = self.update_markers()
                    logger.debug("Settled after %s (mutated=%s)", item.reason, report.mutated)
            except Exception:
                logger.exception("Renderer failed to apply %r", item)
            finally:
                self._inbox.task_done()
