import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from module_1_obstruction_detection.app.config.settings import load_settings as load_detection_settings
from module_1_obstruction_detection.app.services.obstruction_service import ObstructionService
from module_2_field_mapping.adapters.document_store import JsonDocumentStore
from module_2_field_mapping.adapters.renderer_bridge import RendererBridge
from module_2_field_mapping.adapters.sandbox_renderer import SandboxRenderer
from module_2_field_mapping.app.settings import get_settings
from module_2_field_mapping.core.marker_store import MarkerStore
from module_2_field_mapping.core.models import Latitude, Longitude, Viewport
from module_2_field_mapping.services.bot_tracker import BotTracker
from module_2_field_mapping.services.mapping_service import FieldMappingService


logger = logging.getLogger(__name__)
settings = get_settings()

marker_store = MarkerStore(label_prefix=settings.marker_label_prefix)
bridge = RendererBridge(interactive=settings.interactive_map)
documents = JsonDocumentStore(settings.documents_path)
mapping_service = FieldMappingService(
    marker_store,
    bridge,
    documents,
    default_user=settings.default_user,
)
renderer = SandboxRenderer(
    post_message=bridge.receive,
    on_load_end=bridge.mark_ready,
    center=(settings.map_center_lat, settings.map_center_lng),
    zoom=settings.map_zoom,
)
bridge.attach(renderer)
bot_tracker = BotTracker(
    settings.map_center_lat,
    settings.map_center_lng,
    drift=settings.bot_drift_degrees,
)
obstruction_service = ObstructionService(
    load_detection_settings(
        save_previews=settings.detection_previews,
        preview_dir=settings.detection_preview_dir,
    )
)


class MarkerIn(BaseModel):
    lat: Latitude
    lng: Longitude


class CoordinateEntry(BaseModel):
    lat: str
    lng: str


class ImageIn(BaseModel):
    image: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.load_on_startup:
        mapping_service.load()
    if settings.enable_renderer:
        await renderer.start()
    bot_task: Optional[asyncio.Task] = None
    if settings.enable_bot_worker:
        bot_task = asyncio.create_task(_bot_worker(settings.bot_refresh_seconds, bot_tracker))
        app.state.bot_task = bot_task
    try:
        yield
    finally:
        task: Optional[asyncio.Task] = getattr(app.state, "bot_task", bot_task)
        if task:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if renderer.running:
            await renderer.stop()
            bridge.detach()


app = FastAPI(title="Module 2 Field Mapping", version="0.1.0", lifespan=lifespan)

# Allow the mobile client to call the API during local development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service() -> FieldMappingService:
    return mapping_service


def get_renderer() -> SandboxRenderer:
    return renderer


def get_obstruction_service() -> ObstructionService:
    return obstruction_service


async def _bot_worker(refresh_seconds: float, tracker: BotTracker) -> None:
    while True:
        await asyncio.sleep(refresh_seconds)
        try:
            location = tracker.tick()
            if location:
                logger.debug("Bot at (%.6f, %.6f) %s", location.lat, location.lng, location.status.value)
        except Exception:
            logger.exception("Bot worker encountered an unexpected error")


def _marker_listing(service: FieldMappingService) -> dict:
    return {
        "version": service.store.version,
        "markers": [marker.model_dump() for marker in service.markers()],
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/markers")
async def list_markers(service: FieldMappingService = Depends(get_service)) -> dict:
    return _marker_listing(service)


@app.post("/markers", status_code=201)
async def add_marker(payload: MarkerIn, service: FieldMappingService = Depends(get_service)) -> dict:
    return service.place_marker(payload.lat, payload.lng).model_dump()


@app.post("/markers/coordinates", status_code=201)
async def add_marker_from_text(
    payload: CoordinateEntry,
    service: FieldMappingService = Depends(get_service),
) -> dict:
    marker = service.submit_coordinates(payload.lat, payload.lng)
    if marker is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude must be numbers")
    return marker.model_dump()


@app.delete("/markers", status_code=204)
async def clear_markers(service: FieldMappingService = Depends(get_service)) -> None:
    service.clear()


@app.post("/markers/load")
async def load_markers(
    user_id: Optional[str] = Query(default=None, min_length=1),
    service: FieldMappingService = Depends(get_service),
) -> dict:
    service.load(user_id)
    return _marker_listing(service)


@app.post("/markers/save")
async def save_markers(
    user_id: Optional[str] = Query(default=None, min_length=1),
    service: FieldMappingService = Depends(get_service),
) -> dict:
    saved = service.save(user_id)
    return {"saved": saved, "count": len(service.store)}


@app.post("/renderer/messages")
async def renderer_message(request: Request, service: FieldMappingService = Depends(get_service)) -> dict:
    body = await request.body()
    event = service.bridge.receive(body)
    return {"accepted": event is not None}


@app.post("/renderer/click", status_code=202)
async def renderer_click(payload: MarkerIn, sandbox: SandboxRenderer = Depends(get_renderer)) -> dict:
    sandbox.click(payload.lat, payload.lng)
    return {"posted": True}


@app.post("/renderer/viewport")
async def renderer_viewport(payload: Viewport, sandbox: SandboxRenderer = Depends(get_renderer)) -> dict:
    if (payload.lat, payload.lng) != (sandbox.viewport.lat, sandbox.viewport.lng):
        sandbox.pan_to(payload.lat, payload.lng)
    if payload.zoom != sandbox.viewport.zoom:
        sandbox.zoom_to(payload.zoom)
    return sandbox.viewport.model_dump()


@app.get("/renderer/status")
async def renderer_status(
    wait: bool = Query(default=False),
    service: FieldMappingService = Depends(get_service),
    sandbox: SandboxRenderer = Depends(get_renderer),
) -> dict:
    if wait:
        # inbound clicks land on the next loop turn; give them a chance first
        await asyncio.sleep(0)
        await sandbox.idle()
    mirror_keys = sandbox.mirror_keys()
    store_keys = service.store.keys()
    return jsonable_encoder(
        {
            "bridge": service.bridge.status(),
            "running": sandbox.running,
            "viewport": sandbox.viewport.model_dump(),
            "mirror_keys": mirror_keys,
            "store_keys": store_keys,
            "in_sync": sorted(mirror_keys) == sorted(store_keys),
            "size_invalidations": sandbox.layer.size_invalidations if sandbox.layer else 0,
        }
    )


@app.get("/bot/location")
async def bot_location() -> dict:
    location = bot_tracker.current()
    if location is None:
        return {"location": None}
    return jsonable_encoder({"location": location.model_dump(), "status_color": location.status_color})


@app.post("/detection/analyze")
def analyze_image(payload: ImageIn, service: ObstructionService = Depends(get_obstruction_service)) -> dict:
    return service.analyze(payload.image).to_dict()
