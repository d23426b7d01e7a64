"""Convenience CLI for placing markers and inspecting the renderer mirror."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Tuple

from module_2_field_mapping.adapters.document_store import JsonDocumentStore
from module_2_field_mapping.adapters.renderer_bridge import RendererBridge
from module_2_field_mapping.adapters.sandbox_renderer import SandboxRenderer
from module_2_field_mapping.app.settings import AppSettings, get_settings
from module_2_field_mapping.core.marker_store import MarkerStore
from module_2_field_mapping.services.mapping_service import FieldMappingService


def _build(settings: AppSettings) -> Tuple[FieldMappingService, SandboxRenderer]:
    store = MarkerStore(label_prefix=settings.marker_label_prefix)
    bridge = RendererBridge(interactive=settings.interactive_map)
    service = FieldMappingService(
        store,
        bridge,
        JsonDocumentStore(settings.documents_path),
        default_user=settings.default_user,
    )
    renderer = SandboxRenderer(
        post_message=bridge.receive,
        on_load_end=bridge.mark_ready,
        center=(settings.map_center_lat, settings.map_center_lng),
        zoom=settings.map_zoom,
    )
    bridge.attach(renderer)
    return service, renderer


def _parse_point(value: str) -> Tuple[str, str]:
    lat, sep, lng = value.partition(",")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG but got '{value}'")
    return lat, lng


def _dump(obj: object) -> str:
    return json.dumps(
        obj,
        indent=2,
        default=lambda value: value.isoformat() if hasattr(value, "isoformat") else value,
    )


async def _run(args: argparse.Namespace, settings: AppSettings) -> int:
    service, renderer = _build(settings)
    user_id = args.user or settings.default_user

    if not args.fresh:
        service.load(user_id)
    if args.clear:
        service.clear()
    points: List[Tuple[str, str]] = args.add or []
    for lat_text, lng_text in points:
        if service.submit_coordinates(lat_text, lng_text) is None:
            print(f"Skipping invalid coordinates: {lat_text},{lng_text}", file=sys.stderr)

    await renderer.start()
    await asyncio.sleep(0)
    await renderer.idle()

    print(f"Bridge: {_dump(service.bridge.status())}")
    print(f"Markers ({len(service.store)}):")
    for marker in service.markers():
        print(f"  {marker.title}: ({marker.lat:.6f}, {marker.lng:.6f}) [{marker.marker_id}]")
    mirror_keys = renderer.mirror_keys()
    in_sync = sorted(mirror_keys) == sorted(service.store.keys())
    print(f"Renderer mirror: {len(mirror_keys)} handle(s), in sync: {in_sync}")
    if args.script:
        print("Injected script:")
        print(service.current_command().to_script())

    await renderer.stop()
    service.bridge.detach()

    if args.save:
        if not service.save(user_id):
            return 1
        print(f"Saved markers for '{user_id}' to {settings.documents_path}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Place field markers and sync them to the map renderer.")
    parser.add_argument("--user", type=str, default=None, help="User id whose marker document to use.")
    parser.add_argument(
        "--add",
        type=_parse_point,
        action="append",
        metavar="LAT,LNG",
        help="Place a marker at the given coordinates (repeatable).",
    )
    parser.add_argument("--clear", action="store_true", help="Remove all markers before adding new ones.")
    parser.add_argument("--fresh", action="store_true", help="Skip loading the stored marker document.")
    parser.add_argument("--save", action="store_true", help="Persist the resulting markers.")
    parser.add_argument("--script", action="store_true", help="Print the equivalent injected map script.")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    sys.exit(asyncio.run(_run(args, settings)))


if __name__ == "__main__":
    main()
