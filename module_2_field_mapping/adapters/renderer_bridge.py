import json
import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, Protocol, Union

from pydantic import ValidationError

from module_2_field_mapping.core.models import MapClickEvent, RenderCommand, RendererState

logger = logging.getLogger(__name__)

ClickHandler = Callable[[MapClickEvent], None]


class RendererTransport(Protocol):
    """One-way delivery into the renderer; nothing is ever returned."""

    def deliver(self, command: RenderCommand) -> None: ...


class RendererBridge:
    """Asynchronous two-way channel between the host and the map renderer.

    Outbound commands issued before the renderer reports readiness are held
    and flushed on the transition to READY. Each ``set_markers`` command
    carries the whole marker set, so only the newest one needs to be kept.
    """

    def __init__(self, interactive: bool = True) -> None:
        self.interactive = interactive
        self.state = RendererState.UNINITIALIZED
        self._transport: Optional[RendererTransport] = None
        self._pending: Deque[RenderCommand] = deque()
        self._click_handlers: List[ClickHandler] = []
        self._ready_handlers: List[Callable[[], None]] = []
        self._counters: Dict[str, int] = {
            "sent": 0,
            "queued": 0,
            "coalesced": 0,
            "received": 0,
            "dropped": 0,
            "ignored": 0,
        }

    def attach(self, transport: RendererTransport) -> None:
        self._transport = transport
        self.state = RendererState.UNINITIALIZED

    def detach(self) -> None:
        self._transport = None
        self.state = RendererState.UNINITIALIZED
        logger.info("Renderer detached; outbound commands will be queued")

    def on_map_click(self, handler: ClickHandler) -> None:
        self._click_handlers.append(handler)

    def on_ready(self, handler: Callable[[], None]) -> None:
        self._ready_handlers.append(handler)

    def mark_ready(self) -> None:
        if self._transport is None:
            logger.warning("Renderer reported ready without an attached transport")
            return
        self.state = RendererState.READY
        pending = len(self._pending)
        while self._pending and self.state is RendererState.READY:
            self._deliver(self._pending.popleft())
        logger.info("Renderer ready; flushed %d queued command(s)", pending)
        for handler in list(self._ready_handlers):
            handler()

    def send(self, command: RenderCommand) -> None:
        if self.state is not RendererState.READY or self._transport is None:
            self._enqueue(command)
            return
        self._deliver(command)

    def receive(self, raw: Union[str, bytes]) -> Optional[MapClickEvent]:
        """Parse one inbound renderer message; malformed input is dropped."""

        self._counters["received"] += 1
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as exc:
            return self._drop(f"unparseable message: {exc}")
        if not isinstance(message, dict):
            return self._drop("message is not a JSON object")

        message_type = message.get("type")
        if message_type != "mapClick":
            return self._drop(f"unknown message type {message_type!r}")
        try:
            event = MapClickEvent.model_validate(message)
        except ValidationError as exc:
            return self._drop(f"invalid mapClick payload: {exc.error_count()} error(s)")

        if not self.interactive:
            self._counters["ignored"] += 1
            logger.debug("Ignoring mapClick in read-only renderer")
            return None
        for handler in list(self._click_handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Map click handler failed for %s", event)
        return event

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "interactive": self.interactive,
            "attached": self._transport is not None,
            "pending": len(self._pending),
            **self._counters,
        }

    def _enqueue(self, command: RenderCommand) -> None:
        if command.kind == "set_markers":
            superseded = [item for item in self._pending if item.kind == "set_markers"]
            for item in superseded:
                self._pending.remove(item)
            self._counters["coalesced"] += len(superseded)
        self._pending.append(command)
        self._counters["queued"] += 1
        logger.debug("Renderer not ready; queued %s (v%d)", command.kind, command.version)

    def _deliver(self, command: RenderCommand) -> None:
        try:
            self._transport.deliver(command)
        except RuntimeError as exc:
            logger.warning("Renderer rejected %s: %s; queueing until ready", command.kind, exc)
            self.state = RendererState.UNINITIALIZED
            self._enqueue(command)
            return
        self._counters["sent"] += 1

    def _drop(self, reason: str) -> None:
        self._counters["dropped"] += 1
        logger.warning("Dropping renderer message: %s", reason)
        return None
