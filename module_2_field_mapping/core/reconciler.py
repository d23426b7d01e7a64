import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol

from module_2_field_mapping.core.models import Marker, ReconcileReport

logger = logging.getLogger(__name__)


class MarkerLayer(Protocol):
    """Renderer-native drawing surface the reconciler patches."""

    def add_marker(self, marker: Marker) -> Any: ...

    def remove_marker(self, handle: Any) -> None: ...

    def invalidate_size(self) -> None: ...


@dataclass
class MirrorEntry:
    marker: Marker
    handle: Any


class RendererMirror:
    """Renderer-local, non-authoritative copy of the marker set."""

    def __init__(self) -> None:
        self._entries: Dict[str, MirrorEntry] = {}

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def get(self, key: str) -> Optional[MirrorEntry]:
        return self._entries.get(key)

    def markers(self) -> List[Marker]:
        return [entry.marker for entry in self._entries.values()]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def put(self, key: str, entry: MirrorEntry) -> None:
        self._entries[key] = entry

    def pop(self, key: str) -> MirrorEntry:
        return self._entries.pop(key)

    def clear(self) -> None:
        self._entries.clear()


class ReconciliationProtocol:
    """Diff-and-patch the mirror against the latest marker snapshot."""

    def __init__(self, layer: MarkerLayer, mirror: Optional[RendererMirror] = None) -> None:
        self.layer = layer
        self.mirror = mirror or RendererMirror()
        self.passes = 0

    def reconcile(self, snapshot: Iterable[Marker]) -> ReconcileReport:
        markers = list(snapshot)
        self.passes += 1
        report = ReconcileReport()

        if not markers:
            if len(self.mirror):
                report.removed = self.mirror.keys()
                for key in report.removed:
                    self.layer.remove_marker(self.mirror.get(key).handle)
                self.mirror.clear()
                report.teardown = True
        else:
            wanted: Dict[str, Marker] = {marker.key: marker for marker in markers}
            for key in self.mirror.keys():
                if key not in wanted:
                    entry = self.mirror.pop(key)
                    self.layer.remove_marker(entry.handle)
                    report.removed.append(key)
            for key, marker in wanted.items():
                entry = self.mirror.get(key)
                if entry is None:
                    self.mirror.put(key, MirrorEntry(marker=marker, handle=self.layer.add_marker(marker)))
                    report.added.append(key)
                elif entry.marker != marker:
                    self.layer.remove_marker(entry.handle)
                    self.mirror.put(key, MirrorEntry(marker=marker, handle=self.layer.add_marker(marker)))
                    report.replaced.append(key)

        if report.mutated:
            self.layer.invalidate_size()
            logger.debug(
                "Reconciled markers: +%d -%d ~%d (teardown=%s)",
                len(report.added),
                len(report.removed),
                len(report.replaced),
                report.teardown,
            )
        return report
