import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

from pydantic import ValidationError

from module_2_field_mapping.core.models import Marker, MarkerDocument

logger = logging.getLogger(__name__)


class DocumentStoreError(RuntimeError):
    """Raised when the marker document store cannot be read or written."""


class JsonDocumentStore:
    """Persist one marker document per user identity in a JSON file.

    Documents are replaced wholesale on save; there is no partial patching.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self, user_id: str) -> Optional[MarkerDocument]:
        raw = self._read_all().get(user_id)
        if raw is None:
            return None
        if isinstance(raw, list):
            raw = {"markers": raw}
        try:
            return MarkerDocument.model_validate({"user_id": user_id, **raw})
        except (TypeError, ValidationError) as exc:
            raise DocumentStoreError(f"Marker document for '{user_id}' is invalid: {exc}") from exc

    def save(self, user_id: str, markers: Iterable[Marker]) -> MarkerDocument:
        document = MarkerDocument(
            user_id=user_id,
            markers=list(markers),
            updated_at=datetime.now(timezone.utc),
        )
        records = self._read_all()
        records[user_id] = json.loads(document.model_dump_json(exclude={"user_id"}))
        try:
            self.path.write_text(json.dumps(records, indent=2))
        except OSError as exc:
            raise DocumentStoreError(f"Unable to write {self.path}: {exc}") from exc
        return document

    def delete(self, user_id: str) -> None:
        records = self._read_all()
        if records.pop(user_id, None) is None:
            return
        try:
            self.path.write_text(json.dumps(records, indent=2))
        except OSError as exc:
            raise DocumentStoreError(f"Unable to write {self.path}: {exc}") from exc

    def _read_all(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text())
        except OSError as exc:
            raise DocumentStoreError(f"Unable to read {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise DocumentStoreError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise DocumentStoreError(f"{self.path} does not contain a document mapping")
        return payload
