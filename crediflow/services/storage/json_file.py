"""
Local JSON Document Storage

DESIGN DECISION: The default backend is a single JSON document on disk,
holding the same three keys the browser version of CrediFlow kept in
localStorage:

    crediflow_cards      -> list of card records
    crediflow_payments   -> list of payment records
    crediflow_readiness  -> {"<bankGroupId>_<yyyy-MM>": bool}

Records are written with camelCase field names, so data exported from the
browser client loads unchanged.

Writes go to a temporary file in the same directory and are moved into
place with os.replace(), so a crash mid-write never leaves a truncated
document behind.
"""

import json
import os
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Union

import structlog
from pydantic import ValidationError

from crediflow.models.billing import Card, Payment
from crediflow.services.storage.interface import (
    BillingStorageInterface,
    StorageError,
)


CARDS_KEY = "crediflow_cards"
PAYMENTS_KEY = "crediflow_payments"
READINESS_KEY = "crediflow_readiness"


class JsonFileBillingStorage(BillingStorageInterface):
    """Key-value document storage backed by one JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._logger = structlog.get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not isinstance(document, dict):
            raise StorageError(f"Unexpected document shape in {self._path}")
        return document

    def _write_key(self, key: str, value: Any) -> None:
        document = self._read_document()
        document[key] = value

        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(document, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    def _load_records(self, key: str, model: type) -> list:
        records = []
        for raw in self._read_document().get(key, []):
            try:
                records.append(model.model_validate(raw))
            except ValidationError as e:
                # Skip malformed records, but loudly.
                self._logger.warning(
                    "malformed_record_skipped",
                    key=key,
                    record=raw,
                    error=str(e),
                )
        return records

    def load_cards(self) -> list[Card]:
        return self._load_records(CARDS_KEY, Card)

    def save_cards(self, cards: Sequence[Card]) -> None:
        self._write_key(
            CARDS_KEY,
            [card.model_dump(mode="json", by_alias=True, exclude_none=True) for card in cards],
        )

    def load_payments(self) -> list[Payment]:
        return self._load_records(PAYMENTS_KEY, Payment)

    def save_payments(self, payments: Sequence[Payment]) -> None:
        self._write_key(
            PAYMENTS_KEY,
            [
                payment.model_dump(mode="json", by_alias=True, exclude_none=True)
                for payment in payments
            ],
        )

    def load_readiness(self) -> dict[str, bool]:
        raw = self._read_document().get(READINESS_KEY, {})
        return {str(key): bool(value) for key, value in raw.items()}

    def save_readiness(self, readiness: Mapping[str, bool]) -> None:
        self._write_key(READINESS_KEY, dict(readiness))
