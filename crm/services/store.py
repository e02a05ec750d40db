"""
CRM Store: the data source adapter.

Owns the four in-memory collections (apps, contacts, deals, tasks) and routes
every read and mutation to one of two interchangeable backends:

    mock   static in-memory dataset (``crm.data.mock_data``); ids and
           timestamps are synthesised locally
    live   hosted relational backend reached through ``RestGateway``; the
           backend-returned row is merged into the collection

Business rules:
    - Mode selection: the ``dataSource`` preference is read once at
      construction and written on every change; every mode change reloads
      all four collections.
    - Live ordering: apps/contacts by createdAt desc, deals by closeDate
      desc, tasks by dueDate desc.
    - Load fallback: any failed collection fetch (transport error, non-2xx,
      unmappable row) switches the mode to mock and loads the static dataset.
      One fallback per failed load, never a retry loop.
    - Mutation failure (live): logged, collection untouched,
      RemoteBackendError raised to the caller.
    - No locking: last write wins on overlapping edits.

The store is created by the application factory and attached to the Flask
app as ``app.extensions["crm_store"]``; nothing imports a global instance.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from crm.core.exceptions import (
    EntityMappingError,
    NotFoundError,
    RemoteBackendError,
    ValidationError,
)
from crm.data.mock_data import load_mock_dataset
from crm.models.entities import App, Contact, Deal, Task

logger = logging.getLogger(__name__)

MODE_MOCK = "mock"
MODE_LIVE = "live"
DATA_SOURCES = (MODE_MOCK, MODE_LIVE)

DATA_SOURCE_KEY = "dataSource"

AVATAR_URL_TEMPLATE = "https://picsum.photos/seed/{seed}/100/100"


@dataclass(frozen=True)
class CollectionSpec:
    """How one entity collection maps onto its remote table."""
    name: str
    entity: type
    label: str
    id_prefix: str
    order_by: str
    stamps_created_at: bool = False

    @property
    def table(self) -> str:
        return self.name


COLLECTIONS: dict[str, CollectionSpec] = {
    "apps": CollectionSpec("apps", App, "App", "app", "createdAt", stamps_created_at=True),
    "contacts": CollectionSpec("contacts", Contact, "Contact", "contact", "createdAt", stamps_created_at=True),
    "deals": CollectionSpec("deals", Deal, "Deal", "deal", "closeDate"),
    "tasks": CollectionSpec("tasks", Task, "Task", "task", "dueDate"),
}


def _now_millis() -> int:
    return int(time.time() * 1000)


def _utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with a ``Z`` suffix (millisecond precision)."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class CRMStore:
    """Dual-mode (mock / live) CRUD facade over the CRM collections.

    Args:
        gateway: RestGateway for the live backend. An unconfigured gateway
            keeps the store mock-only.
        preferences: Key/value storage with ``get(key, default)`` and
            ``set(key, value)`` (``ScopedPreferences`` in the app).
        default_mode: Mode used when no preference has been stored yet.
        dataset_loader: Callable returning the static dataset; tests may
            substitute a smaller one.
    """

    def __init__(self, gateway, preferences, *, default_mode=MODE_MOCK, dataset_loader=load_mock_dataset):
        self.gateway = gateway
        self.preferences = preferences
        self._load_dataset = dataset_loader
        self._collections: dict[str, list] = {name: [] for name in COLLECTIONS}
        self.loading = False
        self.last_load_error: str | None = None

        stored = preferences.get(DATA_SOURCE_KEY, default_mode)
        if stored not in DATA_SOURCES:
            logger.warning("Ignoring unknown stored data source %r", stored)
            stored = MODE_MOCK
        self.mode = stored
        self.load()

    # ── Mode ─────────────────────────────────────────────────────────────────

    @property
    def live_available(self) -> bool:
        return bool(self.gateway is not None and self.gateway.configured)

    @property
    def is_live(self) -> bool:
        return self.mode == MODE_LIVE and self.live_available

    def set_mode(self, mode: str) -> str:
        """Persist a new data source and reload every collection.

        Returns the effective mode, which is ``mock`` when the live backend
        failed to load or is not configured.
        """
        if mode not in DATA_SOURCES:
            raise ValidationError(
                f"Unknown data source {mode!r}",
                details={"mode": f"must be one of: {', '.join(DATA_SOURCES)}"},
            )
        logger.info("Data source change requested: %s → %s", self.mode, mode)
        self._persist_mode(mode)
        self.load()
        return self.mode

    def _persist_mode(self, mode: str) -> None:
        self.mode = mode
        self.preferences.set(DATA_SOURCE_KEY, mode)

    # ── Loading ──────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Full load of all four collections from the current backend."""
        self.loading = True
        try:
            if self.mode == MODE_LIVE and not self.live_available:
                logger.warning("Live data source selected but the backend is not configured; using mock data")
                self._persist_mode(MODE_MOCK)

            if self.mode == MODE_LIVE:
                try:
                    loaded = self._fetch_live()
                except (RemoteBackendError, EntityMappingError) as exc:
                    logger.error("Error fetching live data, falling back to mock data: %s", exc)
                    self.last_load_error = str(exc)
                    self._apply(self._load_dataset())
                    self._persist_mode(MODE_MOCK)
                    return
                self._apply(loaded)
                self.last_load_error = None
                logger.info("Live data loaded: %s", self.counts())
            else:
                self._apply(self._load_dataset())
                logger.info("Mock data loaded: %s", self.counts())
        finally:
            self.loading = False

    def _fetch_live(self) -> dict[str, list]:
        loaded = {}
        for name, spec in COLLECTIONS.items():
            result = self.gateway.select_all(spec.table, order_by=spec.order_by)
            if not result.ok:
                raise RemoteBackendError("select", spec.table, result.error)
            loaded[name] = [spec.entity.from_dict(row) for row in result.rows]
        return loaded

    def _apply(self, loaded: dict[str, list]) -> None:
        for name in COLLECTIONS:
            self._collections[name] = list(loaded.get(name, []))

    def reset(self) -> None:
        """Switch to mock mode and restore the static dataset."""
        self._persist_mode(MODE_MOCK)
        self.last_load_error = None
        self.load()

    # ── Reads ────────────────────────────────────────────────────────────────

    def records(self, name: str) -> list:
        return list(self._collections[name])

    def get(self, name: str, record_id: str):
        for record in self._collections[name]:
            if record.id == record_id:
                return record
        raise NotFoundError(COLLECTIONS[name].label, record_id)

    def snapshot(self) -> dict[str, list]:
        return {name: list(records) for name, records in self._collections.items()}

    def counts(self) -> dict[str, int]:
        return {name: len(records) for name, records in self._collections.items()}

    def status(self) -> dict:
        return {
            "mode": self.mode,
            "loading": self.loading,
            "liveAvailable": self.live_available,
            "lastLoadError": self.last_load_error,
            "counts": self.counts(),
        }

    def list_apps(self) -> list[App]:
        return self.records("apps")

    def list_contacts(self) -> list[Contact]:
        return self.records("contacts")

    def list_deals(self) -> list[Deal]:
        return self.records("deals")

    def list_tasks(self) -> list[Task]:
        return self.records("tasks")

    def tasks_by_id(self) -> dict[str, Task]:
        return {t.id: t for t in self._collections["tasks"]}

    # ── Generic mutations ────────────────────────────────────────────────────

    def _index_of(self, name: str, record_id: str) -> int:
        for i, record in enumerate(self._collections[name]):
            if record.id == record_id:
                return i
        raise NotFoundError(COLLECTIONS[name].label, record_id)

    def _next_id(self, spec: CollectionSpec) -> str:
        existing = {r.id for r in self._collections[spec.name]}
        millis = _now_millis()
        candidate = f"{spec.id_prefix}_{millis}"
        while candidate in existing:
            millis += 1
            candidate = f"{spec.id_prefix}_{millis}"
        return candidate

    def _map_remote(self, spec: CollectionSpec, operation: str, result):
        if not result.ok or not result.rows:
            reason = result.error or "backend returned no row"
            logger.error("Error on %s %s: %s", operation, spec.label, reason)
            raise RemoteBackendError(operation, spec.table, reason)
        try:
            return spec.entity.from_dict(result.rows[0])
        except EntityMappingError as exc:
            logger.error("Backend returned an invalid %s row on %s: %s", spec.label, operation, exc)
            raise RemoteBackendError(operation, spec.table, str(exc)) from exc

    def add(self, name: str, data: dict):
        """Create a record from *data* (any ``id`` is ignored) and return it."""
        spec = COLLECTIONS[name]
        payload = {k: v for k, v in data.items() if k != "id"}

        if self.is_live:
            # Validate and normalise before anything is sent.
            row = spec.entity.from_dict({**payload, "id": "pending"}).to_dict()
            row.pop("id")
            if spec.stamps_created_at and not row.get("createdAt"):
                row.pop("createdAt", None)
            record = self._map_remote(spec, "insert", self.gateway.insert(spec.table, row))
        else:
            if spec.stamps_created_at:
                payload["createdAt"] = _utc_timestamp()
            record = spec.entity.from_dict({**payload, "id": self._next_id(spec)})

        self._collections[name].insert(0, record)
        logger.info("%s created id=%s mode=%s", spec.label, record.id, self.mode)
        return record

    def edit(self, name: str, record):
        """Replace the record with the same id; returns the stored version."""
        spec = COLLECTIONS[name]
        index = self._index_of(name, record.id)

        if self.is_live:
            result = self.gateway.update(spec.table, record.id, record.to_dict())
            record = self._map_remote(spec, "update", result)

        self._collections[name][index] = record
        logger.info("%s updated id=%s mode=%s", spec.label, record.id, self.mode)
        return record

    def delete(self, name: str, record_id: str) -> None:
        spec = COLLECTIONS[name]
        index = self._index_of(name, record_id)

        if self.is_live:
            result = self.gateway.delete(spec.table, record_id)
            if not result.ok:
                logger.error("Error deleting %s id=%s: %s", spec.label, record_id, result.error)
                raise RemoteBackendError("delete", spec.table, result.error)

        del self._collections[name][index]
        logger.info("%s deleted id=%s mode=%s", spec.label, record_id, self.mode)

    # ── Entity-specific entry points ─────────────────────────────────────────

    def add_app(self, data: dict) -> App:
        return self.add("apps", data)

    def add_contact(self, data: dict) -> Contact:
        """New contacts always get a generated avatar reference."""
        data = dict(data)
        data["avatarUrl"] = AVATAR_URL_TEMPLATE.format(seed=_now_millis())
        return self.add("contacts", data)

    def add_deal(self, data: dict) -> Deal:
        return self.add("deals", data)

    def add_task(self, data: dict) -> Task:
        return self.add("tasks", data)

    def edit_app(self, app: App) -> App:
        return self.edit("apps", app)

    def edit_contact(self, contact: Contact) -> Contact:
        return self.edit("contacts", contact)

    def edit_deal(self, deal: Deal) -> Deal:
        return self.edit("deals", deal)

    def edit_task(self, task: Task) -> Task:
        return self.edit("tasks", task)

    def delete_app(self, app_id: str) -> None:
        self.delete("apps", app_id)

    def delete_contact(self, contact_id: str) -> None:
        self.delete("contacts", contact_id)

    def delete_deal(self, deal_id: str) -> None:
        self.delete("deals", deal_id)

    def delete_task(self, task_id: str) -> None:
        self.delete("tasks", task_id)
