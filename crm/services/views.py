"""
Collection Views: read-only projections of the CRM collections.

Business logic for:
    - App scope:       contacts / deals / tasks restricted to one app (or "all")
    - Global search:   case-insensitive substring match on contacts and deals
    - Task filters:    status, contact and inclusive due-date window
    - Board grouping:  deals per pipeline stage, tasks per status
    - Dashboard:       won revenue, deal counts, per-stage totals
    - Task cards:      due-date badge, dependency titles, prerequisite options

Every function is pure: it takes the current collection snapshot and returns
new lists/dicts, never mutating its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from crm.models.entities import (
    App,
    Contact,
    Deal,
    DealStage,
    Task,
    TaskStatus,
    parse_date,
)

ALL_APPS = "all"

# Search activates once the query is longer than one character.
MIN_QUERY_LENGTH = 2

# Tasks due within this many days get the "due-soon" badge.
DUE_SOON_DAYS = 3


def _is_all(app_id) -> bool:
    return not app_id or app_id == ALL_APPS


def index_by_id(items) -> dict:
    """Return an ``{id: record}`` lookup for any entity list."""
    return {item.id: item for item in items}


# ── App scope ────────────────────────────────────────────────────────────────


def scope_contacts(contacts: list[Contact], app_id) -> list[Contact]:
    """Contacts linked to *app_id*; every contact when the scope is "all"."""
    if _is_all(app_id):
        return list(contacts)
    return [c for c in contacts if app_id in c.app_ids]


def scope_deals(deals: list[Deal], app_id) -> list[Deal]:
    if _is_all(app_id):
        return list(deals)
    return [d for d in deals if d.app_id == app_id]


def scope_tasks(tasks: list[Task], contacts: list[Contact], app_id) -> list[Task]:
    """Tasks whose contact belongs to the scoped app."""
    if _is_all(app_id):
        return list(tasks)
    contact_ids = {c.id for c in scope_contacts(contacts, app_id)}
    return [t for t in tasks if t.contact_id in contact_ids]


def selected_app_name(apps: list[App], app_id) -> str:
    if _is_all(app_id):
        return "All Apps"
    for app in apps:
        if app.id == app_id:
            return app.name
    return "Unknown App"


# ── Search ───────────────────────────────────────────────────────────────────


@dataclass
class SearchResults:
    contacts: list[Contact] = field(default_factory=list)
    deals: list[Deal] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.contacts and not self.deals

    def to_dict(self) -> dict:
        return {
            "contacts": [c.to_dict() for c in self.contacts],
            "deals": [d.to_dict() for d in self.deals],
        }


def search(contacts: list[Contact], deals: list[Deal], query: str | None) -> SearchResults:
    """Match contacts on name/email/company and deals on title.

    Results keep collection order. Queries of one character or less return
    empty results.
    """
    if not query or len(query) < MIN_QUERY_LENGTH:
        return SearchResults()
    needle = query.lower()
    matched_contacts = [
        c for c in contacts
        if needle in c.name.lower()
        or needle in c.email.lower()
        or needle in c.company.lower()
    ]
    matched_deals = [d for d in deals if needle in d.title.lower()]
    return SearchResults(contacts=matched_contacts, deals=matched_deals)


# ── Task filters ─────────────────────────────────────────────────────────────


@dataclass
class TaskFilters:
    """Saved task-list filter selection. Empty strings mean "no constraint"."""

    status: str = ""
    contact_id: str = ""
    start_date: str = ""
    end_date: str = ""

    _WIRE_KEYS = {
        "status": "status",
        "contactId": "contact_id",
        "startDate": "start_date",
        "endDate": "end_date",
    }

    @classmethod
    def from_dict(cls, data) -> "TaskFilters":
        """Build filters from the wire dict.

        Raises:
            TypeError: *data* is not a dict.
            ValueError: unknown status or malformed date.
        """
        if not isinstance(data, dict):
            raise TypeError(f"task filters must be an object, got {type(data).__name__}")
        values = {}
        for wire_key, attr in cls._WIRE_KEYS.items():
            raw = data.get(wire_key)
            values[attr] = str(raw).strip() if raw else ""
        filters = cls(**values)
        filters.validate()
        return filters

    def validate(self) -> None:
        if self.status and self.status not in {s.value for s in TaskStatus}:
            raise ValueError(f"unknown task status {self.status!r}")
        parse_date(self.start_date)
        parse_date(self.end_date)

    def merged(self, overrides: dict) -> "TaskFilters":
        """Return a copy with the wire keys present in *overrides* replaced."""
        data = self.to_dict()
        for wire_key in self._WIRE_KEYS:
            if wire_key in overrides:
                data[wire_key] = overrides[wire_key]
        return TaskFilters.from_dict(data)

    @property
    def is_empty(self) -> bool:
        return not (self.status or self.contact_id or self.start_date or self.end_date)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "contactId": self.contact_id,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


def filter_tasks(tasks: list[Task], filters: TaskFilters) -> list[Task]:
    """Apply every non-empty filter conjunctively; date bounds are inclusive."""
    start = parse_date(filters.start_date)
    end = parse_date(filters.end_date)
    result = []
    for task in tasks:
        if filters.status and task.status.value != filters.status:
            continue
        if filters.contact_id and task.contact_id != filters.contact_id:
            continue
        if start or end:
            due = parse_date(task.due_date)
            if due is None:
                continue
            if start and due < start:
                continue
            if end and due > end:
                continue
        result.append(task)
    return result


# ── Board grouping ───────────────────────────────────────────────────────────


def group_deals_by_stage(deals: list[Deal]) -> dict[DealStage, list[Deal]]:
    """One bucket per stage in pipeline order, largest amount first."""
    buckets: dict[DealStage, list[Deal]] = {stage: [] for stage in DealStage}
    for deal in deals:
        buckets[deal.stage].append(deal)
    return {
        stage: sorted(bucket, key=lambda d: d.amount, reverse=True)
        for stage, bucket in buckets.items()
    }


def group_tasks_by_status(tasks: list[Task]) -> dict[TaskStatus, list[Task]]:
    buckets: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        buckets[task.status].append(task)
    return buckets


def stage_totals(buckets: dict[DealStage, list[Deal]]) -> list[dict]:
    """Column header figures for the pipeline board."""
    return [
        {
            "stage": stage.value,
            "count": len(bucket),
            "totalValue": sum(d.amount for d in bucket),
        }
        for stage, bucket in buckets.items()
    ]


# ── Dashboard ────────────────────────────────────────────────────────────────


def dashboard_stats(deals: list[Deal], contacts: list[Contact]) -> dict:
    """Headline figures for the (already scoped) deals and contacts."""
    won = [d for d in deals if d.stage == DealStage.WON]
    total_revenue = sum(d.amount for d in won)
    return {
        "totalRevenue": total_revenue,
        "dealsWon": len(won),
        "newContacts": len(contacts),
        "avgDealValue": (total_revenue / len(won)) if won else 0,
    }


def contact_detail(contact: Contact, apps: list[App], deals: list[Deal], tasks: list[Task]) -> dict:
    """Contact record with its apps, deals and tasks."""
    return {
        "contact": contact.to_dict(),
        "apps": [a.to_dict() for a in apps if a.id in contact.app_ids],
        "deals": [d.to_dict() for d in deals if d.contact_id == contact.id],
        "tasks": [t.to_dict() for t in tasks if t.contact_id == contact.id],
    }


# ── Task cards ───────────────────────────────────────────────────────────────


def due_date_status(due_date, today: date | None = None) -> dict:
    """Badge for a task card: overdue, due within three days, or on time."""
    due = parse_date(due_date)
    if due is None:
        return {"status": "on-time", "label": ""}
    if today is None:
        today = datetime.now(timezone.utc).date()
    diff_days = (due - today).days
    if diff_days < 0:
        return {"status": "overdue", "label": "Overdue"}
    if diff_days <= DUE_SOON_DAYS:
        return {"status": "due-soon", "label": f"Due in {diff_days} day(s)"}
    return {"status": "on-time", "label": ""}


def dependency_titles(task: Task, tasks_by_id: dict[str, Task]) -> list[str]:
    """Titles of the task's prerequisites that still exist."""
    return [tasks_by_id[i].title for i in task.dependency_ids if i in tasks_by_id]


def dependency_candidates(tasks: list[Task], editing_id: str | None = None) -> list[Task]:
    """Tasks that may be picked as prerequisites: not the task itself, not Done."""
    return [
        t for t in tasks
        if t.id != editing_id and t.status != TaskStatus.DONE
    ]
