"""
CRM Hub entity records.

Records:
    - App:      product registered in the app registry (plan tier)
    - Contact:  person linked to one or more apps
    - Deal:     sales opportunity moving through the pipeline stages
    - Task:     to-do item assigned to a contact, optionally gated by other tasks

Architecture:
    App ◀──N:M── Contact   (via Contact.app_ids)
    Deal ──N:1──▶ Contact, Deal ──N:1──▶ App
    Task ──N:1──▶ Contact
    Task ──N:M──▶ Task     (via Task.dependency_ids, not validated)

Wire format:
    ``to_dict`` / ``from_dict`` translate between these records and the rows
    of the remote backend. Keys are the backend column names verbatim
    (``createdAt``, ``closeDate``, ``dueDate``, ``nextStep``, ``contactId``,
    ``appId``, ``app_ids``, ``avatarUrl``, ``dependencyIds``). ``from_dict``
    rejects rows with missing required fields or unknown enum values so a
    partially-typed row never reaches the in-memory collections.

Lifecycle states:
    Deal:   Lead In → Contact Made → Demo Scheduled → Proposal Sent → Won | Lost
    Task:   To Do → In Progress → Done   (free movement; Done is gated by
            dependency_service when prerequisites are incomplete)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from crm.core.exceptions import EntityMappingError


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════


class PlanTier(str, Enum):
    ENTERPRISE = "Enterprise"
    PRO = "Pro"
    FREE = "Free"


class DealStage(str, Enum):
    """Pipeline stages, in board column order."""
    LEAD_IN = "Lead In"
    CONTACT_MADE = "Contact Made"
    DEMO_SCHEDULED = "Demo Scheduled"
    PROPOSAL_SENT = "Proposal Sent"
    WON = "Won"
    LOST = "Lost"


class TaskStatus(str, Enum):
    """Task board columns, in display order."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


PROBABILITY_MIN = 0
PROBABILITY_MAX = 100


# ── Mapping helpers ──────────────────────────────────────────────────────────


def _require(row: Any, entity: str, fields: tuple[str, ...]) -> None:
    if not isinstance(row, dict):
        raise EntityMappingError(entity, {"row": f"expected an object, got {type(row).__name__}"})
    missing = {f: "missing" for f in fields if row.get(f) is None}
    if missing:
        raise EntityMappingError(entity, missing)


def _to_enum(enum_cls, value, entity: str, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise EntityMappingError(
            entity, {field_name: f"{value!r} is not one of: {allowed}"},
        ) from None


def _to_number(value, entity: str, field_name: str) -> int | float:
    if isinstance(value, bool):
        raise EntityMappingError(entity, {field_name: "expected a number"})
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise EntityMappingError(entity, {field_name: f"{value!r} is not a number"}) from None
    if not math.isfinite(number):
        raise EntityMappingError(entity, {field_name: f"{value!r} is not a finite number"})
    if isinstance(value, str) and number.is_integer():
        return int(number)
    return number


def parse_date(value) -> date | None:
    """Convert a date / datetime / ISO string to a calendar date (UTC).

    ``"2023-07-20"`` and ``"2023-07-20T00:00:00Z"`` both map to
    ``date(2023, 7, 20)``. Empty values return None; malformed strings
    raise ValueError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if "T" in text or " " in text:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    return date.fromisoformat(text[:10])


def _to_date_string(value, entity: str, field_name: str) -> str:
    """Keep the wire string, but only if it reads as an ISO date."""
    if not value:
        return ""
    try:
        parse_date(value)
    except (TypeError, ValueError):
        raise EntityMappingError(entity, {field_name: f"{value!r} is not an ISO-8601 date"}) from None
    return str(value)


def _to_id_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(v) for v in value]


def clamp_probability(value: int | float) -> int:
    """Round and clamp a win probability into [0, 100]."""
    return int(min(PROBABILITY_MAX, max(PROBABILITY_MIN, round(value))))


# ═════════════════════════════════════════════════════════════════════════════
# 1. App
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class App:
    id: str
    name: str
    plan: PlanTier = PlanTier.PRO
    created_at: str = ""

    @classmethod
    def from_dict(cls, row: dict) -> "App":
        _require(row, "App", ("id", "name", "plan"))
        return cls(
            id=str(row["id"]),
            name=row["name"],
            plan=_to_enum(PlanTier, row["plan"], "App", "plan"),
            created_at=row.get("createdAt") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "plan": self.plan.value,
            "createdAt": self.created_at,
        }


# ═════════════════════════════════════════════════════════════════════════════
# 2. Contact
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Contact:
    id: str
    name: str
    email: str
    company: str = ""
    app_ids: list[str] = field(default_factory=list)
    avatar_url: str = ""
    created_at: str = ""

    @classmethod
    def from_dict(cls, row: dict) -> "Contact":
        _require(row, "Contact", ("id", "name", "email"))
        return cls(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            company=row.get("company") or "",
            app_ids=_to_id_list(row.get("app_ids")),
            avatar_url=row.get("avatarUrl") or "",
            created_at=row.get("createdAt") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "app_ids": list(self.app_ids),
            "avatarUrl": self.avatar_url,
            "createdAt": self.created_at,
        }


# ═════════════════════════════════════════════════════════════════════════════
# 3. Deal
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Deal:
    """
    Sales opportunity.
    ``amount`` is never negative and ``probability`` always lies in [0, 100];
    both are normalised on construction.
    """

    id: str
    title: str
    amount: int | float
    stage: DealStage
    contact_id: str = ""
    app_id: str = ""
    close_date: str = ""
    probability: int = 0
    next_step: str = ""

    def __post_init__(self):
        self.amount = max(0, self.amount)
        self.probability = clamp_probability(self.probability)

    @classmethod
    def from_dict(cls, row: dict) -> "Deal":
        _require(row, "Deal", ("id", "title", "amount", "stage"))
        probability = row.get("probability")
        return cls(
            id=str(row["id"]),
            title=row["title"],
            amount=_to_number(row["amount"], "Deal", "amount"),
            stage=_to_enum(DealStage, row["stage"], "Deal", "stage"),
            contact_id=str(row.get("contactId") or ""),
            app_id=str(row.get("appId") or ""),
            close_date=_to_date_string(row.get("closeDate"), "Deal", "closeDate"),
            probability=_to_number(probability, "Deal", "probability") if probability is not None else 0,
            next_step=row.get("nextStep") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "stage": self.stage.value,
            "contactId": self.contact_id,
            "appId": self.app_id,
            "closeDate": self.close_date,
            "probability": self.probability,
            "nextStep": self.next_step,
        }


# ═════════════════════════════════════════════════════════════════════════════
# 4. Task
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Task:
    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    description: str = ""
    due_date: str = ""
    contact_id: str = ""
    dependency_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, row: dict) -> "Task":
        _require(row, "Task", ("id", "title", "status"))
        return cls(
            id=str(row["id"]),
            title=row["title"],
            status=_to_enum(TaskStatus, row["status"], "Task", "status"),
            description=row.get("description") or "",
            due_date=_to_date_string(row.get("dueDate"), "Task", "dueDate"),
            contact_id=str(row.get("contactId") or ""),
            dependency_ids=_to_id_list(row.get("dependencyIds")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date,
            "status": self.status.value,
            "contactId": self.contact_id,
            "dependencyIds": list(self.dependency_ids),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title[:40]} [{self.status.value}]>"
