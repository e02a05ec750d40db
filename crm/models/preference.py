"""
Preference Model: scoped key/value storage.

Holds the per-scope UI preferences that must survive restarts:
    - dataSource:   "mock" | "live"         (app-wide scope)
    - taskFilters:  {status, contactId, startDate, endDate}  (client scope)
"""

from datetime import datetime, timezone

from crm.models import db


class Preference(db.Model):
    """One stored value per (scope, key)."""
    __tablename__ = "preferences"

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(100), nullable=False, default="default")
    key = db.Column(db.String(100), nullable=False)  # e.g. "dataSource"
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("scope", "key", name="uq_preference_scope_key"),
        db.Index("ix_preferences_scope", "scope"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "scope": self.scope,
            "key": self.key,
            "value": self.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Preference {self.scope}:{self.key}>"
