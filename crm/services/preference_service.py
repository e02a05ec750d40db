"""
Preference Service: scoped key/value storage for UI state.

Stored keys:
    dataSource   "mock" | "live"                               (app-wide scope, owned by the store)
    taskFilters  {"status", "contactId", "startDate", "endDate"} (client scope)

Values are read through ``ScopedPreferences`` so the data source adapter can
be handed a storage object instead of reaching for the database itself.
"""

import logging

from crm.models import db
from crm.models.preference import Preference
from crm.services.views import TaskFilters

logger = logging.getLogger(__name__)

TASK_FILTERS_KEY = "taskFilters"


# ── Raw key/value access ─────────────────────────────────────────────────


def get_value(scope, key, default=None):
    """Return the stored value for (scope, key), or *default*."""
    pref = Preference.query.filter_by(scope=scope, key=key).first()
    if pref is None or pref.value is None:
        return default
    return pref.value


def set_value(scope, key, value):
    """Create or overwrite the value for (scope, key)."""
    pref = Preference.query.filter_by(scope=scope, key=key).first()
    if pref:
        pref.value = value
    else:
        pref = Preference(scope=scope, key=key, value=value)
        db.session.add(pref)
    db.session.commit()
    logger.debug("Preference %s:%s saved", scope, key)
    return pref


def delete_value(scope, key):
    """Remove (scope, key). Returns True if a row was deleted."""
    pref = Preference.query.filter_by(scope=scope, key=key).first()
    if not pref:
        return False
    db.session.delete(pref)
    db.session.commit()
    return True


class ScopedPreferences:
    """Key/value view bound to one scope."""

    def __init__(self, scope: str = "default") -> None:
        self.scope = scope

    def get(self, key, default=None):
        return get_value(self.scope, key, default)

    def set(self, key, value):
        set_value(self.scope, key, value)

    def delete(self, key):
        return delete_value(self.scope, key)


# ── Task filters ─────────────────────────────────────────────────────────


def get_task_filters(scope) -> TaskFilters:
    """Return the saved task filters for a client scope.

    A missing or unreadable stored value yields the default (empty) filters.
    """
    raw = get_value(scope, TASK_FILTERS_KEY)
    if raw is None:
        return TaskFilters()
    try:
        return TaskFilters.from_dict(raw)
    except (TypeError, ValueError, AttributeError):
        logger.warning("Discarding unreadable task filters for scope=%s", scope)
        return TaskFilters()


def save_task_filters(scope, filters: TaskFilters) -> TaskFilters:
    set_value(scope, TASK_FILTERS_KEY, filters.to_dict())
    return filters


def clear_task_filters(scope) -> TaskFilters:
    """Reset a client's filters to the defaults."""
    return save_task_filters(scope, TaskFilters())
