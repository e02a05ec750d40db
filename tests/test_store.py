"""Unit tests for crm.services.store.CRMStore (data source adapter).

Test strategy
-------------
Live mode talks to a RestGateway whose requests.Session is a MagicMock, so
no remote backend is needed. Preferences are held in the dict-backed
``memory_prefs`` fixture.

Coverage
--------
    1. Mode selection from the stored preference (default, unknown, unconfigured)
    2. Live load ordering and mapping
    3. Load fallback to mock data (transport error, HTTP error, bad row, bad date)
    4. Mode switching reloads every collection
    5. Mock mutations: fresh ids, createdAt / avatar defaults, front insert
    6. Live mutations: backend row merged, failures leave state untouched
    7. reset() restores the demo dataset
"""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest
import requests

from crm.core.exceptions import NotFoundError, RemoteBackendError, ValidationError
from crm.data.mock_data import MOCK_APPS, MOCK_CONTACTS, MOCK_DEALS, MOCK_TASKS
from crm.integrations.rest_gateway import RestGateway
from crm.models.entities import DealStage, Task, TaskStatus
from crm.services.store import CRMStore

BACKEND = "https://crm.example.test"

LIVE_ROWS = {
    "apps": [{"id": "a-1", "name": "Remote App", "plan": "Pro", "createdAt": "2024-01-02T00:00:00Z"}],
    "contacts": [{"id": "c-1", "name": "Remote Contact", "email": "rc@example.test",
                  "company": "Remote Co", "app_ids": ["a-1"], "createdAt": "2024-01-03T00:00:00Z"}],
    "deals": [{"id": "d-1", "title": "Remote Deal", "amount": 900, "stage": "Won",
               "contactId": "c-1", "appId": "a-1", "closeDate": "2024-02-01T00:00:00Z"}],
    "tasks": [{"id": "t-1", "title": "Remote Task", "status": "To Do", "dueDate": "2024-02-10",
               "contactId": "c-1"}],
}

MOCK_COUNTS = {
    "apps": len(MOCK_APPS),
    "contacts": len(MOCK_CONTACTS),
    "deals": len(MOCK_DEALS),
    "tasks": len(MOCK_TASKS),
}


# ── Helper factories ─────────────────────────────────────────────────────────


def _response(status=200, body=None):
    """Build a requests.Response stand-in."""
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.content = b"" if body is None else b"[]"
    resp.json.return_value = body
    resp.text = "" if resp.ok else "backend exploded"
    return resp


def _table_of(url):
    return url.rsplit("/", 1)[-1]


def _live_session(rows=None, fail_table=None, raise_on=None):
    """Session answering GETs per table; one table may fail."""
    rows = LIVE_ROWS if rows is None else rows
    session = MagicMock()

    def _request(method, url, **kwargs):
        table = _table_of(url)
        if table == raise_on:
            raise requests.ConnectionError("connection refused")
        if table == fail_table:
            return _response(500)
        return _response(200, rows.get(table, []))

    session.request.side_effect = _request
    return session


def _gateway(session):
    return RestGateway(BACKEND, "anon-key", session=session)


def _live_store(memory_prefs, session=None):
    memory_prefs.set("dataSource", "live")
    session = session or _live_session()
    store = CRMStore(_gateway(session), memory_prefs)
    assert store.mode == "live"
    return store, session


def _respond_once(session, status=200, body=None):
    """Replace the routing side effect with a single canned response."""
    session.request.side_effect = None
    session.request.reset_mock()
    session.request.return_value = _response(status, body)


# ── Mode selection ───────────────────────────────────────────────────────────


class TestModeSelection:

    def test_defaults_to_mock_with_demo_dataset(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        assert store.mode == "mock"
        assert store.counts() == MOCK_COUNTS

    def test_unknown_stored_value_is_ignored(self, memory_prefs):
        memory_prefs.set("dataSource", "cloud")
        store = CRMStore(RestGateway(), memory_prefs)
        assert store.mode == "mock"

    def test_live_preference_without_configuration_runs_mock(self, memory_prefs):
        memory_prefs.set("dataSource", "live")
        store = CRMStore(RestGateway("", ""), memory_prefs)
        assert store.mode == "mock"
        assert store.live_available is False
        assert memory_prefs.get("dataSource") == "mock"
        assert store.counts() == MOCK_COUNTS

    def test_unconfigured_gateway_never_touches_network(self, memory_prefs):
        session = MagicMock()
        memory_prefs.set("dataSource", "live")
        CRMStore(RestGateway(None, None, session=session), memory_prefs)
        session.request.assert_not_called()

    def test_set_mode_rejects_unknown_value(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        with pytest.raises(ValidationError):
            store.set_mode("sqlite")
        assert store.mode == "mock"


# ── Live load ────────────────────────────────────────────────────────────────


class TestLiveLoad:

    def test_loads_every_collection_from_backend(self, memory_prefs):
        store, _ = _live_store(memory_prefs)
        assert [a.id for a in store.list_apps()] == ["a-1"]
        assert [c.id for c in store.list_contacts()] == ["c-1"]
        assert store.list_deals()[0].stage == DealStage.WON
        assert store.list_tasks()[0].dependency_ids == []
        assert store.last_load_error is None

    def test_orders_each_table_descending(self, memory_prefs):
        _, session = _live_store(memory_prefs)
        orders = {
            _table_of(c.args[1]): c.kwargs["params"]["order"]
            for c in session.request.call_args_list
        }
        assert orders == {
            "apps": "createdAt.desc",
            "contacts": "createdAt.desc",
            "deals": "closeDate.desc",
            "tasks": "dueDate.desc",
        }

    def test_sends_api_key_headers(self, memory_prefs):
        _, session = _live_store(memory_prefs)
        headers = session.request.call_args_list[0].kwargs["headers"]
        assert headers["apikey"] == "anon-key"
        assert headers["Authorization"] == "Bearer anon-key"


class TestLoadFallback:

    def test_http_error_falls_back_to_mock(self, memory_prefs):
        memory_prefs.set("dataSource", "live")
        session = _live_session(fail_table="deals")
        store = CRMStore(_gateway(session), memory_prefs)

        assert store.mode == "mock"
        assert memory_prefs.get("dataSource") == "mock"
        assert store.counts() == MOCK_COUNTS
        assert "HTTP 500" in store.last_load_error

    def test_fallback_is_not_a_retry_loop(self, memory_prefs):
        memory_prefs.set("dataSource", "live")
        session = _live_session(fail_table="deals")
        CRMStore(_gateway(session), memory_prefs)
        # apps, contacts, then the failing deals fetch; nothing after
        assert session.request.call_count == 3

    def test_network_error_falls_back_to_mock(self, memory_prefs):
        memory_prefs.set("dataSource", "live")
        store = CRMStore(_gateway(_live_session(raise_on="apps")), memory_prefs)
        assert store.mode == "mock"
        assert store.counts() == MOCK_COUNTS

    def test_unmappable_row_falls_back_to_mock(self, memory_prefs):
        rows = dict(LIVE_ROWS)
        rows["tasks"] = [{"id": "t-9", "title": "Broken", "status": "Blocked"}]
        memory_prefs.set("dataSource", "live")
        store = CRMStore(_gateway(_live_session(rows=rows)), memory_prefs)
        assert store.mode == "mock"
        assert store.get("tasks", "task_1").title == "Follow up with Alice"

    def test_row_missing_required_column_falls_back(self, memory_prefs):
        rows = dict(LIVE_ROWS)
        rows["apps"] = [{"id": "a-2", "plan": "Pro"}]
        memory_prefs.set("dataSource", "live")
        store = CRMStore(_gateway(_live_session(rows=rows)), memory_prefs)
        assert store.mode == "mock"

    def test_malformed_due_date_falls_back(self, memory_prefs):
        rows = dict(LIVE_ROWS)
        rows["tasks"] = [{"id": "t-9", "title": "Someday", "status": "To Do", "dueDate": "next friday"}]
        memory_prefs.set("dataSource", "live")
        store = CRMStore(_gateway(_live_session(rows=rows)), memory_prefs)
        assert store.mode == "mock"
        assert "dueDate" in store.last_load_error
        assert store.counts() == MOCK_COUNTS

    def test_non_finite_amount_falls_back(self, memory_prefs):
        rows = dict(LIVE_ROWS)
        rows["deals"] = [{**LIVE_ROWS["deals"][0], "amount": float("inf")}]
        memory_prefs.set("dataSource", "live")
        store = CRMStore(_gateway(_live_session(rows=rows)), memory_prefs)
        assert store.mode == "mock"


# ── Mode switching ───────────────────────────────────────────────────────────


class TestSetMode:

    def test_switch_to_live_reloads_and_persists(self, memory_prefs):
        store = CRMStore(_gateway(_live_session()), memory_prefs)
        assert store.mode == "mock"

        assert store.set_mode("live") == "live"
        assert memory_prefs.get("dataSource") == "live"
        assert store.counts() == {"apps": 1, "contacts": 1, "deals": 1, "tasks": 1}

    def test_switch_to_unreachable_live_reverts_to_mock_dataset(self, memory_prefs):
        store = CRMStore(_gateway(_live_session(raise_on="apps")), memory_prefs)
        store.add_app({"name": "Local only", "plan": "Free"})

        assert store.set_mode("live") == "mock"
        assert memory_prefs.get("dataSource") == "mock"
        assert store.counts() == MOCK_COUNTS
        assert [a.id for a in store.list_apps()] == [r["id"] for r in MOCK_APPS]

    def test_switch_back_to_mock_restores_demo_data(self, memory_prefs):
        store, _ = _live_store(memory_prefs)
        assert store.set_mode("mock") == "mock"
        assert store.counts() == MOCK_COUNTS

    def test_status_payload(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        status = store.status()
        assert status["mode"] == "mock"
        assert status["loading"] is False
        assert status["liveAvailable"] is False
        assert status["counts"] == MOCK_COUNTS


# ── Mock mutations ───────────────────────────────────────────────────────────


class TestMockMutations:

    def test_add_assigns_unseen_id_and_inserts_at_front(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        before = {d.id for d in store.list_deals()}
        deal = store.add_deal({
            "title": "Expansion", "amount": 3000, "stage": "Lead In",
            "contactId": "contact_1", "appId": "app_1", "id": "deal_1",
        })
        assert deal.id not in before
        assert deal.id.startswith("deal_")
        assert store.list_deals()[0].id == deal.id

    def test_ids_stay_unique_within_the_same_millisecond(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        with patch("crm.services.store._now_millis", return_value=1700000000000):
            first = store.add_app({"name": "One", "plan": "Pro"})
            second = store.add_app({"name": "Two", "plan": "Pro"})
        assert first.id == "app_1700000000000"
        assert second.id == "app_1700000000001"

    def test_add_app_stamps_created_at(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        app = store.add_app({"name": "Stamped", "plan": "Free"})
        assert app.created_at.endswith("Z")

    def test_add_contact_generates_avatar(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        contact = store.add_contact({
            "name": "Gina", "email": "gina@example.test", "company": "G Co",
            "app_ids": ["app_1"], "avatarUrl": "https://elsewhere.test/x.png",
        })
        assert contact.avatar_url.startswith("https://picsum.photos/seed/")
        assert contact.avatar_url.endswith("/100/100")

    def test_edit_replaces_in_place(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        position = [t.id for t in store.list_tasks()].index("task_4")
        edited = Task(id="task_4", title="Call Bob", status=TaskStatus.IN_PROGRESS)
        store.edit_task(edited)
        assert store.list_tasks()[position] == edited

    def test_edit_unknown_id_raises(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        with pytest.raises(NotFoundError):
            store.edit_task(Task(id="task_404", title="Ghost"))

    def test_delete_removes_record(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        store.delete_contact("contact_2")
        assert "contact_2" not in [c.id for c in store.list_contacts()]

    def test_delete_unknown_id_raises(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        with pytest.raises(NotFoundError):
            store.delete_deal("deal_404")

    def test_mutations_do_not_leak_into_the_demo_dataset(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        store.delete_task("task_1")
        store.load()
        assert store.counts() == MOCK_COUNTS

    def test_list_returns_a_copy(self, memory_prefs):
        store = CRMStore(RestGateway(), memory_prefs)
        store.list_apps().clear()
        assert len(store.list_apps()) == len(MOCK_APPS)


# ── Live mutations ───────────────────────────────────────────────────────────


class TestLiveMutations:

    def test_add_posts_row_without_id_and_merges_backend_row(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        stored = {"id": "t-2", "title": "New", "status": "To Do", "dueDate": "2024-03-01",
                  "contactId": "c-1", "dependencyIds": []}
        _respond_once(session, 201, [stored])

        task = store.add_task({"id": "client-id", "title": "New", "status": "To Do",
                               "dueDate": "2024-03-01", "contactId": "c-1"})

        method, url = session.request.call_args.args
        assert method == "POST"
        assert url == f"{BACKEND}/rest/v1/tasks"
        sent = session.request.call_args.kwargs["json"]
        assert len(sent) == 1 and "id" not in sent[0]
        assert session.request.call_args.kwargs["headers"]["Prefer"] == "return=representation"
        assert task.id == "t-2"
        assert store.list_tasks()[0].id == "t-2"

    def test_add_leaves_created_at_to_the_backend(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        _respond_once(session, 201, [{"id": "a-2", "name": "B", "plan": "Free",
                                      "createdAt": "2024-04-01T00:00:00Z"}])
        store.add_app({"name": "B", "plan": "Free"})
        assert "createdAt" not in session.request.call_args.kwargs["json"][0]

    def test_add_failure_leaves_collection_untouched(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        before = store.list_deals()
        _respond_once(session, 500)
        with pytest.raises(RemoteBackendError):
            store.add_deal({"title": "X", "amount": 1, "stage": "Won"})
        assert store.list_deals() == before

    def test_add_with_no_returned_row_is_a_failure(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        _respond_once(session, 201, [])
        with pytest.raises(RemoteBackendError):
            store.add_app({"name": "Ghost", "plan": "Pro"})
        assert len(store.list_apps()) == 1

    def test_add_invalid_payload_never_reaches_backend(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        session.request.reset_mock()
        with pytest.raises(ValidationError):
            store.add_task({"title": "Bad", "status": "Someday"})
        session.request.assert_not_called()

    def test_edit_patches_by_id_and_uses_returned_row(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        returned = dict(LIVE_ROWS["deals"][0], amount=1200, probability=80)
        _respond_once(session, 200, [returned])

        saved = store.edit_deal(replace(store.get("deals", "d-1"), amount=1100))

        assert session.request.call_args.args[0] == "PATCH"
        assert session.request.call_args.kwargs["params"] == {"id": "eq.d-1"}
        assert saved.amount == 1200
        assert store.get("deals", "d-1").probability == 80

    def test_edit_failure_leaves_record_untouched(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        _respond_once(session, 404)
        app = store.get("apps", "a-1")
        with pytest.raises(RemoteBackendError):
            store.edit_app(replace(app, name="Renamed"))
        assert store.get("apps", "a-1").name == "Remote App"

    def test_delete_removes_after_backend_confirms(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        _respond_once(session, 204)
        store.delete_task("t-1")
        assert session.request.call_args.args[0] == "DELETE"
        assert store.list_tasks() == []

    def test_delete_failure_keeps_record(self, memory_prefs):
        store, session = _live_store(memory_prefs)
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(RemoteBackendError):
            store.delete_contact("c-1")
        assert [c.id for c in store.list_contacts()] == ["c-1"]


class TestReset:

    def test_reset_returns_to_mock(self, memory_prefs):
        store, _ = _live_store(memory_prefs)
        store.reset()
        assert store.mode == "mock"
        assert memory_prefs.get("dataSource") == "mock"
        assert store.counts() == MOCK_COUNTS
