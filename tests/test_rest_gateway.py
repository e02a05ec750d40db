"""Unit tests for crm.integrations.rest_gateway.

All HTTP goes through a MagicMock requests.Session injected into
RestGateway, so nothing leaves the process.

Coverage
--------
    1. Unconfigured gateway short-circuits without network I/O
    2. Request shape per table operation (URL, params, headers, body)
    3. Error mapping: HTTP errors, timeouts, network errors, non-JSON bodies
"""

from unittest.mock import MagicMock

import pytest
import requests

from crm.integrations.rest_gateway import GatewayResult, RestGateway

BASE = "https://crm.example.test/"


def _response(status=200, body=None, content=b"[]"):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.content = content
    resp.json.return_value = body
    resp.text = "denied"
    return resp


@pytest.fixture()
def session():
    s = MagicMock()
    s.request.return_value = _response(200, [])
    return s


@pytest.fixture()
def gateway(session):
    return RestGateway(BASE, "service-key", timeout=5, session=session)


class TestConfiguration:

    def test_requires_url_and_key(self):
        assert RestGateway(BASE, "k").configured
        assert not RestGateway(BASE, "").configured
        assert not RestGateway(None, "k").configured

    def test_unconfigured_call_returns_error_result(self, session):
        result = RestGateway("", "", session=session).select_all("apps", order_by="createdAt")
        assert result.ok is False
        assert result.status_code is None
        assert "not configured" in result.error
        session.request.assert_not_called()

    def test_trailing_slash_is_stripped(self, gateway, session):
        gateway.select_all("apps", order_by="createdAt")
        assert session.request.call_args.args[1] == "https://crm.example.test/rest/v1/apps"

    def test_timeout_omitted_when_not_configured(self, session):
        RestGateway(BASE, "k", session=session).delete("apps", "a-1")
        assert "timeout" not in session.request.call_args.kwargs


class TestOperations:

    def test_select_all(self, gateway, session):
        session.request.return_value = _response(200, [{"id": "a"}, {"id": "b"}])
        result = gateway.select_all("deals", order_by="closeDate")
        method, _ = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert kwargs["params"] == {"select": "*", "order": "closeDate.desc"}
        assert kwargs["timeout"] == 5
        assert "Prefer" not in kwargs["headers"]
        assert [r["id"] for r in result.rows] == ["a", "b"]

    def test_insert_wraps_row_and_asks_for_representation(self, gateway, session):
        gateway.insert("tasks", {"title": "T"})
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "POST"
        assert kwargs["json"] == [{"title": "T"}]
        assert kwargs["headers"]["Prefer"] == "return=representation"

    def test_update_filters_by_id(self, gateway, session):
        gateway.update("contacts", "c-9", {"name": "N"})
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "PATCH"
        assert kwargs["params"] == {"id": "eq.c-9"}
        assert kwargs["json"] == {"name": "N"}

    def test_delete_filters_by_id(self, gateway, session):
        session.request.return_value = _response(204, None, content=b"")
        result = gateway.delete("apps", "a-1")
        assert session.request.call_args.kwargs["params"] == {"id": "eq.a-1"}
        assert result.ok is True
        assert result.rows == []


class TestErrors:

    def test_http_error(self, gateway, session):
        session.request.return_value = _response(401)
        result = gateway.select_all("apps", order_by="createdAt")
        assert result.ok is False
        assert result.status_code == 401
        assert result.error == "HTTP 401: denied"

    def test_timeout(self, gateway, session):
        session.request.side_effect = requests.Timeout()
        result = gateway.insert("apps", {"name": "A"})
        assert result.ok is False
        assert "timed out" in result.error

    def test_network_error(self, gateway, session):
        session.request.side_effect = requests.ConnectionError("refused")
        result = gateway.update("apps", "a", {})
        assert result.ok is False
        assert "refused" in result.error

    def test_non_json_body(self, gateway, session):
        resp = _response(200, content=b"<html>")
        resp.json.side_effect = ValueError("no json")
        session.request.return_value = resp
        result = gateway.select_all("apps", order_by="createdAt")
        assert result.ok is False
        assert "non-JSON" in result.error


class TestGatewayResult:

    def test_single_object_is_wrapped(self):
        assert GatewayResult(True, 200, {"id": "x"}, None, 1).rows == [{"id": "x"}]

    def test_none_data_has_no_rows(self):
        assert GatewayResult(False, None, None, "boom", 1).rows == []
