"""
API journey runner: templated steps, expectations, captures and failure policy
"""

import httpx
import pytest
from pydantic import ValidationError

from agent_contract.fitness.journey_runner import ApiJourneyRunner, build_url, values_equal

from conftest import json_response, request_json

SHOP_URL = "http://shop.test"


def journey(*steps, **defaults):
    return {"defaults": {"baseUrl": SHOP_URL, **defaults}, "steps": list(steps)}


class RecordingHandler:
    """Answers journey calls from a queue and keeps every request"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if self.responses else json_response(200, {"ok": True})
        if isinstance(response, Exception):
            raise response
        return response


class TestUrlBuilding:

    def test_query_lists_repeat_and_nones_are_dropped(self):
        url = build_url(SHOP_URL, "/orders", {"tag": ["a", None, "b"], "active": True, "page": 2, "skip": None})

        assert url.path == "/orders"
        assert url.params.get_list("tag") == ["a", "b"]
        assert url.params["active"] == "true"
        assert url.params["page"] == "2"
        assert "skip" not in url.params

    def test_absolute_path_replaces_base(self):
        assert str(build_url(SHOP_URL, "http://other.test/ping")) == "http://other.test/ping"

    @pytest.mark.parametrize("actual,expected,equal", [
        (1, 1, True),
        (True, True, True),
        (True, 1, False),
        (0, False, False),
        (None, None, True),
        ("1", 1, False),
    ])
    def test_values_equal_is_strict(self, actual, expected, equal):
        assert values_equal(actual, expected) is equal


class TestJourneyRuns:

    @pytest.mark.asyncio
    async def test_captures_chain_into_later_steps(self, make_rest_client):
        handler = RecordingHandler(
            json_response(201, {"data": {"id": "ord_1"}}, headers={"x-request-id": "req-9"}),
            json_response(200, {"data": {"id": "ord_1", "status": "open", "deletedAt": None}}),
        )
        runner = ApiJourneyRunner(make_rest_client(handler))
        shared = {"sku": "sku_1"}

        result = await runner.run(
            journey(
                {
                    "name": "create order",
                    "method": "POST",
                    "path": "/orders",
                    "body": {"sku": "{{sku}}", "qty": 2},
                    "expect": {"status": 201, "success": True},
                    "captures": [
                        {"key": "orderId", "path": "data.id"},
                        {"key": "requestId", "from": "headers", "path": "x-request-id"},
                        {"key": "createdStatus", "from": "status"},
                    ],
                },
                {
                    "name": "read order",
                    "method": "GET",
                    "path": "/orders/{{orderId}}",
                    "expect": {
                        "bodyContains": "open",
                        "asserts": [
                            {"path": "data.status", "equals": "open"},
                            {"path": "data.deletedAt", "equals": None},
                            {"path": "data.missing", "exists": False},
                        ],
                    },
                },
            ),
            shared,
        )

        assert result.success is True
        assert (result.total, result.passed, result.failed) == (2, 2, 0)
        assert result.steps[0].step_id == "api-step-1"
        assert result.steps[0].captures == {"orderId": "ord_1", "requestId": "req-9", "createdStatus": 201}
        assert handler.requests[1].url.path == "/orders/ord_1"
        assert request_json(handler.requests[0]) == {"sku": "sku_1", "qty": 2}
        assert result.variables["orderId"] == "ord_1"
        assert result.variables["sku"] == "sku_1"
        assert shared == {"sku": "sku_1"}

    @pytest.mark.asyncio
    async def test_generated_ids_are_stable_within_a_journey(self, make_rest_client):
        handler = RecordingHandler()
        runner = ApiJourneyRunner(make_rest_client(handler))

        await runner.run(
            journey(
                {"name": "create", "method": "POST", "path": "/orders", "body": {"id": "{{id:order}}"}},
                {"name": "read", "method": "GET", "path": "/orders/{{id:order}}"},
            ),
            {},
        )

        created_id = request_json(handler.requests[0])["id"]
        assert created_id.startswith("order_")
        assert handler.requests[1].url.path == f"/orders/{created_id}"

    @pytest.mark.asyncio
    async def test_pack_variables_resolve_against_shared_variables(self, make_rest_client):
        handler = RecordingHandler()
        runner = ApiJourneyRunner(make_rest_client(handler))
        pack = journey({"name": "list", "method": "GET", "path": "/shops/{{shopPath}}"})
        pack["variables"] = {"shopPath": "{{bizId}}/orders"}

        result = await runner.run(pack, {"bizId": "biz_1"})

        assert handler.requests[0].url.path == "/shops/biz_1/orders"
        assert result.variables["shopPath"] == "biz_1/orders"

    @pytest.mark.asyncio
    async def test_headers_and_query_are_sent(self, make_rest_client):
        handler = RecordingHandler()
        runner = ApiJourneyRunner(make_rest_client(handler))

        await runner.run(
            journey(
                {
                    "name": "search",
                    "method": "POST",
                    "path": "/orders/search",
                    "query": {"status": ["open", "paid"], "limit": 5},
                    "headers": {"x-trace": "{{trace}}", "x-api-key": "override"},
                    "body": {"q": "x"},
                },
                headers={"x-api-key": "default", "x-shop": "main"},
            ),
            {"trace": "t-1"},
        )

        request = handler.requests[0]
        assert request.url.params.get_list("status") == ["open", "paid"]
        assert request.url.params["limit"] == "5"
        assert request.headers["x-trace"] == "t-1"
        assert request.headers["x-api-key"] == "override"
        assert request.headers["x-shop"] == "main"
        assert request.headers["content-type"] == "application/json"
        assert "authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_non_ascii_text_matches_structured_bodies(self, make_rest_client):
        handler = RecordingHandler(json_response(200, {"name": "Café", "tags": ["crème"]}))
        runner = ApiJourneyRunner(make_rest_client(handler))

        result = await runner.run(
            journey({
                "name": "read shop",
                "method": "GET",
                "path": "/shops/1",
                "expect": {
                    "bodyContains": "Café",
                    "asserts": [
                        {"path": "$", "contains": "Café"},
                        {"path": "tags", "contains": "crème"},
                    ],
                },
            }),
            {},
        )

        assert result.steps[0].expectation_failures == []
        assert result.success is True

    @pytest.mark.asyncio
    async def test_every_expectation_failure_is_reported(self, make_rest_client):
        handler = RecordingHandler(json_response(500, {"error": "boom", "data": {"flag": 1}}))
        runner = ApiJourneyRunner(make_rest_client(handler))

        result = await runner.run(
            journey({
                "name": "create order",
                "method": "POST",
                "path": "/orders",
                "expect": {
                    "status": 201,
                    "success": True,
                    "bodyContains": "created",
                    "asserts": [
                        {"path": "data.count", "equals": 1},
                        {"path": "data.flag", "equals": True},
                        {"path": "error", "contains": "created"},
                    ],
                },
            }),
            {},
        )

        step = result.steps[0]
        assert step.success is False
        assert step.status == 500
        assert step.expectation_failures == [
            "Expected status 201 but got 500.",
            "Expected success=true but got success=false.",
            'Expected body to include "created".',
            'Assert "data.count" equals 1, got .',
            'Assert "data.flag" equals true, got 1.',
            'Assert "error" contains "created", got "boom".',
        ]
        assert result.issues[0].classification == "expectation_mismatch"
        assert result.issues[0].message == "create order: Expected status 201 but got 500."

    @pytest.mark.asyncio
    async def test_capture_requirements(self, make_rest_client):
        handler = RecordingHandler(json_response(200, {"data": {}}))
        runner = ApiJourneyRunner(make_rest_client(handler))

        result = await runner.run(
            journey({
                "name": "login",
                "method": "POST",
                "path": "/login",
                "captures": [
                    {"key": "token", "path": "auth.token"},
                    {"key": "refresh", "path": "auth.refresh", "required": False},
                    {"key": "role", "path": "auth.role", "defaultValue": "guest"},
                ],
            }),
            {},
        )

        step = result.steps[0]
        assert step.expectation_failures == ['Capture "token" from body.auth.token missing.']
        assert step.captures == {"role": "guest"}
        assert "refresh" not in result.variables
        assert result.variables["role"] == "guest"

    @pytest.mark.parametrize("pack_flag,run_flag,steps_run", [
        (True, True, 2),
        (True, False, 1),
        (False, True, 1),
        (False, False, 1),
    ])
    @pytest.mark.asyncio
    async def test_continue_requires_both_flags(self, make_rest_client, pack_flag, run_flag, steps_run):
        handler = RecordingHandler(json_response(404, {"error": "missing"}))
        runner = ApiJourneyRunner(make_rest_client(handler))

        result = await runner.run(
            journey(
                {"name": "first", "method": "GET", "path": "/a", "expect": {"status": 200}},
                {"name": "second", "method": "GET", "path": "/b"},
                continueOnFailure=pack_flag,
            ),
            {},
            continue_on_failure=run_flag,
        )

        assert result.total == steps_run
        assert len(handler.requests) == steps_run
        assert result.success is False

    @pytest.mark.asyncio
    async def test_call_errors_become_status_zero_steps(self, make_rest_client):
        handler = RecordingHandler(httpx.ConnectError("connection refused"))
        runner = ApiJourneyRunner(make_rest_client(handler))

        result = await runner.run(
            journey(
                {"id": "ping", "name": "ping", "method": "GET", "path": "/ping"},
                {"name": "lookup", "method": "GET", "path": "/orders/{{missing}}"},
            ),
            {},
        )

        ping, lookup = result.steps
        assert (ping.step_id, ping.status, ping.url) == ("ping", 0, "")
        assert ping.expectation_failures == ["connection refused"]
        assert lookup.status == 0
        assert lookup.expectation_failures == ['Unresolved template token: "{{missing}}"']
        assert [issue.classification for issue in result.issues] == ["execution_error", "scenario_contract"]
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_malformed_pack_is_rejected(self, make_rest_client):
        runner = ApiJourneyRunner(make_rest_client(RecordingHandler()))

        with pytest.raises(ValidationError):
            await runner.run({"steps": []}, {})

        with pytest.raises(ValidationError):
            await runner.run(journey({
                "name": "bad assert",
                "method": "GET",
                "path": "/a",
                "expect": {"asserts": [{"path": "data"}]},
            }), {})
