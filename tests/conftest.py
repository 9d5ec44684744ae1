"""
pytest configuration and fixtures for the agent fitness engine
In-memory schema catalog, fake collaborators and mock HTTP transports
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from agent_contract.catalog.base import SchemaCatalog
from agent_contract.config.settings import FitnessConfig
from agent_contract.fitness.journey_runner import ApiJourneyRunner
from agent_contract.fitness.models import LifecycleRunResult
from agent_contract.fitness.orchestrator import FitnessOrchestrator
from agent_contract.fitness.rest_client import RestClient
from agent_contract.models.request import RequestEnvelope
from agent_contract.models.response import ExecutionError, ExecutionResponse
from agent_contract.scenario_runner import ScenarioRunner
from agent_contract.translator import Translator

API_BASE_URL = "http://agent-api.test"

CATALOG_TABLES = {
    "customers": ["id", "biz_id", "name", "email", "status", "created_at"],
    "bookings": ["id", "biz_id", "customer_id", "status", "starts_at", "total_minor"],
    "service_products": ["id", "biz_id", "name", "price_minor"],
    "categories": ["id", "name"],
}


def json_response(status_code: int, body: Any, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status_code, json=body, headers=headers)


class FakeExecutor:
    """Records envelopes; answers from a queue or with a plain success"""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[RequestEnvelope] = []

    async def execute(self, envelope: RequestEnvelope) -> ExecutionResponse:
        self.calls.append(envelope)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return ExecutionResponse(request_id=envelope.request_id, dry_run=envelope.dry_run, success=True)


def failed_execution(message: str) -> ExecutionResponse:
    return ExecutionResponse(success=False, error=ExecutionError(message=message))


class FakeLifecycleRunner:
    """Returns a canned lifecycle result and records the packs it was handed"""

    def __init__(self, result: Optional[Dict[str, Any]] = None):
        self.result = result or {
            "success": True,
            "summary": {"totalSteps": 2, "passedSteps": 2, "failedSteps": 0},
            "warnings": [],
            "issues": [],
            "variables": {"bizId": "biz_1"},
        }
        self.packs: List[Dict[str, Any]] = []

    async def run(self, pack: Dict[str, Any]) -> LifecycleRunResult:
        self.packs.append(pack)
        return LifecycleRunResult.model_validate(self.result)


@pytest.fixture
def catalog() -> SchemaCatalog:
    return SchemaCatalog.from_columns(CATALOG_TABLES)


@pytest.fixture
def translator(catalog) -> Translator:
    return Translator(catalog)


@pytest.fixture
def config(tmp_path) -> FitnessConfig:
    return FitnessConfig(
        api_base_url=API_BASE_URL,
        api_token="test-token",
        http_timeout=5.0,
        pack_root=str(tmp_path),
        lifecycle_path="/api/v1/agent/lifecycle/run",
        log_level="DEBUG",
        port=8080,
    )


@pytest.fixture
def make_rest_client(config) -> Callable[[Callable[[httpx.Request], httpx.Response]], RestClient]:
    """Build a RestClient whose requests are answered by ``handler``"""

    def factory(handler):
        return RestClient(config, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fake_lifecycle() -> FakeLifecycleRunner:
    return FakeLifecycleRunner()


@pytest.fixture
def make_orchestrator(config, translator, fake_executor, fake_lifecycle, make_rest_client):
    """Orchestrator wired to fakes; ``handler`` answers journey HTTP calls"""

    def factory(handler=None):
        handler = handler or (lambda request: json_response(200, {"success": True}))
        return FitnessOrchestrator(
            config=config,
            lifecycle_runner=fake_lifecycle,
            scenario_runner=ScenarioRunner(translator, fake_executor),
            journey_runner=ApiJourneyRunner(make_rest_client(handler)),
        )

    return factory


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None
