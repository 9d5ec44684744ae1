"""
Executor client - hands validated request envelopes to the live execution layer
"""

import logging
from typing import Protocol

import httpx
from pydantic import ValidationError

from agent_contract.fitness.rest_client import RestClient
from agent_contract.models.request import RequestEnvelope
from agent_contract.models.response import ExecutionResponse
from agent_contract.utils.error_handling import ExecutorError

logger = logging.getLogger(__name__)

EXECUTE_ENDPOINT = "/api/v1/agent/execute"

# The execution layer answers contract and safety rejections with 400 and a normal body
STRUCTURED_STATUSES = (200, 400)


class CommandExecutor(Protocol):
    """Anything that can run one request envelope"""

    async def execute(self, envelope: RequestEnvelope) -> ExecutionResponse:
        ...


class HttpCommandExecutor:
    """Executes envelopes through ``POST /api/v1/agent/execute``"""

    def __init__(self, rest_client: RestClient, endpoint: str = EXECUTE_ENDPOINT):
        self.rest_client = rest_client
        self.endpoint = endpoint

    async def execute(self, envelope: RequestEnvelope) -> ExecutionResponse:
        """
        Execute one envelope against the live API

        Raises:
            ExecutorError: If the API is unreachable or the body is not an execution response
        """
        try:
            response = await self.rest_client.request("POST", self.endpoint, data=envelope.to_payload())
        except httpx.HTTPError as e:
            raise ExecutorError(f"Executor unreachable: {e}")

        if response.status_code not in STRUCTURED_STATUSES or not isinstance(response.body, dict):
            raise ExecutorError(
                f"Executor returned HTTP {response.status_code}",
                details=response.body,
            )

        try:
            result = ExecutionResponse.model_validate(response.body)
        except ValidationError as e:
            raise ExecutorError(f"Executor returned a malformed response: {e}")

        if not result.success:
            logger.warning(f"Execution of {envelope.request_id or '<anonymous>'} failed: {result.error.message if result.error else 'unknown'}")
        return result
