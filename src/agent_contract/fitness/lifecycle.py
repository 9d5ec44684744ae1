"""
Lifecycle runner boundary - declarative lifecycle packs are executed by the live API
"""

import logging
from typing import Any, Dict, Protocol

from pydantic import ValidationError

from agent_contract.config.settings import FitnessConfig
from agent_contract.fitness.models import LifecycleRunResult
from agent_contract.fitness.rest_client import RestClient
from agent_contract.utils.error_handling import ExecutorError

logger = logging.getLogger(__name__)


class LifecycleRunner(Protocol):
    async def run(self, pack: Dict[str, Any]) -> LifecycleRunResult:
        ...


class HttpLifecycleRunner:
    """Posts lifecycle packs to the configured lifecycle endpoint"""

    def __init__(self, rest_client: RestClient, config: FitnessConfig):
        self.rest_client = rest_client
        self.endpoint = config.lifecycle_path

    async def run(self, pack: Dict[str, Any]) -> LifecycleRunResult:
        """
        Run one lifecycle pack

        Raises:
            ExecutorError: If the endpoint does not answer with a lifecycle result
        """
        response = await self.rest_client.request("POST", self.endpoint, data=pack)

        if not isinstance(response.body, dict) or "success" not in response.body:
            raise ExecutorError(
                f"Lifecycle runner returned HTTP {response.status_code} without a run result",
                details=response.body,
            )

        try:
            result = LifecycleRunResult.model_validate(response.body)
        except ValidationError as e:
            raise ExecutorError(f"Lifecycle runner returned a malformed result: {e}")

        logger.info(
            f"Lifecycle pack finished - {result.summary.passed_steps}/{result.summary.total_steps} steps passed"
        )
        return result
