"""
Scenario runner - translate (or accept) canonical requests and execute them in order
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from agent_contract.executor import CommandExecutor
from agent_contract.models.request import RequestEnvelope, Scenario, ScenarioRunDefaults, ScenarioRunRequest
from agent_contract.models.response import ScenarioResult, ScenarioRunResult, TranslationResult
from agent_contract.translator import Translator
from agent_contract.utils.error_handling import ContractValidationError

logger = logging.getLogger(__name__)


def parse_scenario_run_request(payload: Union[ScenarioRunRequest, Dict[str, Any]]) -> ScenarioRunRequest:
    """
    Validate a scenario batch

    Raises:
        ContractValidationError: If the batch does not match the scenario schema
    """
    if isinstance(payload, ScenarioRunRequest):
        return payload
    try:
        return ScenarioRunRequest.model_validate(payload)
    except ValidationError as e:
        raise ContractValidationError(f"Invalid scenario run request: {e}")


class ScenarioRunner:
    """Runs scenario batches through the translator and an executor"""

    def __init__(self, translator: Translator, executor: CommandExecutor):
        self.translator = translator
        self.executor = executor

    def _merge_request(self, scenario: Scenario, defaults: ScenarioRunDefaults) -> RequestEnvelope:
        request = scenario.request
        if scenario.dry_run is not None:
            dry_run = scenario.dry_run
        elif "dry_run" in request.model_fields_set:
            dry_run = request.dry_run
        else:
            dry_run = defaults.dry_run

        return request.model_copy(update={
            "dry_run": dry_run,
            "scope": defaults.scope.merged(request.scope, scenario.scope),
        })

    async def _run_one(self, index: int, scenario: Scenario, defaults: ScenarioRunDefaults) -> ScenarioResult:
        scenario_id = scenario.id or f"scenario-{index + 1}"
        translation: Optional[TranslationResult] = None

        try:
            if scenario.request is not None:
                request = self._merge_request(scenario, defaults)
            else:
                translation = self.translator.translate({
                    "input": scenario.prompt,
                    "dryRun": scenario.dry_run if scenario.dry_run is not None else defaults.dry_run,
                    "scope": defaults.scope.merged(scenario.scope).model_dump(by_alias=True, exclude_none=True),
                })
                if not translation.success or translation.request is None:
                    return ScenarioResult(
                        id=scenario_id,
                        name=scenario.name,
                        prompt=scenario.prompt,
                        success=False,
                        translation=translation,
                        error=translation.error.message if translation.error else "translation_failed",
                    )
                request = translation.request

            if not scenario.execute:
                return ScenarioResult(
                    id=scenario_id,
                    name=scenario.name,
                    prompt=scenario.prompt,
                    success=True,
                    translation=translation,
                    request=request,
                )

            response = await self.executor.execute(request)
            return ScenarioResult(
                id=scenario_id,
                name=scenario.name,
                prompt=scenario.prompt,
                success=response.success,
                translation=translation,
                request=request,
                response=response,
                error=response.error.message if response.error else None,
            )

        except Exception as e:
            logger.error(f"Scenario {scenario_id} raised: {e}")
            return ScenarioResult(
                id=scenario_id,
                name=scenario.name,
                prompt=scenario.prompt,
                success=False,
                translation=translation,
                error=str(e) or "unknown_scenario_error",
            )

    async def run(self, payload: Union[ScenarioRunRequest, Dict[str, Any]]) -> ScenarioRunResult:
        """Run every scenario sequentially; a failing scenario never stops the batch"""
        parsed = parse_scenario_run_request(payload)

        results: List[ScenarioResult] = []
        for index, scenario in enumerate(parsed.scenarios):
            results.append(await self._run_one(index, scenario, parsed.defaults))

        succeeded = sum(1 for result in results if result.success)
        failed = len(results) - succeeded
        logger.info(f"Scenario batch finished - {succeeded}/{len(results)} succeeded")

        return ScenarioRunResult(
            success=failed == 0,
            total=len(results),
            succeeded=succeeded,
            failed=failed,
            results=results,
        )
