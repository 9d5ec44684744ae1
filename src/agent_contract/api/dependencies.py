"""
FastAPI dependency providers for the agent contract routes
"""

from fastapi import Depends

from agent_contract.catalog.base import SchemaCatalog
from agent_contract.catalog.registry import load_schema_catalog, load_schema_catalog_or_empty
from agent_contract.config.settings import FitnessConfig, get_config
from agent_contract.executor import HttpCommandExecutor
from agent_contract.fitness.journey_runner import ApiJourneyRunner
from agent_contract.fitness.lifecycle import HttpLifecycleRunner
from agent_contract.fitness.orchestrator import FitnessOrchestrator
from agent_contract.fitness.rest_client import RestClient
from agent_contract.scenario_runner import ScenarioRunner
from agent_contract.translator import Translator
from agent_contract.utils.error_handling import ExecutorError


def get_fitness_config() -> FitnessConfig:
    return get_config()


def get_rest_client(config: FitnessConfig = Depends(get_fitness_config)) -> RestClient:
    return RestClient(config)


async def get_catalog(rest_client: RestClient = Depends(get_rest_client)) -> SchemaCatalog:
    """Cached live catalog; a failed fetch surfaces as a 502"""
    try:
        return await load_schema_catalog(rest_client)
    except Exception as e:
        raise ExecutorError(f"Schema catalog unavailable: {e}")


def get_translator(catalog: SchemaCatalog = Depends(get_catalog)) -> Translator:
    return Translator(catalog)


def get_executor(rest_client: RestClient = Depends(get_rest_client)) -> HttpCommandExecutor:
    return HttpCommandExecutor(rest_client)


def get_scenario_runner(
    translator: Translator = Depends(get_translator),
    executor: HttpCommandExecutor = Depends(get_executor),
) -> ScenarioRunner:
    return ScenarioRunner(translator, executor)


async def get_orchestrator(
    config: FitnessConfig = Depends(get_fitness_config),
    rest_client: RestClient = Depends(get_rest_client),
) -> FitnessOrchestrator:
    # Lifecycle and journey-only runs must not depend on the schema endpoint
    catalog = await load_schema_catalog_or_empty(rest_client)
    return FitnessOrchestrator(
        config=config,
        lifecycle_runner=HttpLifecycleRunner(rest_client, config),
        scenario_runner=ScenarioRunner(Translator(catalog), HttpCommandExecutor(rest_client)),
        journey_runner=ApiJourneyRunner(rest_client),
    )
