"""
Agent contract API routes
Schema inspection, NL translation, dry-run simulation, scenario batches and fitness runs
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from agent_contract.api.dependencies import (
    get_catalog,
    get_executor,
    get_fitness_config,
    get_orchestrator,
    get_scenario_runner,
    get_translator,
)
from agent_contract.catalog.base import SchemaCatalog
from agent_contract.config.settings import FitnessConfig
from agent_contract.executor import CommandExecutor
from agent_contract.fitness.inventory import list_agent_test_packs
from agent_contract.fitness.orchestrator import FitnessOrchestrator
from agent_contract.scenario_runner import ScenarioRunner
from agent_contract.translator import Translator

router = APIRouter()
logger = logging.getLogger(__name__)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/schema")
async def get_schema(
    table: Optional[str] = Query(default=None),
    catalog: SchemaCatalog = Depends(get_catalog),
):
    """Whole catalog snapshot, or one table when ``table`` is given"""
    if table is None:
        return {"success": True, "catalog": catalog.serialize()}

    table_name = catalog.resolve_table_name(table)
    if table_name is None or not catalog.has_table(table_name):
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": {"code": "NOT_FOUND", "message": f"Unknown table: {table}"}},
        )
    return {"success": True, "table": _dump(catalog.tables[table_name])}


@router.post("/translate")
async def translate(
    payload: Dict[str, Any] = Body(...),
    translator: Translator = Depends(get_translator),
):
    """Translate one sentence; 400 when the translation did not succeed"""
    result = translator.translate(payload)
    return JSONResponse(status_code=200 if result.success else 400, content=_dump(result))


@router.post("/simulate")
async def simulate(
    payload: Dict[str, Any] = Body(...),
    translator: Translator = Depends(get_translator),
    executor: CommandExecutor = Depends(get_executor),
):
    """Translate with dryRun forced on, then execute the result"""
    translation = translator.translate({**payload, "dryRun": True})
    if not translation.success or translation.request is None:
        return JSONResponse(
            status_code=400,
            content={"success": False, "translation": _dump(translation)},
        )

    response = await executor.execute(translation.request)
    return {
        "success": response.success,
        "translation": _dump(translation),
        "response": _dump(response),
    }


@router.post("/scenarios/run")
async def run_scenarios(
    payload: Dict[str, Any] = Body(...),
    runner: ScenarioRunner = Depends(get_scenario_runner),
):
    """Run a scenario batch; 207 when some scenarios failed"""
    result = await runner.run(payload)
    return JSONResponse(status_code=200 if result.success else 207, content=_dump(result))


@router.post("/fitness/run")
async def run_fitness(
    payload: Dict[str, Any] = Body(...),
    orchestrator: FitnessOrchestrator = Depends(get_orchestrator),
):
    """Run a fitness request; the outcome is in ``summary.success``"""
    result = await orchestrator.run(payload)
    return _dump(result)


@router.get("/fitness/packs")
async def list_packs(
    pack_root: Optional[str] = Query(default=None, alias="packRoot"),
    config: FitnessConfig = Depends(get_fitness_config),
):
    inventory = await asyncio.to_thread(list_agent_test_packs, pack_root or config.pack_root)
    return {"success": True, **_dump(inventory)}
