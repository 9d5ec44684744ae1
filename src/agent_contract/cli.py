"""
agent-fitness command line runner

    agent-fitness run request.json [--json] [--pack-root DIR]
    agent-fitness packs [--pack-root DIR]
    agent-fitness translate "update customers set status=active where id=42"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from agent_contract.catalog.registry import load_schema_catalog, load_schema_catalog_or_empty
from agent_contract.config.settings import FitnessConfig, configure_logging, get_config
from agent_contract.executor import HttpCommandExecutor
from agent_contract.fitness.inventory import list_agent_test_packs
from agent_contract.fitness.journey_runner import ApiJourneyRunner
from agent_contract.fitness.lifecycle import HttpLifecycleRunner
from agent_contract.fitness.orchestrator import FitnessOrchestrator
from agent_contract.fitness.rest_client import RestClient
from agent_contract.scenario_runner import ScenarioRunner
from agent_contract.translator import Translator
from agent_contract.utils.error_handling import AgentContractError

logger = logging.getLogger(__name__)


async def run_command(config: FitnessConfig, request_path: str, as_json: bool) -> int:
    payload = json.loads(Path(request_path).read_text(encoding="utf-8"))

    rest_client = RestClient(config)
    catalog = await load_schema_catalog_or_empty(rest_client)
    orchestrator = FitnessOrchestrator(
        config=config,
        lifecycle_runner=HttpLifecycleRunner(rest_client, config),
        scenario_runner=ScenarioRunner(Translator(catalog), HttpCommandExecutor(rest_client)),
        journey_runner=ApiJourneyRunner(rest_client),
    )

    result = await orchestrator.run(payload)
    if as_json:
        print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, default=str))
    else:
        print(result.report.markdown)
    return 0 if result.summary.success else 1


async def translate_command(config: FitnessConfig, sentence: str, table: Optional[str], action: Optional[str]) -> int:
    catalog = await load_schema_catalog(RestClient(config))

    payload = {"input": sentence}
    options = {key: value for key, value in (("forceTable", table), ("forceAction", action)) if value}
    if options:
        payload["options"] = options

    result = Translator(catalog).translate(payload)
    print(json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2))
    return 0 if result.success else 1


def packs_command(config: FitnessConfig) -> int:
    inventory = list_agent_test_packs(config.pack_root)
    print(f"Packs under {inventory.pack_root}:")
    for pack in inventory.packs:
        print(f"  - [{pack.kind}] {pack.file_name}")
    if not inventory.packs:
        print("  (none)")
    return 0


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-fitness",
        description="Run agent fitness suites against the live API",
    )
    parser.add_argument("--pack-root", help="Override AGENT_PACK_ROOT")
    parser.add_argument("--base-url", help="Override AGENT_API_BASE_URL")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run an orchestrator request file")
    run_parser.add_argument("request", help="Path to the orchestrator request JSON")
    run_parser.add_argument("--json", action="store_true", help="Print the full JSON result instead of Markdown")

    subparsers.add_parser("packs", help="List packs under the pack root")

    translate_parser = subparsers.add_parser("translate", help="Translate one sentence")
    translate_parser.add_argument("sentence", help="Natural-language instruction")
    translate_parser.add_argument("--table", help="Force the target table")
    translate_parser.add_argument("--action", choices=["query", "insert", "update", "delete"], help="Force the action")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI interface; returns the process exit code"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    config = get_config()
    if args.pack_root:
        config.pack_root = args.pack_root
    if args.base_url:
        config.api_base_url = args.base_url
    configure_logging(config)

    try:
        if args.command == "run":
            return asyncio.run(run_command(config, args.request, args.json))
        if args.command == "translate":
            return asyncio.run(translate_command(config, args.sentence, args.table, args.action))
        return packs_command(config)

    except (AgentContractError, httpx.HTTPError, OSError, ValueError, RuntimeError) as e:
        logger.error(f"agent-fitness {args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
