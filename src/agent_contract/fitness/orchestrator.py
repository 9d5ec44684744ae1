"""
Fitness orchestrator - runs lifecycle, scenario and api_journey suites in order
against the live API and folds their results into one classified report.

Suites run strictly one after another. Variables captured by a suite are merged
into a shared bag that later suites can reference through ``{{token}}``
templates; that bag is the only state carried from one suite to the next.
"""

import asyncio
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from pydantic import ValidationError

from agent_contract.config.settings import FitnessConfig
from agent_contract.fitness.journey_runner import ApiJourneyRunner
from agent_contract.fitness.lifecycle import LifecycleRunner
from agent_contract.fitness.models import (
    Issue,
    OrchestratorOutput,
    OrchestratorRequest,
    OrchestratorRunResult,
    RunReport,
    RunSummary,
    RunTotals,
    SuiteConfig,
    SuiteResult,
)
from agent_contract.fitness.report import build_markdown_report
from agent_contract.models.response import ScenarioRunResult
from agent_contract.scenario_runner import ScenarioRunner
from agent_contract.utils.error_handling import ContractValidationError, PackSourceError, classify_message
from agent_contract.utils.templating import TemplateState, interpolate_value, iso_now

logger = logging.getLogger(__name__)


def ensure_within_pack_root(file_path: str, pack_root: str) -> Path:
    """
    Resolve ``file_path`` against ``pack_root``

    Raises:
        PackSourceError: If the resolved path escapes the root
    """
    root = Path(pack_root).resolve()
    candidate = Path(file_path)
    resolved = candidate.resolve() if candidate.is_absolute() else (root / candidate).resolve()

    try:
        resolved.relative_to(root)
    except ValueError:
        raise PackSourceError(f"Pack path is outside allowed root: {file_path}")
    return resolved


def with_dry_run(payload: Any, dry_run: bool, kind: str) -> Dict[str, Any]:
    """Copy of a pack payload with ``defaults.dryRun`` forced to the run's value"""
    if not isinstance(payload, dict):
        raise PackSourceError(f"{kind} pack must be a JSON object")
    defaults = payload.get("defaults") or {}
    return {**payload, "defaults": {**defaults, "dryRun": dry_run}}


def collect_scenario_issues(suite_id: str, suite_name: str, result: ScenarioRunResult) -> List[Issue]:
    issues = []
    for scenario in result.results:
        if scenario.success:
            continue
        message = scenario.error or "scenario_failed"
        if scenario.translation is not None and not scenario.translation.success:
            classification = "scenario_contract"
        else:
            classification = classify_message(message)
        issues.append(Issue(
            suite_id=suite_id,
            suite_name=suite_name,
            classification=classification,
            message=f"{scenario.name}: {message}",
        ))
    return issues


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class FitnessOrchestrator:
    """Runs one fitness request; a fresh run (id, bag, totals) per call"""

    def __init__(
        self,
        config: FitnessConfig,
        lifecycle_runner: LifecycleRunner,
        scenario_runner: ScenarioRunner,
        journey_runner: ApiJourneyRunner,
    ):
        self.config = config
        self.lifecycle_runner = lifecycle_runner
        self.scenario_runner = scenario_runner
        self.journey_runner = journey_runner

    async def load_suite_source(self, suite: SuiteConfig, pack_root: str) -> Any:
        """Inline payload as-is, or JSON read from a file under the pack root"""
        if suite.source.has_inline:
            return suite.source.inline

        safe_path = ensure_within_pack_root(suite.source.file_path, pack_root)
        content = await asyncio.to_thread(safe_path.read_text, encoding="utf-8")
        return json.loads(content)

    async def _run_lifecycle(
        self, suite_id: str, suite_name: str, source: Any, request: OrchestratorRequest, shared: Dict[str, Any]
    ) -> Tuple[SuiteResult, List[Issue]]:
        result = await self.lifecycle_runner.run(with_dry_run(source, request.defaults.dry_run, "lifecycle"))
        shared[f"{suite_id}_variables"] = result.variables

        issues = [
            Issue(
                suite_id=suite_id,
                suite_name=suite_name,
                classification=issue.classification,
                message=f"{issue.phase_name} / {issue.step_name}: {issue.message}",
            )
            for issue in result.issues
        ]
        suite = SuiteResult(
            id=suite_id,
            name=suite_name,
            kind="lifecycle",
            success=result.success,
            total=result.summary.total_steps,
            passed=result.summary.passed_steps,
            failed=result.summary.failed_steps,
            duration_ms=0,
            warnings=result.warnings,
            issue_count=len(result.issues),
            details=result.model_dump(mode="json", by_alias=True),
        )
        return suite, issues

    async def _run_scenarios(
        self, suite_id: str, suite_name: str, source: Any, request: OrchestratorRequest, shared: Dict[str, Any]
    ) -> Tuple[SuiteResult, List[Issue]]:
        # Fresh template state per suite so generated ids never alias across suites
        interpolated = interpolate_value(source, shared, TemplateState())
        result = await self.scenario_runner.run(with_dry_run(interpolated, request.defaults.dry_run, "scenario"))

        issues = collect_scenario_issues(suite_id, suite_name, result)
        suite = SuiteResult(
            id=suite_id,
            name=suite_name,
            kind="scenario",
            success=result.success,
            total=result.total,
            passed=result.succeeded,
            failed=result.failed,
            duration_ms=0,
            issue_count=len(issues),
            details=result.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return suite, issues

    async def _run_journey(
        self, suite_id: str, suite_name: str, source: Any, request: OrchestratorRequest, shared: Dict[str, Any]
    ) -> Tuple[SuiteResult, List[Issue]]:
        result = await self.journey_runner.run(source, shared, request.defaults.continue_on_failure)

        for step in result.steps:
            shared.update(step.captures)
        shared[f"{suite_id}_variables"] = result.variables

        issues = [
            Issue(
                suite_id=suite_id,
                suite_name=suite_name,
                classification=issue.classification,
                message=issue.message,
            )
            for issue in result.issues
        ]
        suite = SuiteResult(
            id=suite_id,
            name=suite_name,
            kind="api_journey",
            success=result.success,
            total=result.total,
            passed=result.passed,
            failed=result.failed,
            duration_ms=0,
            issue_count=len(result.issues),
            details=result.model_dump(mode="json", by_alias=True),
        )
        return suite, issues

    async def _persist(
        self,
        run_id: str,
        output: OrchestratorOutput,
        pack_root: str,
        result: OrchestratorRunResult,
    ) -> None:
        """Best-effort artifact writes; failures are logged, never raised"""
        root = Path(pack_root)
        targets = []
        if output.write_json_path:
            payload = result.model_dump(mode="json", by_alias=True, include={"summary", "suites", "issues", "variables"})
            targets.append((output.write_json_path, json.dumps(payload, indent=2, default=str)))
        if output.write_markdown_path:
            targets.append((output.write_markdown_path, result.report.markdown))

        for raw_path, content in targets:
            path = Path(raw_path)
            if not path.is_absolute():
                path = root / path
            try:
                await asyncio.to_thread(_write_text, path, content)
                logger.info(f"[{run_id}] Wrote {path}")
            except OSError as e:
                logger.warning(f"[{run_id}] Could not write {path}: {e}")

    async def run(self, payload: Union[OrchestratorRequest, Dict[str, Any]]) -> OrchestratorRunResult:
        """
        Run every enabled suite and build the report

        Suite failures of any kind come back as failed ``SuiteResult`` records
        plus classified issues; they never escape this call.

        Raises:
            ContractValidationError: If the request itself is malformed
        """
        if isinstance(payload, OrchestratorRequest):
            request = payload
        else:
            try:
                request = OrchestratorRequest.model_validate(payload)
            except ValidationError as e:
                raise ContractValidationError(f"Invalid fitness run request: {e}")

        run_id = str(uuid.uuid4())
        started_at = iso_now()
        run_started = time.monotonic()
        pack_root = request.defaults.pack_root or self.config.pack_root

        suites: List[SuiteResult] = []
        issues: List[Issue] = []
        shared: Dict[str, Any] = {
            **request.variables,
            "runId": run_id,
            "runStartedAt": started_at,
        }

        dispatch = {
            "lifecycle": self._run_lifecycle,
            "scenario": self._run_scenarios,
            "api_journey": self._run_journey,
        }

        logger.info(f"[{run_id}] Fitness run started with {len(request.suites)} suites (pack root {pack_root})")

        for index, suite_config in enumerate(request.suites):
            if not suite_config.enabled:
                continue

            suite_id = suite_config.id or f"suite-{index + 1}"
            suite_name = suite_config.name or suite_id
            suite_started = time.monotonic()
            logger.info(f"[{run_id}] Running {suite_config.kind} suite {suite_id}")

            try:
                source = await self.load_suite_source(suite_config, pack_root)
                suite, suite_issues = await dispatch[suite_config.kind](suite_id, suite_name, source, request, shared)
                suite.duration_ms = int((time.monotonic() - suite_started) * 1000)
                issues.extend(suite_issues)
            except Exception as e:
                message = str(e) or "unknown_suite_error"
                logger.error(f"[{run_id}] Suite {suite_id} raised: {message}")
                issues.append(Issue(
                    suite_id=suite_id,
                    suite_name=suite_name,
                    classification=classify_message(message),
                    message=message,
                ))
                suite = SuiteResult(
                    id=suite_id,
                    name=suite_name,
                    kind=suite_config.kind,
                    success=False,
                    total=1,
                    passed=0,
                    failed=1,
                    duration_ms=int((time.monotonic() - suite_started) * 1000),
                    issue_count=1,
                    details={"error": message},
                )

            suites.append(suite)
            if suite.success:
                logger.info(f"[{run_id}] Suite {suite_id} passed ({suite.passed}/{suite.total})")
            else:
                logger.warning(f"[{run_id}] Suite {suite_id} failed ({suite.passed}/{suite.total})")
                if not request.defaults.continue_on_failure:
                    logger.warning(f"[{run_id}] Stopping after failed suite {suite_id}")
                    break

        suites_passed = sum(1 for suite in suites if suite.success)
        checks = sum(suite.total for suite in suites)
        checks_passed = sum(suite.passed for suite in suites)
        totals = RunTotals(
            suites=len(suites),
            suites_passed=suites_passed,
            suites_failed=len(suites) - suites_passed,
            checks=checks,
            checks_passed=checks_passed,
            checks_failed=checks - checks_passed,
        )

        # A suite can pass its own checks and still have raised issues; both block the run
        summary = RunSummary(
            run_id=run_id,
            started_at=started_at,
            ended_at=iso_now(),
            duration_ms=int((time.monotonic() - run_started) * 1000),
            success=totals.suites_failed == 0 and not issues,
            totals=totals,
        )

        result = OrchestratorRunResult(
            summary=summary,
            suites=suites,
            issues=issues,
            variables=shared,
            report=RunReport(markdown=build_markdown_report(summary, suites, issues)),
        )

        if request.output is not None:
            await self._persist(run_id, request.output, pack_root, result)

        logger.info(
            f"[{run_id}] Fitness run finished - success={summary.success}, "
            f"{totals.suites_passed}/{totals.suites} suites, {len(issues)} issues"
        )
        return result
