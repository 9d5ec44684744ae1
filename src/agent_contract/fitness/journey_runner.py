"""
API journey runner - ordered HTTP steps with expectations and captured variables
"""

import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin

import httpx

from agent_contract.fitness.models import (
    ApiJourneyCapture,
    ApiJourneyExpectation,
    ApiJourneyPack,
    ApiJourneyResult,
    ApiJourneyStep,
    ApiJourneyStepResult,
    JourneyIssue,
    PathAssert,
)
from agent_contract.fitness.rest_client import RestClient, RestResponse
from agent_contract.utils.error_handling import classify_message
from agent_contract.utils.templating import TemplateState, interpolate_string, interpolate_value, lookup_path

logger = logging.getLogger(__name__)

_MISSING = object()


def value_as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(base_url: str, path: str, query: Optional[Mapping[str, Any]] = None) -> httpx.URL:
    """Join ``path`` onto ``base_url``; list values become repeated parameters, None is never sent"""
    url = httpx.URL(urljoin(base_url, path))
    for key, raw in (query or {}).items():
        if isinstance(raw, list):
            for entry in raw:
                if entry is not None:
                    url = url.copy_add_param(key, query_value(entry))
        elif raw is not None:
            url = url.copy_set_param(key, query_value(raw))
    return url


def values_equal(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; journey packs treat them as different values
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    return actual == expected


def evaluate_assertion(assertion: PathAssert, body: Any) -> List[str]:
    failures = []
    actual = lookup_path(body, assertion.path)

    if assertion.exists is not None:
        exists = actual is not None
        if exists != assertion.exists:
            failures.append(
                f'Assert "{assertion.path}" exists expected {value_as_string(assertion.exists)}, '
                f"got {value_as_string(exists)}."
            )

    if assertion.checks_equals and not values_equal(actual, assertion.equals):
        failures.append(
            f'Assert "{assertion.path}" equals {value_as_string(assertion.equals)}, got {value_as_string(actual)}.'
        )

    if assertion.contains is not None:
        text = value_as_string(actual)
        if assertion.contains not in text:
            failures.append(f'Assert "{assertion.path}" contains "{assertion.contains}", got "{text}".')

    return failures


def evaluate_expectations(expected: Optional[ApiJourneyExpectation], response: RestResponse) -> List[str]:
    """Every check runs; failures accumulate in a fixed order"""
    if expected is None:
        return []

    failures = []
    if expected.status is not None and response.status_code != expected.status:
        failures.append(f"Expected status {expected.status} but got {response.status_code}.")

    if expected.success is not None and response.success != expected.success:
        failures.append(
            f"Expected success={value_as_string(expected.success)} but got success={value_as_string(response.success)}."
        )

    if expected.body_contains is not None and expected.body_contains not in value_as_string(response.body):
        failures.append(f'Expected body to include "{expected.body_contains}".')

    for assertion in expected.asserts:
        failures.extend(evaluate_assertion(assertion, response.body))

    return failures


def read_capture(capture: ApiJourneyCapture, response: RestResponse) -> Any:
    if capture.from_ == "status":
        return response.status_code

    source = {"body": response.body, "headers": response.headers}[capture.from_]
    if capture.path:
        return lookup_path(source, capture.path, default=_MISSING)
    return source


class ApiJourneyRunner:
    """Runs one journey pack step by step against its base URL"""

    def __init__(self, rest_client: RestClient):
        self.rest_client = rest_client

    async def _run_step(
        self,
        index: int,
        step: ApiJourneyStep,
        pack: ApiJourneyPack,
        variables: Dict[str, Any],
        state: TemplateState,
    ) -> ApiJourneyStepResult:
        step_id = step.id or f"api-step-{index + 1}"
        started = time.monotonic()
        captures: Dict[str, Any] = {}

        try:
            path = interpolate_string(step.path, variables, state)
            query = interpolate_value(step.query, variables, state) if step.query else None
            headers = dict(pack.defaults.headers)
            if step.headers:
                headers.update({k: value_as_string(v) for k, v in interpolate_value(step.headers, variables, state).items()})
            body = interpolate_value(step.body, variables, state) if step.body is not None else None

            url = build_url(pack.defaults.base_url, value_as_string(path), query)
            response = await self.rest_client.request(
                step.method,
                str(url),
                data=body,
                headers=headers,
                authenticate=False,
            )

            failures = evaluate_expectations(step.expect, response)

            for capture in step.captures:
                value = read_capture(capture, response)
                if value is _MISSING and capture.has_default:
                    value = capture.default_value
                if value is _MISSING:
                    if capture.required:
                        location = f"{capture.from_}.{capture.path}" if capture.path else capture.from_
                        failures.append(f'Capture "{capture.key}" from {location} missing.')
                    continue
                variables[capture.key] = value
                captures[capture.key] = value

            return ApiJourneyStepResult(
                step_id=step_id,
                step_name=step.name,
                success=not failures,
                status=response.status_code,
                url=str(url),
                duration_ms=int((time.monotonic() - started) * 1000),
                expectation_failures=failures,
                captures=captures,
            )

        except Exception as e:
            message = str(e) or "unknown_api_journey_error"
            logger.warning(f"Journey step {step_id} raised: {message}")
            return ApiJourneyStepResult(
                step_id=step_id,
                step_name=step.name,
                success=False,
                status=0,
                url="",
                duration_ms=int((time.monotonic() - started) * 1000),
                expectation_failures=[message],
                captures=captures,
            )

    async def run(
        self,
        raw_pack: Any,
        global_variables: Mapping[str, Any],
        continue_on_failure: bool = True,
    ) -> ApiJourneyResult:
        """
        Run a journey pack

        Args:
            raw_pack: Pack payload (validated here)
            global_variables: Shared run variables; never mutated
            continue_on_failure: Run-level flag, combined with the pack's own flag

        Raises:
            pydantic.ValidationError: If the pack is malformed
            TemplateResolutionError: If pack-level variables reference unknown tokens
        """
        pack = raw_pack if isinstance(raw_pack, ApiJourneyPack) else ApiJourneyPack.model_validate(raw_pack)
        state = TemplateState()
        variables: Dict[str, Any] = {
            **global_variables,
            **interpolate_value(pack.variables, global_variables, state),
        }
        keep_going = pack.defaults.continue_on_failure and continue_on_failure

        steps: List[ApiJourneyStepResult] = []
        issues: List[JourneyIssue] = []

        for index, step in enumerate(pack.steps):
            result = await self._run_step(index, step, pack, variables, state)
            steps.append(result)

            if not result.success:
                first_failure = result.expectation_failures[0]
                # status 0 marks a call that never produced a response
                classification = "expectation_mismatch" if result.status else classify_message(first_failure)
                issues.append(JourneyIssue(classification=classification, message=f"{step.name}: {first_failure}"))
                logger.warning(f"Journey step {result.step_id} failed: {first_failure}")

                if not keep_going:
                    break

        passed = sum(1 for step in steps if step.success)
        failed = len(steps) - passed

        return ApiJourneyResult(
            success=failed == 0,
            total=len(steps),
            passed=passed,
            failed=failed,
            steps=steps,
            issues=issues,
            variables=variables,
        )
