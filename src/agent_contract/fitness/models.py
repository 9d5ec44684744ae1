"""
Models for fitness suites, journey packs and run results
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, model_validator

from agent_contract.models.base import ContractModel
from agent_contract.utils.error_handling import FailureClass

SuiteKind = Literal["lifecycle", "scenario", "api_journey"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
JourneyScalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]

DEFAULT_JOURNEY_BASE_URL = "http://localhost:6129"


# ---------------------------------------------------------------------------
# API journey packs
# ---------------------------------------------------------------------------

class PathAssert(ContractModel):
    """Assertion on one path of the response body; ``equals: null`` is a real predicate"""
    path: str = Field(min_length=1)
    equals: JourneyScalar = None
    exists: Optional[bool] = None
    contains: Optional[str] = None

    @model_validator(mode="after")
    def check_has_predicate(self) -> "PathAssert":
        if not ({"equals", "exists", "contains"} & self.model_fields_set):
            raise ValueError("api_journey assert requires equals, exists, or contains.")
        return self

    @property
    def checks_equals(self) -> bool:
        return "equals" in self.model_fields_set


class ApiJourneyExpectation(ContractModel):
    status: Optional[int] = Field(default=None, ge=100, le=599)
    success: Optional[bool] = None
    body_contains: Optional[str] = None
    asserts: List[PathAssert] = Field(default_factory=list)


class ApiJourneyCapture(ContractModel):
    """Copy a value out of a response into the variable bag"""
    key: str = Field(min_length=1)
    from_: Literal["body", "headers", "status"] = Field(default="body", alias="from")
    path: Optional[str] = None
    required: bool = True
    default_value: Any = None

    @property
    def has_default(self) -> bool:
        return "default_value" in self.model_fields_set


class ApiJourneyStep(ContractModel):
    id: Optional[str] = Field(default=None, min_length=1)
    name: str = Field(min_length=1)
    method: HttpMethod
    path: str = Field(min_length=1)
    query: Optional[Dict[str, Union[JourneyScalar, List[JourneyScalar]]]] = None
    headers: Optional[Dict[str, str]] = None
    body: Any = None
    expect: Optional[ApiJourneyExpectation] = None
    captures: List[ApiJourneyCapture] = Field(default_factory=list)


class ApiJourneyDefaults(ContractModel):
    base_url: str = DEFAULT_JOURNEY_BASE_URL
    headers: Dict[str, str] = Field(default_factory=dict)
    continue_on_failure: bool = True


class ApiJourneyPack(ContractModel):
    """Ordered HTTP steps threaded together by captured variables"""
    defaults: ApiJourneyDefaults = Field(default_factory=ApiJourneyDefaults)
    variables: Dict[str, Any] = Field(default_factory=dict)
    steps: List[ApiJourneyStep] = Field(min_length=1)


class ApiJourneyStepResult(ContractModel):
    step_id: str
    step_name: str
    success: bool
    status: int
    url: str
    duration_ms: int
    expectation_failures: List[str] = Field(default_factory=list)
    captures: Dict[str, Any] = Field(default_factory=dict)


class JourneyIssue(ContractModel):
    classification: FailureClass
    message: str


class ApiJourneyResult(ContractModel):
    success: bool
    total: int
    passed: int
    failed: int
    steps: List[ApiJourneyStepResult] = Field(default_factory=list)
    issues: List[JourneyIssue] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Lifecycle runner boundary
# ---------------------------------------------------------------------------

class LifecycleSummary(ContractModel):
    model_config = ConfigDict(extra="allow")

    total_steps: int = 0
    passed_steps: int = 0
    failed_steps: int = 0
    total_phases: Optional[int] = None


class LifecycleIssue(ContractModel):
    model_config = ConfigDict(extra="allow")

    phase_name: str
    step_name: str
    message: str
    classification: FailureClass
    phase_id: Optional[str] = None
    step_id: Optional[str] = None


class LifecycleRunResult(ContractModel):
    """Whatever the lifecycle runner returns; unknown keys are kept for audit"""
    model_config = ConfigDict(extra="allow")

    success: bool
    summary: LifecycleSummary = Field(default_factory=LifecycleSummary)
    warnings: List[str] = Field(default_factory=list)
    issues: List[LifecycleIssue] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class SuiteSource(ContractModel):
    """Either a pack file under the pack root or an inline payload"""
    file_path: Optional[str] = Field(default=None, min_length=1)
    inline: Any = None

    @property
    def has_inline(self) -> bool:
        return "inline" in self.model_fields_set

    @model_validator(mode="after")
    def check_one_source(self) -> "SuiteSource":
        if (self.file_path is not None) == self.has_inline:
            raise ValueError("Suite source requires exactly one of filePath or inline payload.")
        return self


class SuiteConfig(ContractModel):
    id: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    kind: SuiteKind
    enabled: bool = True
    tags: List[str] = Field(default_factory=list)
    source: SuiteSource


class OrchestratorDefaults(ContractModel):
    dry_run: bool = True
    continue_on_failure: bool = True
    pack_root: Optional[str] = None


class OrchestratorOutput(ContractModel):
    write_json_path: Optional[str] = None
    write_markdown_path: Optional[str] = None


class OrchestratorRequest(ContractModel):
    defaults: OrchestratorDefaults = Field(default_factory=OrchestratorDefaults)
    variables: Dict[str, Any] = Field(default_factory=dict)
    suites: List[SuiteConfig] = Field(min_length=1)
    output: Optional[OrchestratorOutput] = None


class Issue(ContractModel):
    suite_id: str
    suite_name: str
    classification: FailureClass
    message: str


class SuiteResult(ContractModel):
    id: str
    name: str
    kind: SuiteKind
    success: bool
    total: int
    passed: int
    failed: int
    duration_ms: int
    warnings: List[str] = Field(default_factory=list)
    issue_count: int = 0
    details: Any = None


class RunTotals(ContractModel):
    suites: int = 0
    suites_passed: int = 0
    suites_failed: int = 0
    checks: int = 0
    checks_passed: int = 0
    checks_failed: int = 0


class RunSummary(ContractModel):
    run_id: str
    started_at: str
    ended_at: str
    duration_ms: int
    success: bool
    totals: RunTotals


class RunReport(ContractModel):
    markdown: str


class OrchestratorRunResult(ContractModel):
    summary: RunSummary
    suites: List[SuiteResult] = Field(default_factory=list)
    issues: List[Issue] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    report: RunReport


# ---------------------------------------------------------------------------
# Pack inventory
# ---------------------------------------------------------------------------

class TestPack(ContractModel):
    __test__ = False

    id: str
    kind: SuiteKind
    file_path: str
    file_name: str


class PackInventory(ContractModel):
    pack_root: str
    packs: List[TestPack] = Field(default_factory=list)
