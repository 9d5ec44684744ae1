"""
Response models for agent contract operations
"""

from typing import Any, List, Literal, Optional

from pydantic import Field

from agent_contract.models.base import ContractModel
from agent_contract.models.commands import CommandAction
from agent_contract.models.request import RequestEnvelope


class InferredIntent(ContractModel):
    """What the translator believes the sentence asks for"""
    action: CommandAction
    table: Optional[str] = None


class TranslationError(ContractModel):
    message: str
    suggestions: Optional[List[str]] = None


class TranslationResult(ContractModel):
    """Outcome of translating one sentence

    ``confidence`` is an explainability signal, not a gate.
    """
    success: bool
    confidence: float
    notes: List[str] = Field(default_factory=list)
    inferred: InferredIntent
    request: Optional[RequestEnvelope] = None
    error: Optional[TranslationError] = None


class ExecutionTraceStep(ContractModel):
    """Trace row emitted by the executor"""
    step_index: int
    kind: Literal["query", "mutate", "batch"]
    table: Optional[str] = None
    sql_preview: str = ""
    params: List[Any] = Field(default_factory=list)
    row_count: int = 0
    dry_run: bool = True


class ExecutionError(ContractModel):
    message: str
    code: Optional[str] = None
    detail: Optional[Any] = None


class ExecutionResponse(ContractModel):
    """Uniform executor response"""
    request_id: Optional[str] = None
    dry_run: bool = True
    success: bool
    command_kind: Optional[Literal["query", "mutate", "batch"]] = None
    warnings: List[str] = Field(default_factory=list)
    trace: List[ExecutionTraceStep] = Field(default_factory=list)
    result: Optional[Any] = None
    error: Optional[ExecutionError] = None


class ScenarioResult(ContractModel):
    id: str
    name: str
    success: bool
    prompt: Optional[str] = None
    translation: Optional[TranslationResult] = None
    request: Optional[RequestEnvelope] = None
    response: Optional[ExecutionResponse] = None
    error: Optional[str] = None


class ScenarioRunResult(ContractModel):
    success: bool
    total: int
    succeeded: int
    failed: int
    results: List[ScenarioResult] = Field(default_factory=list)
