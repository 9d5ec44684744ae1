"""
Request models for agent contract operations
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from agent_contract.models.base import ContractModel, FrozenContractModel
from agent_contract.models.commands import Command, CommandAction


class RequestScope(FrozenContractModel):
    """Tenant/location/actor context threaded through every envelope"""
    biz_id: Optional[str] = Field(default=None, min_length=1)
    location_id: Optional[str] = Field(default=None, min_length=1)
    actor_user_id: Optional[str] = Field(default=None, min_length=1)

    def merged(self, *others: Optional["RequestScope"]) -> "RequestScope":
        """Later scopes win key by key; unset keys never erase earlier ones"""
        data = self.model_dump(exclude_none=True)
        for other in others:
            if other is not None:
                data.update(other.model_dump(exclude_none=True))
        return RequestScope(**data)


class RequestEnvelope(FrozenContractModel):
    """Top-level request accepted by the executor"""
    request_id: Optional[str] = Field(default=None, min_length=1)
    idempotency_key: Optional[str] = Field(default=None, min_length=1)
    dry_run: bool = True
    scope: RequestScope = Field(default_factory=RequestScope)
    command: Command
    metadata: Optional[Dict[str, Any]] = None


class TranslationOptions(ContractModel):
    """Optional translator overrides"""
    force_table: Optional[str] = Field(default=None, min_length=1)
    force_action: Optional[CommandAction] = None


class TranslationRequest(ContractModel):
    """Natural-language translation request"""
    input: str = Field(min_length=1)
    dry_run: bool = True
    scope: RequestScope = Field(default_factory=RequestScope)
    options: Optional[TranslationOptions] = None


class Scenario(ContractModel):
    """One scenario: either a prompt to translate or a canonical request"""
    id: Optional[str] = Field(default=None, min_length=1)
    name: str = Field(min_length=1)
    prompt: Optional[str] = Field(default=None, min_length=1)
    request: Optional[RequestEnvelope] = None
    execute: bool = True
    dry_run: Optional[bool] = None
    scope: Optional[RequestScope] = None

    @model_validator(mode="after")
    def check_prompt_or_request(self) -> "Scenario":
        if (self.prompt is None) == (self.request is None):
            raise ValueError("Scenario must provide exactly one of prompt or request.")
        return self


class ScenarioRunDefaults(ContractModel):
    dry_run: bool = True
    scope: RequestScope = Field(default_factory=RequestScope)


class ScenarioRunRequest(ContractModel):
    """Batch scenario run request"""
    scenarios: List[Scenario] = Field(min_length=1)
    defaults: ScenarioRunDefaults = Field(default_factory=ScenarioRunDefaults)
