"""
Shared pydantic base for every payload the engine reads or writes
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ContractModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict with wire names and unset optionals dropped"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FrozenContractModel(ContractModel):
    """Immutable variant for envelopes and commands"""

    model_config = ConfigDict(frozen=True)
