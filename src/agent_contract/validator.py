"""
Validator component - strict structural validation against the command algebra
"""

import logging
from typing import Any, List

from pydantic import TypeAdapter, ValidationError

from agent_contract.models.commands import Command
from agent_contract.models.request import RequestEnvelope
from agent_contract.utils.error_handling import ContractValidationError

logger = logging.getLogger(__name__)

_command_adapter: TypeAdapter = TypeAdapter(Command)


def _describe(error: ValidationError) -> List[str]:
    """Flatten pydantic errors into 'loc: message' strings"""
    described = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        described.append(f"{location}: {item.get('msg', 'invalid value')}")
    return described


def validate_command(payload: Any) -> Command:
    """
    Validate a raw command payload

    Raises:
        ContractValidationError: If the payload is not a well-formed command
    """
    try:
        return _command_adapter.validate_python(payload)
    except ValidationError as e:
        problems = _describe(e)
        logger.warning(f"Command validation failed: {problems}")
        raise ContractValidationError(
            f"Invalid command: {'; '.join(problems)}",
            details=problems,
        )


def validate_request(payload: Any) -> RequestEnvelope:
    """
    Validate a raw request envelope

    Raises:
        ContractValidationError: If the envelope or its command is malformed
    """
    if isinstance(payload, RequestEnvelope):
        payload = payload.model_dump(by_alias=True)

    try:
        return RequestEnvelope.model_validate(payload)
    except ValidationError as e:
        problems = _describe(e)
        logger.warning(f"Request validation failed: {problems}")
        raise ContractValidationError(
            f"Invalid request: {'; '.join(problems)}",
            details=problems,
        )


def contract_errors(payload: Any) -> List[str]:
    """Validation problems for a request envelope; empty when valid"""
    try:
        validate_request(payload)
    except ContractValidationError as e:
        return list(e.details or [e.message])
    return []
