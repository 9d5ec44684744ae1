"""
Error types and failure classification for the agent fitness engine.

Every recoverable failure in a fitness run ends up as a classified issue:

- ``scenario_contract``: the intent could not be safely translated
  (unknown table/column, unsafe construct, unresolved template, failed translation)
- ``schema_constraint``: the store rejected the operation
  (constraint, foreign key, uniqueness, enum violations)
- ``expectation_mismatch``: the operation ran but an explicit expectation failed
- ``execution_error``: anything else (network, unexpected exception, parse error)

``expectation_mismatch`` is never inferred from a message; callers assign it.
"""

import logging
import re
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

FailureClass = Literal[
    "scenario_contract",
    "schema_constraint",
    "expectation_mismatch",
    "execution_error",
]

SCENARIO_CONTRACT_PATTERN = re.compile(
    r"unknown\s+(table|column)|unsafe|template|scope mismatch|translation",
    re.IGNORECASE,
)
SCHEMA_CONSTRAINT_PATTERN = re.compile(
    r"violates|constraint|not-null|check|foreign key|duplicate key|enum",
    re.IGNORECASE,
)


def classify_message(message: str) -> FailureClass:
    """Classify a free-form error message into the failure taxonomy"""
    lowered = (message or "").lower()
    if SCENARIO_CONTRACT_PATTERN.search(lowered):
        return "scenario_contract"
    if SCHEMA_CONSTRAINT_PATTERN.search(lowered):
        return "schema_constraint"
    return "execution_error"


class AgentContractError(Exception):
    """Base error carrying a stable machine-readable code"""

    code = "AGENT_CONTRACT_ERROR"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["detail"] = self.details
        return {"success": False, "error": error}


class ContractValidationError(AgentContractError):
    """Payload does not match the command algebra"""

    code = "VALIDATION_ERROR"
    status_code = 400


class TemplateResolutionError(AgentContractError):
    """A {{token}} could not be resolved against the variable bag"""

    code = "TEMPLATE_UNRESOLVED"
    status_code = 400


class PackSourceError(AgentContractError):
    """A suite source could not be loaded"""

    code = "PACK_SOURCE_ERROR"
    status_code = 400


class ExecutorError(AgentContractError):
    """The live executor could not be reached or answered garbage"""

    code = "EXECUTOR_ERROR"
    status_code = 502


async def agent_contract_exception_handler(request: Request, exc: AgentContractError) -> JSONResponse:
    """Render engine errors as the uniform error envelope"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def setup_error_handling(app: FastAPI) -> None:
    """Register engine error handlers on a FastAPI app"""
    app.add_exception_handler(AgentContractError, agent_contract_exception_handler)
    logger.info("Agent contract error handling initialized")
