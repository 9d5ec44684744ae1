"""
Command algebra accepted by the execution layer
"""

from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional, Union

from pydantic import Field, StrictBool, StrictFloat, StrictInt, StrictStr, model_serializer, model_validator

from agent_contract.models.base import FrozenContractModel

ScalarValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]
FilterValue = Union[ScalarValue, List[ScalarValue]]

FilterOperator = Literal[
    "eq",
    "neq",
    "gt",
    "gte",
    "lt",
    "lte",
    "like",
    "ilike",
    "in",
    "is_null",
    "not_null",
]
NULL_OPERATORS = ("is_null", "not_null")

MutateAction = Literal["insert", "update", "delete"]
CommandAction = Literal["query", "insert", "update", "delete"]


class CommandFilter(FrozenContractModel):
    """One WHERE-clause condition"""
    column: str = Field(min_length=1)
    op: FilterOperator
    value: Optional[FilterValue] = None

    @model_validator(mode="after")
    def check_value_shape(self) -> "CommandFilter":
        if self.op == "in" and not isinstance(self.value, list):
            raise ValueError(f"IN operator requires an array value for column {self.column!r}")
        if self.op in NULL_OPERATORS and self.value is not None:
            raise ValueError(f"{self.op} operator takes no value for column {self.column!r}")
        return self

    @model_serializer(mode="wrap")
    def keep_explicit_null(self, handler) -> Dict[str, Any]:
        # eq/neq against null must survive exclude_none
        data = handler(self)
        if self.op not in NULL_OPERATORS and "value" not in data:
            data["value"] = None
        return data


class CommandSort(FrozenContractModel):
    """ORDER BY instruction"""
    column: str = Field(min_length=1)
    direction: Literal["asc", "desc"] = "asc"


class QueryCommand(FrozenContractModel):
    """Canonical read command"""
    kind: Literal["query"] = "query"
    table: str = Field(min_length=1)
    select: Optional[List[Annotated[str, Field(min_length=1)]]] = None
    filters: List[CommandFilter] = Field(default_factory=list)
    sort: List[CommandSort] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, ge=1, le=500)
    offset: Optional[int] = Field(default=None, ge=0)


class MutateCommand(FrozenContractModel):
    """Canonical write command

    Unfiltered update/delete is structurally valid; rejecting unsafe
    mutations is the executor's call.
    """
    kind: Literal["mutate"] = "mutate"
    action: MutateAction
    table: str = Field(min_length=1)
    values: Optional[Dict[str, FilterValue]] = None
    filters: List[CommandFilter] = Field(default_factory=list)
    returning: Optional[List[Annotated[str, Field(min_length=1)]]] = None


class BatchCommand(FrozenContractModel):
    """Ordered list of commands; steps may be nested batches"""
    kind: Literal["batch"] = "batch"
    steps: List["Command"] = Field(min_length=1)


# Union type for all commands
Command = Annotated[
    Union[QueryCommand, MutateCommand, BatchCommand],
    Field(discriminator="kind"),
]

# Resolve the self-reference now that Command exists
BatchCommand.model_rebuild()


def command_action(command: Union[QueryCommand, MutateCommand, BatchCommand]) -> str:
    """Action label used in logs and reports"""
    if isinstance(command, QueryCommand):
        return "query"
    if isinstance(command, MutateCommand):
        return command.action
    return "batch"


def iter_commands(command: Union[QueryCommand, MutateCommand, BatchCommand]) -> Iterator[Union[QueryCommand, MutateCommand]]:
    """Walk a command depth-first, yielding leaf query/mutate commands"""
    if isinstance(command, BatchCommand):
        for step in command.steps:
            yield from iter_commands(step)
    else:
        yield command


def command_tables(command: Union[QueryCommand, MutateCommand, BatchCommand]) -> List[str]:
    """Tables referenced by a command, in first-seen order"""
    seen: List[str] = []
    for leaf in iter_commands(command):
        if leaf.table not in seen:
            seen.append(leaf.table)
    return seen
