"""Types for the Responses API surface.

Only the subset the gateway produces or accepts is modelled here: message
and function-call items, usage, the response object and the streaming event
names.
"""

from typing import Any, Literal, Optional, Union

from typing_extensions import TypedDict

Role = Literal["user", "assistant", "system", "developer"]

ItemStatus = Literal["in_progress", "completed", "incomplete"]

ResponseStatus = Literal["in_progress", "completed", "failed", "incomplete"]


class InputText(TypedDict):
    type: Literal["input_text"]
    text: str


class OutputText(TypedDict, total=False):
    type: Literal["output_text"]
    text: str
    annotations: list[Any]


class MessageItem(TypedDict, total=False):
    """A message, either supplied as input or produced as output."""

    type: Literal["message"]
    id: str
    role: Role
    status: ItemStatus
    content: Union[str, list[Any]]


class FunctionCallItem(TypedDict, total=False):
    type: Literal["function_call"]
    id: str
    call_id: str
    name: str
    arguments: str
    status: ItemStatus


class FunctionCallOutputItem(TypedDict, total=False):
    type: Literal["function_call_output"]
    call_id: str
    output: Union[str, list[Any]]


OutputItem = Union[MessageItem, FunctionCallItem]
InputItem = Union[MessageItem, FunctionCallItem, FunctionCallOutputItem]


class ResponseUsage(TypedDict, total=False):
    input_tokens: int
    output_tokens: int
    total_tokens: int


class ResponseError(TypedDict, total=False):
    code: str
    message: str


class ResponseObject(TypedDict, total=False):
    id: str
    object: Literal["response"]
    created_at: int
    status: ResponseStatus
    model: str
    output: list[OutputItem]
    usage: Optional[ResponseUsage]
    error: Optional[ResponseError]


# =============================================================================
# Streaming event names
# =============================================================================

EVENT_RESPONSE_CREATED = "response.created"
EVENT_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_CONTENT_PART_ADDED = "response.content_part.added"
EVENT_OUTPUT_TEXT_DELTA = "response.output_text.delta"
EVENT_FUNCTION_CALL_ARGS_DELTA = "response.function_call_arguments.delta"
EVENT_OUTPUT_TEXT_DONE = "response.output_text.done"
EVENT_OUTPUT_ITEM_DONE = "response.output_item.done"
EVENT_RESPONSE_COMPLETED = "response.completed"
EVENT_RESPONSE_DONE = "response.done"
EVENT_ERROR = "error"

CLOSING_EVENTS = (
    EVENT_OUTPUT_TEXT_DONE,
    EVENT_OUTPUT_ITEM_DONE,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_DONE,
)
