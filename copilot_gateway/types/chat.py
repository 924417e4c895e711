"""Chat-completions wire types exchanged with the upstream."""

from typing import Any, Literal, Optional, Union

from typing_extensions import NotRequired, TypedDict

ChatRole = Literal["system", "user", "assistant", "tool"]


class FunctionCall(TypedDict):
    name: str
    arguments: str


class ToolCall(TypedDict):
    id: str
    type: Literal["function"]
    function: FunctionCall


class ChatMessage(TypedDict):
    """One entry of the upstream ``messages`` array.

    ``tool_call_id`` is only meaningful on tool-role messages and must refer
    to a call emitted by an earlier assistant message.
    """

    role: ChatRole
    content: Optional[Union[str, list[Any]]]
    tool_calls: NotRequired[list[ToolCall]]
    tool_call_id: NotRequired[str]
    name: NotRequired[str]


class FunctionSpec(TypedDict):
    name: str
    description: str
    parameters: dict[str, Any]
    strict: NotRequired[bool]


class FunctionToolSpec(TypedDict):
    type: Literal["function"]
    function: FunctionSpec


class ChatCompletionBody(TypedDict):
    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float
    top_p: float
    n: int
    stream: bool
    tools: NotRequired[list[FunctionToolSpec]]
    tool_choice: NotRequired[Any]
    parallel_tool_calls: NotRequired[bool]


class CompletionExtra(TypedDict):
    language: str
    next_indent: int
    trim_by_indentation: bool


class CompletionBody(TypedDict):
    prompt: str
    suffix: str
    max_tokens: int
    temperature: float
    top_p: float
    n: int
    stream: bool
    stop: list[str]
    extra: CompletionExtra
