from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


class JSONCompletionClient(Protocol):
    async def complete_json(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float,
        max_output_tokens: int,
    ) -> dict[str, Any] | None: ...
