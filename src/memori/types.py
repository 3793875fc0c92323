"""Value types passed between the facade, writer, augmentation and recall."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

SYSTEM_ROLE = "system"


@dataclass(slots=True)
class Message:
    role: str
    content: str
    type: str = ""

    @property
    def is_system(self) -> bool:
        return self.role.strip().lower() == SYSTEM_ROLE


@dataclass(slots=True)
class ConversationPayload:
    """One exchange handed to the writer: the prompt messages plus the reply."""

    messages: list[Message] = field(default_factory=list)
    response: Message | None = None


@dataclass(slots=True)
class Fact:
    content: str
    score: float
    num_times: int = 0
    date_last_time: datetime | None = None


@dataclass(slots=True)
class AugmentationInput:
    conversation_id: int | None
    entity_id: str
    process_id: str = ""
    messages: list[Message] = field(default_factory=list)
