# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .kinds import MESSAGE_SYSTEM, MESSAGE_USER, MESSAGE_ASSISTANT

MESSAGE_ROLES = (MESSAGE_SYSTEM, MESSAGE_USER, MESSAGE_ASSISTANT)


@dataclass(frozen=True)
class Message:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role '{self.role}', must be one of {MESSAGE_ROLES}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


# Ordered messages: one leading system message, then user/assistant alternating
ConversationRequest = List[Message]


def is_alternating(messages: Sequence[Message]) -> bool:
    """
    System messages are skipped; the rest must start with a user message and
    never repeat a role twice in a row.
    """
    last_role = None
    for message in messages:
        if message.role == MESSAGE_SYSTEM:
            continue
        if last_role is None and message.role != MESSAGE_USER:
            return False
        if message.role == last_role:
            return False
        last_role = message.role
    return True
