# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

K_MIN = 1
K_MAX = 20

DEFAULT_K = 5
DEFAULT_MAX_CHUNK_SIZE = 500
DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_MODEL = "llama3.1:8b-instruct-fp16"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_TIMEOUT = 60.0
DEFAULT_RESPONSE_OFFSET = 100

ENV_PREFIX = "CANVASCHAT_"


def clamp_k(k: int) -> int:
    return max(K_MIN, min(K_MAX, int(k)))


@dataclass(frozen=True)
class MarkerTemplates:
    """
    Role labels written at the start of a node's text.

    The label is wrapped in a highlight tag so the host renders it coloured:
        <mark style="background: #FF5582A6;">User:</mark> question...
    """
    user_label: str = "User:"
    assistant_label: str = "Assistant:"
    user_color: str = "#FF5582A6"
    assistant_color: str = "#82FF55A6"

    def __post_init__(self):
        if not self.user_label or not self.assistant_label:
            raise ValueError("Marker labels must be non-empty")
        if self.user_label.startswith(self.assistant_label) or self.assistant_label.startswith(self.user_label):
            raise ValueError("User and Assistant labels must be distinguishable")

    @property
    def user_mark(self) -> str:
        return f'<mark style="background: {self.user_color};">{self.user_label}</mark>'

    @property
    def assistant_mark(self) -> str:
        return f'<mark style="background: {self.assistant_color};">{self.assistant_label}</mark>'

    @property
    def user_prefix(self) -> str:
        return f"{self.user_mark} "

    @property
    def assistant_prefix(self) -> str:
        return f"{self.assistant_mark} "


@dataclass(frozen=True)
class ChatConfig:
    """Immutable settings handed to every component at construction."""
    k: int = DEFAULT_K
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    markers: MarkerTemplates = field(default_factory=MarkerTemplates)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    response_offset: int = DEFAULT_RESPONSE_OFFSET

    def __post_init__(self):
        # frozen: go through object.__setattr__ to normalise k
        object.__setattr__(self, "k", clamp_k(self.k))
        if self.max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {self.max_chunk_size}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ChatConfig":
        """
        Build a config from CANVASCHAT_* environment variables.
        A .env file is loaded first (existing variables win).
        """
        load_dotenv(dotenv_path)

        def env(name: str, default=None):
            return os.environ.get(ENV_PREFIX + name, default)

        markers = MarkerTemplates(
            user_color=env("USER_COLOR", MarkerTemplates.user_color),
            assistant_color=env("ASSISTANT_COLOR", MarkerTemplates.assistant_color),
        )
        return cls(
            k=int(env("K", DEFAULT_K)),
            max_chunk_size=int(env("MAX_CHUNK_SIZE", DEFAULT_MAX_CHUNK_SIZE)),
            markers=markers,
            system_prompt=env("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            api_url=env("API_URL", DEFAULT_API_URL),
            model=env("MODEL", DEFAULT_MODEL),
            api_key=env("API_KEY"),
            timeout=float(env("TIMEOUT", DEFAULT_TIMEOUT)),
            response_offset=int(env("RESPONSE_OFFSET", DEFAULT_RESPONSE_OFFSET)),
        )
