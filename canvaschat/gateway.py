# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import logging
from typing import Any, Dict, Optional, Sequence, Union

import requests

from .config import ChatConfig
from .errors import AuthError, UpstreamError
from .messages import Message

logger = logging.getLogger("canvaschat.gateway")

MessageLike = Union[Message, Dict[str, str]]


def _as_payload(messages: Sequence[MessageLike]):
    return [m.to_dict() if isinstance(m, Message) else dict(m) for m in messages]


class CompletionGateway:
    """Anything that turns an ordered message list into one reply string."""

    def complete(self, messages: Sequence[MessageLike]) -> str:
        raise NotImplementedError


class CompletionClient(CompletionGateway):
    """
    Client for an OpenAI-compatible chat completions server (vLLM, Ollama, ...).

    One blocking POST per call, no retries. Every failure surfaces as
    UpstreamError (AuthError for 401/403).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.session = requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    @classmethod
    def from_config(cls, config: ChatConfig) -> "CompletionClient":
        return cls(config.api_url, config.model, api_key=config.api_key, timeout=config.timeout)

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        # vLLM and Ollama nest the text under "error"; fall back to the raw body
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        if not isinstance(body, dict):
            return str(body)
        err = body.get("error") or body.get("message") or body
        if isinstance(err, dict):
            err = err.get("message", err)
        return str(err)

    def _post(self, path: str, json_data: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.post(url, json=json_data, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Request to {url} failed: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthError(f"Completion server rejected credentials ({resp.status_code} {resp.reason})")
        if not resp.ok:
            raise UpstreamError(f"Completion server returned {resp.status_code}: {self._error_message(resp)}")

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"Completion server returned a non-JSON body from {url}") from e

    def complete(self, messages: Sequence[MessageLike]) -> str:
        payload = {"model": self.model, "messages": _as_payload(messages)}
        logger.info(f"Requesting completion from {self.base_url} ({len(payload['messages'])} messages)")
        data = self._post("/v1/chat/completions", payload)
        if not isinstance(data, dict):
            raise UpstreamError("invalid completion response shape")

        if data.get("error"):
            err = data["error"]
            msg = err.get("message", err) if isinstance(err, dict) else err
            logger.error(f"Completion server returned an error: {msg}")
            raise UpstreamError(str(msg))

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise UpstreamError("invalid completion response shape")
        if not isinstance(content, str):
            raise UpstreamError("completion content is not a string")
        return content
