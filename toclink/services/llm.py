"""Streaming chat clients used to turn table-of-contents text into entries."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx
import requests

from ..config import Settings
from ..utils.errors import UpstreamError
from .context import CancellationToken

LOGGER = logging.getLogger(__name__)

PROMPT_DIR = Path(__file__).resolve().parent / "prompts"
SYSTEM_PROMPT_PATH = PROMPT_DIR / "toc_system.txt"
TEXT_PROMPT_PATH = PROMPT_DIR / "toc_text.txt"

CONNECT_TIMEOUT_S = 10

ChunkSink = Callable[[str], None]
Message = Dict[str, str]


def _load_prompt(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:  # pragma: no cover - packaging error
        raise UpstreamError("LLM prompt template missing", code="prompt_missing") from exc


def build_messages(text: str) -> List[Message]:
    return [
        {"role": "system", "content": _load_prompt(SYSTEM_PROMPT_PATH).strip()},
        {"role": "user", "content": _load_prompt(TEXT_PROMPT_PATH) + text},
    ]


def _decode(line: Any) -> str:
    if isinstance(line, bytes):
        return line.decode("utf-8", errors="replace")
    return line or ""


def _collect(
    lines: Iterable[Any],
    parse: Callable[[str], tuple[Optional[str], bool]],
    cancel: Optional[CancellationToken],
    on_chunk: Optional[ChunkSink],
) -> str:
    parts: List[str] = []
    for raw in lines:
        if cancel is not None:
            cancel.raise_if_cancelled()
        line = _decode(raw).strip()
        if not line:
            continue
        content, finished = parse(line)
        if content:
            parts.append(content)
            if on_chunk is not None:
                on_chunk(content)
        if finished:
            break
    return "".join(parts)


def _parse_openai_line(line: str) -> tuple[Optional[str], bool]:
    if not line.startswith("data:"):
        return None, False
    data = line[len("data:") :].strip()
    if data == "[DONE]":
        return None, True
    try:
        chunk = json.loads(data)
    except ValueError:
        LOGGER.debug("Ignoring malformed stream line: %s", data[:120])
        return None, False
    choices = chunk.get("choices") or [{}]
    delta = (choices[0] or {}).get("delta") or {}
    return delta.get("content"), False


def _parse_ollama_line(line: str) -> tuple[Optional[str], bool]:
    try:
        chunk = json.loads(line)
    except ValueError:
        LOGGER.debug("Ignoring malformed stream line: %s", line[:120])
        return None, False
    message = chunk.get("message") or {}
    return message.get("content"), bool(chunk.get("done"))


def _openai_error(response: requests.Response) -> str:
    try:
        detail = response.json().get("error", {}).get("message")
    except (ValueError, AttributeError):
        detail = None
    return detail or f"OpenAI API error: {response.status_code}"


def stream_openai(
    settings: Settings,
    messages: Sequence[Mapping[str, str]],
    cancel: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> str:
    if not settings.openai_api_key:
        raise UpstreamError("OpenAI API key not configured.", code="missing_api_key")

    payload = {
        "model": settings.openai_model,
        "messages": [dict(message) for message in messages],
        "temperature": 1,
        "response_format": {"type": "json_object"},
        "stream": True,
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.openai_api_key}",
    }
    try:
        response = requests.post(
            settings.openai_url,
            headers=headers,
            json=payload,
            stream=True,
            timeout=(CONNECT_TIMEOUT_S, settings.llm_timeout_s),
        )
    except requests.RequestException as exc:
        LOGGER.error("OpenAI request failed: %s", exc)
        raise UpstreamError("OpenAI request failed", code="transport_error") from exc

    try:
        if response.status_code >= 400:
            raise UpstreamError(_openai_error(response), status_code=response.status_code)
        return _collect(response.iter_lines(), _parse_openai_line, cancel, on_chunk)
    except requests.RequestException as exc:
        raise UpstreamError("OpenAI stream interrupted", code="transport_error") from exc
    finally:
        response.close()


def stream_ollama(
    settings: Settings,
    messages: Sequence[Mapping[str, str]],
    cancel: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> str:
    payload = {
        "model": settings.ollama_model,
        "messages": [dict(message) for message in messages],
        "stream": True,
        "format": "json",
    }
    timeout = httpx.Timeout(settings.llm_timeout_s, connect=CONNECT_TIMEOUT_S)
    try:
        with httpx.stream(
            "POST",
            settings.ollama_url,
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=timeout,
        ) as response:
            if response.status_code >= 400:
                raise UpstreamError(
                    f"Ollama error: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                )
            return _collect(response.iter_lines(), _parse_ollama_line, cancel, on_chunk)
    except httpx.HTTPError as exc:
        LOGGER.error("Ollama request failed: %s", exc)
        raise UpstreamError(f"Ollama request failed: {exc}", code="transport_error") from exc


PROVIDERS = {"openai": stream_openai, "ollama": stream_ollama}


def stream_chat(
    settings: Settings,
    messages: Sequence[Mapping[str, str]],
    cancel: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> str:
    """Stream a chat completion from the configured provider and return the full text.

    The cancellation token is polled for every streamed line.
    """

    provider = PROVIDERS.get(settings.llm_provider)
    if provider is None:
        raise UpstreamError(
            f"Unknown LLM provider: {settings.llm_provider}", code="unknown_provider"
        )

    LOGGER.info("Calling %s for table-of-contents extraction", settings.llm_provider)
    text = provider(settings, messages, cancel, on_chunk)
    if not text.strip():
        raise UpstreamError("LLM returned an empty response", code="empty_response")
    LOGGER.debug("LLM response: %d characters", len(text))
    return text


__all__ = [
    "PROVIDERS",
    "build_messages",
    "stream_chat",
    "stream_ollama",
    "stream_openai",
]
