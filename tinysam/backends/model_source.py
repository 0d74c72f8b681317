"""
Model source resolution.

A model can be given as:
- A local file path
- An http(s) URL, downloaded with httpx
- A data: URL with a base64 payload, or raw bytes (inline)

Inline payloads are handed to the backend as bytes and flagged so the
backend uses them directly instead of copying them.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Union

import httpx
from loguru import logger


INLINE_BYTES_CONFIG_KEY = "session.use_ort_model_bytes_directly"


@dataclass(frozen=True)
class ModelSource:
    """A resolved model: either a filesystem path or an in-memory payload."""
    description: str
    path: Optional[str] = None
    payload: Optional[bytes] = None
    inline: bool = False

    @property
    def model(self) -> Union[str, bytes]:
        return self.payload if self.payload is not None else self.path


def describe(source: Union[str, bytes]) -> str:
    """Short printable form of a model source for logs and errors."""
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} inline bytes>"
    return source[:40] + ("..." if len(source) > 40 else "")


def is_inline(source: Union[str, bytes]) -> bool:
    return isinstance(source, (bytes, bytearray)) or source.startswith("data:")


def decode_data_url(url: str) -> bytes:
    """Decode a base64 data: URL into raw bytes."""
    header, sep, data = url.partition(",")
    if not sep or not header.startswith("data:"):
        raise ValueError(f"Malformed data URL: {describe(url)}")
    if not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported for models")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload in data URL: {exc}") from exc


async def resolve_model_source(
    source: Union[str, bytes],
    timeout_s: float = 120.0,
) -> ModelSource:
    """
    Resolve a model location into something a backend can load.

    Args:
        source: Path, URL, data URL or raw bytes
        timeout_s: Download timeout for http(s) URLs

    Returns:
        ModelSource
    """
    if is_inline(source):
        payload = bytes(source) if isinstance(source, (bytes, bytearray)) else decode_data_url(source)
        return ModelSource(describe(source), payload=payload, inline=True)

    if source.startswith(("http://", "https://")):
        logger.info(f"Downloading model from {source}")
        async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as client:
            response = await client.get(source)
            response.raise_for_status()
        logger.debug(f"Downloaded {len(response.content)} bytes from {describe(source)}")
        return ModelSource(describe(source), payload=response.content)

    return ModelSource(describe(source), path=source)
