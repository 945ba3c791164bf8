from __future__ import annotations

from typing import Optional

import httpx


DEFAULT_SPEC_PATH = "/docs?format=openapi"


def resolve_spec_url(protocol: str, host: str, configured_path: Optional[str] = None) -> str:
    """
    Returns the absolute url of the spec document. `protocol` keeps its trailing
    colon ("https:"); an empty `configured_path` falls back to DEFAULT_SPEC_PATH.
    """
    path = configured_path or DEFAULT_SPEC_PATH
    return f"{protocol}//{host}{path}"


def split_origin(origin: str) -> tuple[str, str]:
    url = httpx.URL(origin)
    if not url.scheme or not url.host:
        raise ValueError(f"origin must be absolute, got {origin!r}")
    return f"{url.scheme}:", url.netloc.decode("ascii")
