from __future__ import annotations

import os
from typing import Optional

from csrfswagger.core.cookies import parse_cookies
from csrfswagger.core.spec_url import resolve_spec_url, split_origin


API_ORIGIN = os.getenv("API_ORIGIN", "http://localhost:8000").rstrip("/")
SWAGGER_URL = os.getenv("SWAGGER_URL", "").strip()
API_COOKIE = os.getenv("API_COOKIE", "")
CSRF_COOKIE_NAME = os.getenv("CSRF_COOKIE_NAME", "csrftoken")


def _optional_float(raw: str) -> Optional[float]:
    raw = raw.strip()
    return float(raw) if raw else None


SPEC_FETCH_TIMEOUT_SEC = _optional_float(os.getenv("SPEC_FETCH_TIMEOUT_SEC", ""))

COOKIES = parse_cookies(API_COOKIE)
CSRFTOKEN = COOKIES.get(CSRF_COOKIE_NAME)
SPEC_URL = resolve_spec_url(*split_origin(API_ORIGIN), SWAGGER_URL)
