from __future__ import annotations

from http.cookies import CookieError, SimpleCookie
from typing import Optional


def parse_cookies(cookie_header: str) -> dict[str, str]:
    """Parse a `Cookie` header string into a name -> value mapping.

    Malformed pairs are skipped instead of discarding the whole header.
    """
    cookies: dict[str, str] = {}
    for chunk in cookie_header.split(";"):
        if "=" not in chunk:
            continue
        jar = SimpleCookie()
        try:
            jar.load(chunk.strip())
        except CookieError:
            continue
        for name, morsel in jar.items():
            cookies[name] = morsel.value
    return cookies


def read_cookie(cookie_header: str, name: str = "csrftoken") -> Optional[str]:
    return parse_cookies(cookie_header).get(name)
