from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class OutgoingRequest:
    method: str
    url: str
    headers: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)

    json: Any = None
    data: Optional[Mapping[str, Any]] = None
    files: Optional[Mapping[str, Any]] = None

    def with_header(self, name: str, value: Any) -> "OutgoingRequest":
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def send_headers(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.headers.items() if v is not None}
