"""
Parsing of Swagger 2.0 / OpenAPI 3.x documents into the operation table a
SwaggerClient dispatches on.

Only what is needed to build requests is kept: operation ids, methods, path
templates, parameter locations and the base url. Schemas are not validated.
"""
from __future__ import annotations

import json
import re
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError


HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
DEFAULT_TAG = "default"


class SpecError(ValueError):
    pass


class Parameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: Literal["path", "query", "header", "cookie", "body", "formData"] = Field(alias="in")
    required: bool = False


class Operation(BaseModel):
    operation_id: str
    method: str
    path: str
    tag: str = DEFAULT_TAG
    parameters: list[Parameter] = Field(default_factory=list)
    has_request_body: bool = False
    request_body_required: bool = False
    media_type: Optional[str] = None


class ApiSpec(BaseModel):
    version: str
    title: Optional[str] = None
    base_url: str
    operations: dict[str, Operation] = Field(default_factory=dict)

    def tags(self) -> dict[str, list[Operation]]:
        out: dict[str, list[Operation]] = {}
        for op in self.operations.values():
            out.setdefault(op.tag, []).append(op)
        return out


def operation_id_for(op: dict, method: str, path: str) -> str:
    raw = op.get("operationId") or f"{method}_{path}"
    return re.sub(r"\W", "_", str(raw))


def _resolve_ref(doc: dict, item: Any) -> Any:
    if not isinstance(item, dict) or "$ref" not in item:
        return item
    ref = item["$ref"]
    if not isinstance(ref, str) or not ref.startswith("#/"):
        raise SpecError(f"unsupported $ref: {ref!r}")

    node: Any = doc
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            raise SpecError(f"unresolvable $ref: {ref}")
        node = node[part]
    return node


def _parameters(doc: dict, raw: Any, where: str) -> list[Parameter]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SpecError(f"{where}: parameters must be a list")

    params: list[Parameter] = []
    for item in raw:
        try:
            p = Parameter.model_validate(_resolve_ref(doc, item))
        except ValidationError as e:
            raise SpecError(f"{where}: invalid parameter: {e}") from e
        if p.location == "path":
            p.required = True
        params.append(p)
    return params


def _merge(path_level: list[Parameter], op_level: list[Parameter]) -> list[Parameter]:
    merged = {(p.name, p.location): p for p in path_level}
    for p in op_level:
        merged[(p.name, p.location)] = p
    return list(merged.values())


def _tag(op: dict, where: str) -> str:
    tags = op.get("tags") or [DEFAULT_TAG]
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise SpecError(f"{where}: 'tags' must be a list of strings")
    return tags[0]


def _first_media_type(content: Any, where: str) -> Optional[str]:
    if content is None:
        return None
    if isinstance(content, dict):
        return next(iter(content), None)
    if isinstance(content, list) and all(isinstance(c, str) for c in content):
        return content[0] if content else None
    raise SpecError(f"{where}: invalid media types {content!r}")


def _media_type(doc: dict, op: dict, body: Optional[dict]) -> Optional[str]:
    """First declared request media type: requestBody content in 3.x, consumes in 2.0."""
    if body is not None:
        return _first_media_type(body.get("content"), "requestBody content")
    return _first_media_type(op.get("consumes") or doc.get("consumes"), "consumes")


def _server_url(doc: dict) -> str:
    servers = doc.get("servers") or [{"url": "/"}]
    if not isinstance(servers, list) or not isinstance(servers[0], dict):
        raise SpecError("'servers' must be a list of objects")
    server = servers[0]
    url = server.get("url") or "/"
    if not isinstance(url, str):
        raise SpecError("server 'url' must be a string")
    variables = server.get("variables") or {}
    if not isinstance(variables, dict):
        raise SpecError("server 'variables' must be an object")
    for name, var in variables.items():
        default = var.get("default", "") if isinstance(var, dict) else ""
        url = url.replace("{" + name + "}", str(default))
    return url


def _base_url(doc: dict, spec_url: Optional[str]) -> str:
    ref = httpx.URL(spec_url) if spec_url else None

    if "openapi" in doc:
        url = _server_url(doc)
        if ref is not None:
            url = str(ref.join(url))
        return url.rstrip("/")

    schemes = doc.get("schemes") or [ref.scheme if ref is not None else "http"]
    if not isinstance(schemes, list) or not isinstance(schemes[0], str):
        raise SpecError("'schemes' must be a list of strings")
    host = doc.get("host") or (ref.netloc.decode("ascii") if ref is not None else "")
    if not isinstance(host, str):
        raise SpecError("'host' must be a string")
    base_path = str(doc.get("basePath") or "")
    if not host:
        return base_path.rstrip("/")
    return f"{schemes[0]}://{host}{base_path}".rstrip("/")


def parse_spec(spec_text: str, spec_url: Optional[str] = None) -> ApiSpec:
    """
    Builds an ApiSpec from the JSON text of a spec document. `spec_url` is where
    the document came from; relative server urls and a missing host are
    resolved against it.
    """
    try:
        doc = json.loads(spec_text)
    except json.JSONDecodeError as e:
        raise SpecError(f"spec is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise SpecError("spec must be a JSON object")

    version = doc.get("openapi") or doc.get("swagger")
    if not isinstance(version, str) or not version.startswith(("2.", "3.")):
        raise SpecError("spec must declare a 'swagger: 2.x' or 'openapi: 3.x' version")

    paths = doc.get("paths")
    if paths is None:
        paths = {}
    if not isinstance(paths, dict):
        raise SpecError("'paths' must be an object")

    operations: dict[str, Operation] = {}
    for path, item in paths.items():
        item = _resolve_ref(doc, item)
        if not isinstance(item, dict):
            raise SpecError(f"path item {path!r} must be an object")

        shared = _parameters(doc, item.get("parameters"), path)

        for method in HTTP_METHODS:
            op = item.get(method)
            if op is None:
                continue
            if not isinstance(op, dict):
                raise SpecError(f"{method.upper()} {path} must be an object")

            op_id = operation_id_for(op, method, path)
            if op_id in operations:
                raise SpecError(f"duplicate operation id: {op_id}")

            where = f"{method.upper()} {path}"
            body = _resolve_ref(doc, op.get("requestBody")) if "requestBody" in op else None
            if body is not None and not isinstance(body, dict):
                raise SpecError(f"{where}: 'requestBody' must be an object")

            try:
                operations[op_id] = Operation(
                    operation_id=op_id,
                    method=method.upper(),
                    path=path,
                    tag=_tag(op, where),
                    parameters=_merge(shared, _parameters(doc, op.get("parameters"), where)),
                    has_request_body=body is not None,
                    request_body_required=bool(body.get("required")) if body is not None else False,
                    media_type=_media_type(doc, op, body),
                )
            except ValidationError as e:
                raise SpecError(f"{where}: invalid operation: {e}") from e

    info = doc.get("info") or {}
    if not isinstance(info, dict):
        raise SpecError("'info' must be an object")

    try:
        return ApiSpec(
            version=version,
            title=info.get("title"),
            base_url=_base_url(doc, spec_url),
            operations=operations,
        )
    except ValidationError as e:
        raise SpecError(f"invalid spec: {e}") from e
