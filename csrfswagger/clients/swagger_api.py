from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

from csrfswagger.core.csrf import RequestInterceptor, csrf_interceptor
from csrfswagger.core.request import OutgoingRequest
from csrfswagger.core.spec import ApiSpec, Operation, parse_spec


logger = logging.getLogger(__name__)


class ParameterError(ValueError):
    pass


class UnknownOperationError(KeyError):
    pass


FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


def _attr_name(tag: str) -> str:
    return re.sub(r"\W", "_", tag)


def _header_value(name: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(_header_value(name, v) for v in value)
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ParameterError(f"header {name} must be a scalar or a list, got {type(value).__name__}")


def _multipart_part(value: Any) -> Any:
    if isinstance(value, (bytes, tuple)) or hasattr(value, "read"):
        return value
    return (None, str(value))


class TagApi:
    """Operations of one tag, callable as coroutines: `await api.listPets(limit=10)`."""

    def __init__(self, client: "SwaggerClient", operation_ids: list[str]):
        self._client = client
        self._operation_ids = operation_ids

    def __getattr__(self, name: str):
        if name.startswith("_") or name not in self._operation_ids:
            raise AttributeError(name)

        async def call(request_body: Any = None, **parameters: Any) -> httpx.Response:
            return await self._client.execute(name, parameters, request_body=request_body)

        call.__name__ = name
        return call

    def __dir__(self):
        return list(self._operation_ids)


class Apis:
    def __init__(self, client: "SwaggerClient"):
        # tags that clean up to the same attribute name share one TagApi
        grouped: dict[str, list[str]] = {}
        for tag, ops in client.spec.tags().items():
            grouped.setdefault(_attr_name(tag), []).extend(op.operation_id for op in ops)
        self._tags = {name: TagApi(client, ids) for name, ids in grouped.items()}

    def __getattr__(self, name: str) -> TagApi:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._tags[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, tag: str) -> TagApi:
        return self._tags[_attr_name(tag)]

    def __dir__(self):
        return list(self._tags)


class SwaggerClient:
    def __init__(
        self,
        spec: ApiSpec,
        http: httpx.AsyncClient,
        request_interceptor: Optional[RequestInterceptor] = None,
        cookies: Optional[Mapping[str, str]] = None,
        owns_http: bool = False,
    ):
        self.spec = spec
        self.http = http
        self.request_interceptor = request_interceptor
        self.cookies = dict(cookies or {})
        self._owns_http = owns_http
        self.apis = Apis(self)

    async def __aenter__(self) -> "SwaggerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def operation(self, operation_id: str) -> Operation:
        try:
            return self.spec.operations[operation_id]
        except KeyError:
            raise UnknownOperationError(operation_id) from None

    def build_request(
        self,
        operation_id: str,
        parameters: Optional[Mapping[str, Any]] = None,
        request_body: Any = None,
    ) -> OutgoingRequest:
        op = self.operation(operation_id)
        parameters = dict(parameters or {})

        path = op.path
        query: dict[str, Any] = {}
        headers: dict[str, Any] = {}
        cookies = dict(self.cookies)
        body: Any = None
        form: dict[str, Any] = {}

        for p in op.parameters:
            if p.name not in parameters:
                if p.required:
                    raise ParameterError(f"Required parameter {p.name} is not provided")
                continue

            value = parameters[p.name]
            if p.location == "path":
                path = path.replace("{%s}" % p.name, quote(str(value), safe=""))
            elif p.location == "query":
                query[p.name] = value
            elif p.location == "header":
                headers[p.name] = _header_value(p.name, value)
            elif p.location == "cookie":
                cookies[p.name] = str(value)
            elif p.location == "body":
                body = value
            else:
                form[p.name] = value

        if request_body is not None:
            if not op.has_request_body:
                raise ParameterError(f"{operation_id} does not take a request body")
            body = request_body
        elif op.request_body_required:
            raise ParameterError(f"{operation_id} requires a request body")

        if cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())

        data: Optional[dict[str, Any]] = None
        files: Optional[dict[str, Any]] = None
        if op.media_type in (FORM_URLENCODED, MULTIPART) or form:
            if body is not None:
                if not isinstance(body, Mapping):
                    raise ParameterError(f"{operation_id} takes a form body, got {type(body).__name__}")
                form.update(body)
                body = None
            if op.media_type == MULTIPART:
                files = {k: _multipart_part(v) for k, v in form.items()} or None
            else:
                data = form or None

        return OutgoingRequest(
            method=op.method,
            url=f"{self.spec.base_url}{path}",
            headers=headers,
            params=query,
            json=body,
            data=data,
            files=files,
        )

    async def execute(
        self,
        operation_id: str,
        parameters: Optional[Mapping[str, Any]] = None,
        request_body: Any = None,
    ) -> httpx.Response:
        """
        Invokes the operation named `operation_id`. Every request goes through
        the request interceptor before it is sent; non-2xx responses raise
        httpx.HTTPStatusError.
        """
        req = self.build_request(operation_id, parameters, request_body)
        if self.request_interceptor is not None:
            req = self.request_interceptor(req)

        logger.debug("%s %s (%s)", req.method, req.url, operation_id)
        r = await self.http.request(
            req.method,
            req.url,
            headers=req.send_headers(),
            params=dict(req.params) or None,
            json=req.json,
            data=req.data,
            files=req.files,
        )
        r.raise_for_status()
        return r


async def make_swagger_client(
    swagger_spec: str,
    csrftoken: Optional[str],
    *,
    spec_url: Optional[str] = None,
    cookies: Optional[Mapping[str, str]] = None,
    http: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> SwaggerClient:
    """
    Returns a swagger client built from the given spec text that attaches
    csrftoken to unsafe requests. The spec is parsed in-process; nothing is
    fetched here.
    """
    spec = parse_spec(swagger_spec, spec_url)

    owns_http = http is None
    if http is None:
        http = httpx.AsyncClient(timeout=timeout)

    client = SwaggerClient(
        spec,
        http,
        request_interceptor=csrf_interceptor(csrftoken),
        cookies=cookies,
        owns_http=owns_http,
    )
    logger.info(
        "swagger client ready: %s (%d operations, base %s)",
        spec.title or spec_url or "inline spec",
        len(spec.operations),
        spec.base_url or "<relative>",
    )
    return client


async def fetch_spec(client: httpx.AsyncClient, spec_url: str) -> Any:
    r = await client.get(spec_url)
    r.raise_for_status()
    return r.json()


async def get_client_from_spec(
    spec_url: str,
    csrftoken: Optional[str],
    *,
    cookies: Optional[Mapping[str, str]] = None,
    http: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> SwaggerClient:
    """
    Returns a swagger client given the url for its spec and a csrftoken to attach
    to unsafe requests. Fetch and JSON errors propagate unchanged.
    """
    logger.debug("fetching spec from %s", spec_url)
    if http is None:
        async with httpx.AsyncClient(timeout=timeout) as fetcher:
            doc = await fetch_spec(fetcher, spec_url)
    else:
        doc = await fetch_spec(http, spec_url)

    spec = json.dumps(doc)
    return await make_swagger_client(
        spec,
        csrftoken,
        spec_url=spec_url,
        cookies=cookies,
        http=http,
        timeout=timeout,
    )
