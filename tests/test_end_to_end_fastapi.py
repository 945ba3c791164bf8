import httpx
import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from csrfswagger.clients.swagger_api import get_client_from_spec
from csrfswagger.core.csrf import SAFE_METHODS


SPEC_URL = "http://testserver/docs?format=openapi"


class ItemIn(BaseModel):
    name: str = Field(min_length=1)
    qty: int = Field(default=1, ge=0)


class Item(ItemIn):
    id: int


def _backend() -> FastAPI:
    app = FastAPI(title="Inventory", version="0.1.0", docs_url=None, redoc_url=None)
    items: dict[int, Item] = {}

    @app.middleware("http")
    async def require_csrf(request: Request, call_next):
        if request.method not in SAFE_METHODS:
            token = request.cookies.get("csrftoken")
            if not token or request.headers.get("x-csrftoken") != token:
                return JSONResponse({"detail": "CSRF Failed"}, status_code=403)
        return await call_next(request)

    @app.get("/docs", include_in_schema=False)
    def docs(format: str = "openapi"):
        return app.openapi()

    @app.get("/items", tags=["items"], operation_id="items_list", response_model=list[Item])
    def list_items(min_qty: int = 0):
        return [i for i in items.values() if i.qty >= min_qty]

    @app.post("/items", tags=["items"], operation_id="items_create", response_model=Item)
    def create_item(payload: ItemIn):
        item = Item(id=len(items) + 1, **payload.model_dump())
        items[item.id] = item
        return item

    @app.delete("/items/{item_id}", tags=["items"], operation_id="items_delete")
    def delete_item(item_id: int):
        if items.pop(item_id, None) is None:
            raise HTTPException(status_code=404, detail="item not found")
        return {"ok": True}

    return app


def _http(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_unsafe_calls_pass_backend_csrf_check():
    async with _http(_backend()) as http:
        client = await get_client_from_spec(SPEC_URL, "tok", cookies={"csrftoken": "tok"}, http=http)

        assert client.spec.base_url == "http://testserver"

        r = await client.apis.items.items_create(request_body={"name": "bolt", "qty": 4})
        assert r.json() == {"id": 1, "name": "bolt", "qty": 4}

        r = await client.apis.items.items_list(min_qty=1)
        assert [i["name"] for i in r.json()] == ["bolt"]

        r = await client.execute("items_delete", {"item_id": 1})
        assert r.json() == {"ok": True}

        with pytest.raises(httpx.HTTPStatusError) as err:
            await client.execute("items_delete", {"item_id": 1})
        assert err.value.response.status_code == 404


@pytest.mark.asyncio
async def test_wrong_token_is_rejected_but_reads_work():
    async with _http(_backend()) as http:
        client = await get_client_from_spec(SPEC_URL, "wrong", cookies={"csrftoken": "tok"}, http=http)

        r = await client.execute("items_list")
        assert r.json() == []

        with pytest.raises(httpx.HTTPStatusError) as err:
            await client.execute("items_create", request_body={"name": "nut"})
        assert err.value.response.status_code == 403


@pytest.mark.asyncio
async def test_missing_token_sends_no_header():
    async with _http(_backend()) as http:
        client = await get_client_from_spec(SPEC_URL, None, http=http)

        with pytest.raises(httpx.HTTPStatusError) as err:
            await client.execute("items_create", request_body={"name": "nut"})
        assert err.value.response.status_code == 403


@pytest.mark.asyncio
async def test_spec_fetch_status_error_propagates():
    async with _http(_backend()) as http:
        with pytest.raises(httpx.HTTPStatusError):
            await get_client_from_spec("http://testserver/missing", "tok", http=http)
