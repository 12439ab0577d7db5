from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...catalog import SpreadsheetCatalog
from ...schemas import ErrorResponse, StoreOut, StoreResponse, TagOut
from ..deps import get_catalog

router = APIRouter(tags=["stores"])

_NOT_FOUND = {404: {"model": ErrorResponse}}


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Store not found"})


@router.get("/stores/{store_id}", response_model=StoreResponse, responses=_NOT_FOUND)
async def get_store(
    store_id: str, store_catalog: SpreadsheetCatalog = Depends(get_catalog)
):
    store = await store_catalog.get_store(store_id)
    if store is None:
        return _not_found()
    return StoreResponse(store=StoreOut.from_record(store))


@router.get("/stores/{store_id}/tags", response_model=list[TagOut], responses=_NOT_FOUND)
async def get_store_tags(
    store_id: str, store_catalog: SpreadsheetCatalog = Depends(get_catalog)
):
    store = await store_catalog.get_store(store_id)
    if store is None:
        return _not_found()
    return StoreOut.from_record(store).selectable_tags
