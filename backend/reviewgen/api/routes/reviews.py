from __future__ import annotations

from fastapi import APIRouter, Depends

from ...catalog import SpreadsheetCatalog
from ...errors import ReviewValidationError
from ...generator import ReviewGenerator
from ...languages import LANGUAGE_NAMES, SUPPORTED_LANGUAGES, base_language
from ...logging_config import get_logger
from ...schemas import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    LanguagesResponse,
    ReviewMeta,
)
from ..deps import get_catalog, get_review_generator

router = APIRouter(tags=["reviews"])
logger = get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post("/reviews/generate", response_model=GenerateResponse, responses=_ERROR_RESPONSES)
async def generate_review(
    req: GenerateRequest,
    generator: ReviewGenerator = Depends(get_review_generator),
    store_catalog: SpreadsheetCatalog = Depends(get_catalog),
) -> GenerateResponse:
    generator.ensure_configured()

    store_id = req.store_id.strip()
    store_name = (req.store_name or "").strip()
    if not store_id and not store_name:
        raise ReviewValidationError("Missing store identifier", public_message="Store is required")

    category = (req.store_category or "").strip()
    subject = store_name or store_id
    tags = None
    if store_id and store_catalog.is_configured:
        store = await store_catalog.get_store(store_id)
        if store is not None:
            category = store.category or category
            subject = store.name
            tags = store.as_catalog()
        else:
            logger.info("review_store_not_in_catalog", store_id=store_id)

    result = await generator.generate(
        req.selection(),
        req.persona(),
        req.language,
        category or None,
        subject,
        catalog=tags,
    )
    return GenerateResponse(
        review=result.text,
        meta=ReviewMeta(
            tone=result.style.value,
            language=result.language,
            token_count=result.token_estimate,
            cost=result.cost_estimate,
        ),
    )


@router.get("/languages", response_model=LanguagesResponse)
def list_languages() -> LanguagesResponse:
    return LanguagesResponse(
        base=base_language(),
        languages={code: LANGUAGE_NAMES[code] for code in SUPPORTED_LANGUAGES},
    )
