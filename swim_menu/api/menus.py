"""Menu endpoints.

Thin route layer over MenuGenerator and SqlMenuStore: request parsing,
error-to-status mapping and response shaping only.
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, Field

from swim_menu.db.menu_repository import SqlMenuStore
from swim_menu.menus.errors import (
    InvalidMenuResponseError,
    InvalidRequestError,
    MenuGenerationError,
    ModelProviderError,
    ProviderErrorKind,
)
from swim_menu.menus.export import menu_to_csv, menu_to_text
from swim_menu.menus.service import MenuGenerator
from swim_menu.menus.types import GeneratedMenu, GenerationRequest, LoadLevel

router = APIRouter(prefix="/api", tags=["menus"])

_PROVIDER_STATUS: dict[ProviderErrorKind, int] = {
    ProviderErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ProviderErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ProviderErrorKind.QUOTA_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ProviderErrorKind.OVERLOADED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProviderErrorKind.MODEL_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ProviderErrorKind.EMPTY_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ProviderErrorKind.UPSTREAM_ERROR: status.HTTP_502_BAD_GATEWAY,
}

_generator: MenuGenerator | None = None
_store: SqlMenuStore | None = None


def get_generator() -> MenuGenerator:
    global _generator
    if _generator is None:
        _generator = MenuGenerator()
    return _generator


def get_store() -> SqlMenuStore:
    global _store
    if _store is None:
        _store = SqlMenuStore()
    return _store


class GenerateMenuBody(BaseModel):
    ai_model: str = Field(..., alias="aiModel")
    api_key: str = Field(default="", alias="apiKey")
    load_levels: list[LoadLevel] = Field(..., alias="loadLevels")
    duration: int
    notes: str | None = None
    use_rag: bool = Field(default=False, alias="useRAG")
    openai_api_key: str | None = Field(default=None, alias="openaiApiKey")


class SearchSimilarBody(BaseModel):
    query: str
    duration: int | None = None
    openai_api_key: str = Field(..., alias="openaiApiKey")
    limit: int = Field(default=5, ge=1, le=50)


def _http_error(error: MenuGenerationError) -> HTTPException:
    if isinstance(error, InvalidRequestError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ModelProviderError):
        return HTTPException(status_code=_PROVIDER_STATUS[error.kind], detail=str(error))
    if isinstance(error, InvalidMenuResponseError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Menu generation failed")


@router.post("/generate-menu")
async def generate_menu_endpoint(body: GenerateMenuBody, generator: MenuGenerator = Depends(get_generator)) -> dict:
    request = GenerationRequest(
        load_levels=body.load_levels,
        duration=body.duration,
        notes=body.notes,
        model=body.ai_model,
        credentials=body.api_key,
        use_retrieval=body.use_rag,
        retrieval_credentials=body.openai_api_key,
    )

    try:
        result = await generator.generate_menu(request)
    except MenuGenerationError as e:
        logger.warning("Menu generation rejected", error_type=type(e).__name__, error_message=str(e))
        raise _http_error(e) from e

    return {
        "menuId": result.menu_id,
        **result.menu.to_wire(),
        "aiModel": body.ai_model,
        "loadLevels": [level.value for level in request.load_levels],
        "duration": body.duration,
        "notes": body.notes,
        "remainingTime": result.remaining_time,
        "withinDuration": result.within_duration,
        "saved": result.saved,
    }


@router.get("/menus/{menu_id}")
def get_menu_endpoint(menu_id: str, store: SqlMenuStore = Depends(get_store)) -> dict:
    menu = store.get_menu(menu_id)
    if menu is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Menu {menu_id} not found")
    return menu


@router.get("/menu-history")
def menu_history_endpoint(
    limit: int = Query(default=50, ge=1, le=500),
    store: SqlMenuStore = Depends(get_store),
) -> dict:
    return {"menus": store.list_history(limit=limit)}


@router.get("/menus/{menu_id}/export")
def export_menu_endpoint(
    menu_id: str,
    format: Literal["csv", "text"] = "csv",
    store: SqlMenuStore = Depends(get_store),
) -> Response:
    document = store.get_menu(menu_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Menu {menu_id} not found")

    menu = GeneratedMenu.model_validate(document)
    export = menu_to_csv(menu, menu_id) if format == "csv" else menu_to_text(menu, menu_id)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.file_name}"'},
    )


@router.post("/search-similar-menus")
async def search_similar_endpoint(body: SearchSimilarBody, generator: MenuGenerator = Depends(get_generator)) -> dict:
    try:
        hits = await generator.search_similar(body.query, body.duration, body.openai_api_key, top_k=body.limit)
    except InvalidRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ValueError as e:
        logger.warning("Similar menu search failed", error_message=str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Similar menu search failed") from e

    return {"results": [{"id": hit.id, "metadata": hit.metadata, "similarity": hit.similarity} for hit in hits]}
