"""
tvdb.py

Authenticated read-only proxy for TVDB show metadata.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.services.tvdb_client import (
    TokenCache,
    TvdbAPIError,
    TvdbClient,
    TvdbResponseError,
    is_allowed_path,
)
from app.utils.payload import read_json_object

logger = logging.getLogger(__name__)
router = APIRouter()


def get_tvdb_client(request: Request) -> TvdbClient:
    cache = getattr(request.app.state, "tvdb_token_cache", None)
    if cache is None:
        cache = TokenCache(settings.tvdb_token_ttl_seconds)
        request.app.state.tvdb_token_cache = cache
    return TvdbClient(settings.tvdb_api_key, cache)


@router.post("/proxy")
async def tvdb_proxy(
    request: Request,
    client: TvdbClient = Depends(get_tvdb_client),
):
    path = (await read_json_object(request)).get("path")
    if not is_allowed_path(path):
        return JSONResponse({"error": "Invalid API path"}, status_code=400)

    try:
        data = await client.get(path)
    except TvdbResponseError as e:
        return JSONResponse({"error": str(e)}, status_code=e.status_code)
    except TvdbAPIError as e:
        logger.error(f"TVDB proxy error: {e}")
        return JSONResponse({"error": str(e)}, status_code=e.status_code)
    return {"data": data}
