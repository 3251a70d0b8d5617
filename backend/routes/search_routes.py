import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from auth import get_current_user
from services.search_service import get_page_fetcher, get_web_search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["Search"])

MAX_RESULTS = 5
FETCH_TOP = 3


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    fetch_content: bool = Field(default=False, alias="fetchContent")


@router.post("")
async def search(
    body: SearchRequest,
    user_id: str = Depends(get_current_user),
    web_search=Depends(get_web_search),
    fetch_page=Depends(get_page_fetcher),
):
    if not body.query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    try:
        results = await web_search(body.query, MAX_RESULTS)
    except Exception as e:
        logger.error(f"Search failed for '{body.query}': {e}")
        raise HTTPException(status_code=500, detail=f"Search failed: {e}")

    if body.fetch_content:
        for result in results[:FETCH_TOP]:
            if not result.url.startswith(("http://", "https://")):
                continue
            try:
                result.content = await fetch_page(result.url)
            except Exception as e:
                logger.warning(f"Failed to fetch content from {result.url}: {e}")

    return {
        "query": body.query,
        "results": [r.model_dump() for r in results],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
