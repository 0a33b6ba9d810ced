"""Translation statistics endpoint.

- GET /translation/stats                   : completeness over published articles and all news
- GET /translation/stats?content_id=<uuid> : completeness of one article or news item
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, get_current_user
from newsdesk.api.errors import Envelope, ok
from newsdesk.api.utils import parse_uuid
from newsdesk.content.translation import content_translation_stats, global_translation_stats
from newsdesk.server.auth import AuthContext

translation_router = APIRouter(prefix="/translation", tags=["translation"])


@translation_router.get(
    "/stats",
    response_model=Envelope[dict],
    operation_id="get_translation_stats",
    summary="Translation completeness",
)
async def translation_stats_endpoint(
    content_id: str | None = Query(None),
    user: AuthContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    if content_id is None:
        return ok(await session.run_sync(global_translation_stats))

    item_id = parse_uuid(content_id, "content_id")
    try:
        return ok(await session.run_sync(content_translation_stats, item_id))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
