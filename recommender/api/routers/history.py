"""
Recommendation history router.
Lists and deletes the batches a user was served.
"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from recommender.api.dependencies import get_history_log
from recommender.core.exceptions import NotFoundError, UnauthorizedError
from recommender.models.interfaces import RecommendationHistoryRepository
from recommender.models.schemas import HistoryDeleteResponse, HistoryResponse, Pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["history"])


def _require_user(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise UnauthorizedError()
    return x_user_id


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="List Recommendation History",
    description="""
    Batches previously served to the user, newest first.

    Optional `contentPreference` / `languagePreference` filters match
    exactly. `totalCount` counts the entries matching the filters.
    """,
    responses={
        200: {"description": "History page returned"},
        401: {"description": "Missing X-User-Id header"},
    },
)
async def list_history(
    limit: int = Query(
        default=10,
        ge=1,
        le=100,
        description="Entries per page",
    ),
    page: int = Query(
        default=1,
        ge=1,
        description="1-based page number",
    ),
    content_preference: Optional[str] = Query(
        default=None,
        alias="contentPreference",
        description="Only entries for this topic",
    ),
    language_preference: Optional[str] = Query(
        default=None,
        alias="languagePreference",
        description="Only entries for this language",
    ),
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Authenticated user identifier",
    ),
    history_log: RecommendationHistoryRepository = Depends(get_history_log),
) -> HistoryResponse:
    user_id = _require_user(x_user_id)

    entries = await history_log.list_for_user(
        user_id,
        content_preference=content_preference,
        language_preference=language_preference,
        limit=limit,
        offset=(page - 1) * limit,
    )
    total_count = await history_log.count_for_user(
        user_id,
        content_preference=content_preference,
        language_preference=language_preference,
    )

    return HistoryResponse(
        data=entries,
        pagination=Pagination(
            page=page,
            limit=limit,
            total_count=total_count,
            total_pages=math.ceil(total_count / limit),
        ),
    )


@router.delete(
    "/history",
    response_model=HistoryDeleteResponse,
    summary="Delete Recommendation History",
    description="Delete one entry when `id` is given, otherwise all of the user's entries.",
    responses={
        200: {"description": "Entries deleted"},
        401: {"description": "Missing X-User-Id header"},
        404: {"description": "Entry not found for this user"},
    },
)
async def delete_history(
    entry_id: Optional[str] = Query(
        default=None,
        alias="id",
        description="Entry to delete",
    ),
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Authenticated user identifier",
    ),
    history_log: RecommendationHistoryRepository = Depends(get_history_log),
) -> HistoryDeleteResponse:
    user_id = _require_user(x_user_id)

    if entry_id:
        if not await history_log.delete(user_id, entry_id):
            raise NotFoundError("History entry", entry_id)
        logger.info(f"History entry deleted: {entry_id}", extra={"user_id": user_id})
        return HistoryDeleteResponse(message="History item deleted", deleted_count=1)

    deleted = await history_log.clear_for_user(user_id)
    logger.info(f"History cleared: {deleted} entries", extra={"user_id": user_id})
    return HistoryDeleteResponse(message="All history cleared", deleted_count=deleted)
