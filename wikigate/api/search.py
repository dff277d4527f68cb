"""Title search across pages, filtered to what the caller may view."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from ..core.access import Principal
from ..core.auth import optional_auth
from ..database import get_db
from ..repositories.page_repository import PageRepository
from ..schemas.page import PageListItem
from ..services import AccessService

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=List[PageListItem])
def search_pages(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Most recently modified matches first.

    Filtering happens after the limit, so a caller who cannot see every
    match gets fewer than *limit* results rather than a second query.
    """
    matches = PageRepository(db).search_titles(q, limit=limit)
    return AccessService(db).visible_pages(principal, matches)
