"""Page lifecycle operations used by the page endpoints.

Callers authorize first (see core.authorization); these methods assume the
principal has already been allowed and only record who made the change.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.access import Principal, Visibility
from ..exceptions import ValidationError
from ..models import Page
from ..repositories.page_repository import PageRepository

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    slug = _SLUG_STRIP.sub("-", title.strip().lower()).strip("-")
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit", field="title")
    return slug


class PageService:
    """Create, update, soft-delete and restore pages."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PageRepository(db)

    def create_page(
        self,
        principal: Principal,
        title: str,
        visibility: Visibility = Visibility.INHERIT,
        tags: Optional[List[str]] = None,
    ) -> Page:
        page = self.repo.create(
            title=title.strip(),
            slug=self._unique_slug(slugify(title)),
            created_by=principal.user_id,
            visibility=visibility,
            tags=tags,
        )
        self.db.commit()
        logger.info("Page created", extra={"page_id": page.id, "user_id": principal.user_id})
        return page

    def update_page(
        self,
        principal: Principal,
        page_id: int,
        title: Optional[str] = None,
        visibility: Optional[Visibility] = None,
        is_locked: Optional[bool] = None,
    ) -> Page:
        page = self.repo.get_by_id(page_id)
        if title is not None and title.strip():
            page.title = title.strip()
        if visibility is not None:
            page.visibility = int(visibility)
        if is_locked is not None:
            page.is_locked = is_locked
        page.modified_by = principal.user_id
        self.db.commit()
        self.db.refresh(page)
        return page

    def soft_delete(self, principal: Principal, page_id: int) -> Page:
        page = self.repo.get_by_id(page_id)
        page.is_deleted = True
        page.modified_by = principal.user_id
        self.db.commit()
        logger.info("Page deleted", extra={"page_id": page_id, "user_id": principal.user_id})
        return page

    def restore(self, principal: Principal, page_id: int) -> Page:
        page = self.repo.get_by_id(page_id)
        page.is_deleted = False
        page.modified_by = principal.user_id
        self.db.commit()
        self.db.refresh(page)
        logger.info("Page restored", extra={"page_id": page_id, "user_id": principal.user_id})
        return page

    def _unique_slug(self, base: str) -> str:
        slug, n = base, 1
        while self.db.query(Page.id).filter(Page.slug == slug).first() is not None:
            n += 1
            slug = f"{base}-{n}"
        return slug
