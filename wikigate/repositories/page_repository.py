"""Page repository.

Unlike a content repository, reads here include soft-deleted pages: the
authorization layer decides who may see them (admins, for recovery), so
hiding them at query level would turn a "deleted" decision into a 404.
"""

from typing import List, Optional

from ..core.access import ResourceSnapshot, Visibility
from ..exceptions import PageNotFoundError
from ..models import Page, Tag
from .base import BaseRepository


def page_snapshot(page: Page) -> ResourceSnapshot:
    """Project a page row into the authorization snapshot."""
    return ResourceSnapshot.page(
        page.id,
        visibility=Visibility(page.visibility or 0),
        is_deleted=bool(page.is_deleted),
        is_locked=bool(page.is_locked),
        created_by=page.created_by,
        created_on=page.created_on,
        modified_by=page.modified_by,
        modified_on=page.modified_on,
    )


class PageRepository(BaseRepository[Page]):
    """Data access for pages and their tags."""

    model_class = Page
    not_found_error = PageNotFoundError

    def create(
        self,
        title: str,
        slug: str,
        created_by: Optional[str] = None,
        visibility: Visibility = Visibility.INHERIT,
        is_locked: bool = False,
        tags: Optional[List[str]] = None,
    ) -> Page:
        page = Page(
            title=title,
            slug=slug,
            created_by=created_by,
            modified_by=created_by,
            visibility=int(visibility),
            is_locked=is_locked,
        )
        page.tags = [self.get_or_create_tag(name) for name in (tags or [])]
        self.db.add(page)
        self.db.flush()
        self.db.refresh(page)
        return page

    def get_snapshot(self, page_id: int) -> Optional[ResourceSnapshot]:
        page = self.get_by_id_optional(page_id)
        return page_snapshot(page) if page is not None else None

    def list_by_tag(self, tag_name: str, include_deleted: bool = False) -> List[Page]:
        query = self.db.query(Page).join(Page.tags).filter(Tag.name == tag_name)
        if not include_deleted:
            query = query.filter(Page.is_deleted.is_(False))
        return query.order_by(Page.title).all()

    def search_titles(self, term: str, limit: int = 50) -> List[Page]:
        """Case-insensitive title match over live pages.

        ``%`` and ``_`` in *term* match themselves, not any text.
        """
        return (
            self.db.query(Page)
            .filter(Page.is_deleted.is_(False), Page.title.icontains(term.strip(), autoescape=True))
            .order_by(Page.modified_on.desc(), Page.id)
            .limit(limit)
            .all()
        )

    def get_or_create_tag(self, name: str) -> Tag:
        name = name.strip().lower()
        tag = self.db.query(Tag).filter(Tag.name == name).first()
        if tag is None:
            tag = Tag(name=name)
            self.db.add(tag)
            self.db.flush()
        return tag
