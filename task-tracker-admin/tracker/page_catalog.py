"""Page catalog for the task tracker.

Single source of truth for navigation: which pages exist, which need a
session, and which are admin-only. ``app.py`` builds ``st.navigation`` from
:func:`visible_pages` so admin pages are absent for everyone else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from tracker.session import Session, can_see_admin_views


@dataclass(frozen=True)
class PageSpec:
    """Specification for a navigation page."""

    path: str
    title: str
    icon: str
    key: str
    admin_only: bool = False
    requires_session: bool = True
    default: bool = False


LOGIN_PAGE = "login"
DEFAULT_PAGE = "dashboard"


def get_page_catalog() -> List[PageSpec]:
    return [
        PageSpec(
            path="pages/login.py",
            title="Login",
            icon="🔐",
            key=LOGIN_PAGE,
            requires_session=False,
        ),
        PageSpec(
            path="pages/dashboard.py",
            title="Dashboard",
            icon="🏠",
            key=DEFAULT_PAGE,
            default=True,
        ),
        PageSpec(
            path="pages/my_tasks.py",
            title="Tasks",
            icon="✅",
            key="tasks",
        ),
        PageSpec(
            path="pages/users.py",
            title="Users",
            icon="👥",
            key="users",
            admin_only=True,
        ),
        PageSpec(
            path="pages/analytics.py",
            title="Analytics",
            icon="📊",
            key="analytics",
            admin_only=True,
        ),
    ]


def catalog_by_key() -> Dict[str, PageSpec]:
    return {p.key: p for p in get_page_catalog()}


def get_page(key: str) -> PageSpec:
    return catalog_by_key()[key]


def visible_pages(session: Optional[Session]) -> List[PageSpec]:
    """Pages the navigation shows for ``session``.

    Without a session only the login page exists; admin pages are left out
    unless the session's role has been confirmed as admin.
    """
    if session is None:
        return [p for p in get_page_catalog() if not p.requires_session]
    admin = can_see_admin_views(session)
    return [
        p for p in get_page_catalog()
        if p.requires_session and (admin or not p.admin_only)
    ]


def resolve_page(key: str, session: Optional[Session]) -> PageSpec:
    """Return the page to show when ``key`` is requested.

    Unauthenticated requests go to the login page, anything the session may
    not see goes to the default page.
    """
    catalog = catalog_by_key()
    if session is None:
        return catalog[LOGIN_PAGE]
    page = catalog.get(key)
    if page is None or not page.requires_session:
        return catalog[DEFAULT_PAGE]
    if page.admin_only and not can_see_admin_views(session):
        return catalog[DEFAULT_PAGE]
    return page
