import streamlit as st

from tracker import ui
from tracker.config import configure_logging
from tracker.page_catalog import visible_pages
from tracker.theme import set_theme

cfg = ui.get_config()
configure_logging(cfg.log_level)
set_theme(page_title=cfg.app_title)

ctx = ui.get_session_context()
if ctx.is_authenticated:
    ui.resolve_role(ctx, ui.get_client())

ui.render_sidebar(ctx, cfg.app_title)

# Only pages the current session may open are registered.
pages = visible_pages(ctx.session)
nav = st.navigation(
    [
        st.Page(p.path, title=p.title, icon=p.icon, url_path=p.key, default=p.default or len(pages) == 1)
        for p in pages
    ]
)
nav.run()
