"""Textual-based UI for traefiktop."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static
from rich.markup import escape as rich_escape

from . import coordinator
from .config import config_manager
from .view import RouterListView

logger = logging.getLogger(__name__)


class TraefikTopApp(App[None]):
    TITLE = "traefiktop"
    SUB_TITLE = "Traefik routers"

    CSS = """
    Screen {
      layout: vertical;
    }

    #list {
      height: 1fr;
      border: round $accent;
      padding: 0 1;
      overflow: auto;
    }

    #status {
      height: 1;
      padding: 0 1;
      background: $panel;
      color: $text;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    def __init__(
        self,
        api_url: str,
        credential: Optional[str] = None,
        fetch_hook: Callable[..., Any] = coordinator.start,
        ignore_patterns: Optional[list[str]] = None,
        refresh_interval: Optional[float] = None,
        sort_mode: Optional[str] = None,
        **hook_kwargs: Any,
    ) -> None:
        super().__init__()
        self.api_url = api_url
        self.credential = credential
        self.fetch_hook = fetch_hook
        self.ignore_patterns = ignore_patterns or []
        self.sort_mode = sort_mode or config_manager.get_config().ui.sort_mode
        self.hook_kwargs = dict(hook_kwargs)
        if refresh_interval is not None:
            self.hook_kwargs["interval"] = refresh_interval
        self.router_view: Optional[RouterListView] = None
        self.message = ""

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="list", markup=False)
        yield Static("", id="status", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        # The coordinator schedules tasks, so it is created once the loop is running.
        self.router_view = RouterListView(
            self.api_url,
            self.credential,
            fetch_hook=self.fetch_hook,
            ignore_patterns=self.ignore_patterns,
            sort_mode=self.sort_mode,
            on_change=self._render,
            **self.hook_kwargs,
        )
        # Keeps the "Ns ago" counter moving between fetch cycles.
        self.set_interval(1.0, self._render)
        self._render()

    def on_unmount(self) -> None:
        if self.router_view:
            self.router_view.close()

    def _render(self) -> None:
        if self.router_view is None:
            return
        list_widget = self.query_one("#list", Static)
        height = max(1, list_widget.size.height - 2) if list_widget.size.height else None
        list_widget.update(rich_escape(self.router_view.render(height)))

        status = self.router_view.footer()
        if self.message:
            status = f"{status} | {self.message}"
        self.query_one("#status", Static).update(rich_escape(status))

    async def on_key(self, event: events.Key) -> None:
        if self.router_view is None:
            return
        if not self.router_view.search_active and event.character and config_manager.is_key_binding(event.character, "quit"):
            self.exit()
            event.stop()
            return
        try:
            if self.router_view.handle_key(event.key, event.character):
                self.message = ""
                event.stop()
        except Exception as e:
            logger.error(f"Error handling key {event.key!r}: {e}", exc_info=True)
            self.message = f"Error: {e}"
            self._render()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool:
        # While searching, let on_key manage text input.
        if self.router_view is not None and self.router_view.search_active:
            return False
        return True


def run(api_url: str, credential: Optional[str] = None, **kwargs: Any) -> None:
    app = TraefikTopApp(api_url, credential, **kwargs)
    app.run()
