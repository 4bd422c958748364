"""
Router list view: keyboard state machine and text rendering.

The view reads the coordinator's snapshot, derives the filtered and sorted
router list, and turns it into plain text for the host UI. It never mutates
snapshot data; the only things it sends back are refresh requests and
parameter changes.

States:
  - Browse: r refresh, / search, s sort, arrows/j/k/g/G/PgUp/PgDn move,
    Esc clears a kept filter
  - Search: characters edit the query, Esc/Enter return to Browse and the
    query keeps filtering

Rendering policy:
  - Error before any successful fetch -> "Error: <message>" only
  - Loading before any successful fetch -> "Loading..." only
  - Error after a success -> error banner above the last good list
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import coordinator
from .config import config_manager
from .model import Router, Snapshot
from .service_status import (
    ServiceStatus,
    find_service_by_name,
    get_failover_services,
    get_router_status_info,
    get_service_status,
)

logger = logging.getLogger(__name__)

SORT_MODES = ["dead", "name"]
PAGE_SIZE = 10

STATUS_ORDER = {ServiceStatus.DOWN: 0, ServiceStatus.UP: 1, ServiceStatus.UNKNOWN: 2}
STATUS_ICON = {ServiceStatus.UP: "✓", ServiceStatus.DOWN: "✗", ServiceStatus.UNKNOWN: "?"}


def matches_ignore_pattern(name: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive *foo*, *foo, foo* and plain (contains) patterns."""
    name = name.lower()
    for pattern in patterns:
        pattern = pattern.lower()
        if not pattern:
            continue
        if len(pattern) > 1 and pattern.startswith('*') and pattern.endswith('*'):
            matched = pattern[1:-1] in name
        elif pattern.startswith('*'):
            matched = name.endswith(pattern[1:])
        elif pattern.endswith('*'):
            matched = name.startswith(pattern[:-1])
        else:
            matched = pattern in name
        if matched:
            return True
    return False


def matches_query(router: Router, query: str) -> bool:
    q = query.lower()
    return q in router.name.lower() or q in router.rule.lower() or q in router.service.lower()


class RouterListView:
    def __init__(
        self,
        api_url: str,
        credential: Optional[str] = None,
        fetch_hook: Callable[..., Any] = coordinator.start,
        ignore_patterns: Iterable[str] = (),
        sort_mode: str = "dead",
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
        **hook_kwargs: Any,
    ):
        self.api_url = api_url
        self.credential = credential
        self.ignore_patterns = list(ignore_patterns)
        self.sort_mode = sort_mode if sort_mode in SORT_MODES else "dead"
        self.on_change = on_change
        self._clock = clock

        self.search_active = False
        self.query = ""
        self.selected_index = 0
        self.scroll_offset = 0
        self.pending_g = False
        self.filtered_routers: List[Router] = []
        self._statuses: Dict[str, ServiceStatus] = {}

        self.handle = fetch_hook(api_url, credential, **hook_kwargs)
        subscribe = getattr(self.handle, "subscribe", None)
        self._unsubscribe = subscribe(self._on_snapshot) if subscribe else None
        self._recompute()

    @property
    def snapshot(self) -> Snapshot:
        return self.handle.snapshot

    @property
    def selected_router(self) -> Optional[Router]:
        if 0 <= self.selected_index < len(self.filtered_routers):
            return self.filtered_routers[self.selected_index]
        return None

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        stop = getattr(self.handle, "stop", None)
        if stop:
            stop()

    def set_source(self, api_url: str, credential: Optional[str] = None) -> None:
        """Point the underlying data handle at another Traefik instance."""
        self.api_url = api_url
        self.credential = credential
        update = getattr(self.handle, "update_params", None)
        if update:
            update(api_url, credential)

    # ------------------------------------------------------------------
    # Derived list
    # ------------------------------------------------------------------

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self._recompute()
        self._changed()

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()

    def _recompute(self, reset_position: bool = False) -> None:
        snap = self.snapshot
        routers = [r for r in snap.routers if not matches_ignore_pattern(r.name, self.ignore_patterns)]
        if self.query:
            routers = [r for r in routers if matches_query(r, self.query)]

        self._statuses = {r.name: get_router_status_info(r, snap.services)[0] for r in routers}
        if self.sort_mode == "dead":
            routers.sort(key=lambda r: (STATUS_ORDER[self._statuses[r.name]], r.name))
        else:
            routers.sort(key=lambda r: r.name)
        self.filtered_routers = routers

        if reset_position or not routers:
            self.selected_index = 0
            self.scroll_offset = 0
        elif self.selected_index >= len(routers):
            self.selected_index = len(routers) - 1

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def handle_key(self, key: str, character: Optional[str] = None) -> bool:
        """
        Feed one keystroke (Textual key name plus printable character).

        Returns True when the view consumed the key. Unconsumed keys (quit,
        for instance) are left to the host.
        """
        if self.search_active:
            self._handle_search_key(key, character)
            self._changed()
            return True

        handled = self._handle_browse_key(key, character)
        if handled:
            self._changed()
        return handled

    def _handle_search_key(self, key: str, character: Optional[str]) -> None:
        if key in ("escape", "enter"):
            self.search_active = False
            self.selected_index = 0
            self.scroll_offset = 0
        elif key == "backspace":
            if self.query:
                self.query = self.query[:-1]
                self._recompute(reset_position=True)
        elif character and character.isprintable():
            self.query += character
            self._recompute(reset_position=True)

    def _handle_browse_key(self, key: str, character: Optional[str]) -> bool:
        char = character or ""
        if key != "g":
            was_pending, self.pending_g = self.pending_g, False
        else:
            was_pending = self.pending_g

        if char and config_manager.is_key_binding(char, "refresh"):
            logger.debug("Manual refresh requested")
            self.handle.refresh()
            return True
        if char and config_manager.is_key_binding(char, "search"):
            self.search_active = True
            return True
        if char and config_manager.is_key_binding(char, "sort"):
            idx = SORT_MODES.index(self.sort_mode)
            self.sort_mode = SORT_MODES[(idx + 1) % len(SORT_MODES)]
            self._recompute(reset_position=True)
            return True

        if key in ("up", "k"):
            self.move_selection(-1)
        elif key in ("down", "j"):
            self.move_selection(1)
        elif key == "pageup":
            self.move_selection(-PAGE_SIZE)
        elif key == "pagedown":
            self.move_selection(PAGE_SIZE)
        elif key == "home":
            self.move_selection(-len(self.filtered_routers))
        elif key in ("end", "G", "shift+g"):
            self.move_selection(len(self.filtered_routers))
        elif key == "g":
            if was_pending:
                self.pending_g = False
                self.move_selection(-len(self.filtered_routers))
            else:
                self.pending_g = True
        elif key == "escape":
            if not self.query:
                return False
            self.query = ""
            self._recompute(reset_position=True)
        else:
            return False
        return True

    def move_selection(self, delta: int) -> None:
        if not self.filtered_routers:
            self.selected_index = 0
            return
        self.selected_index = max(0, min(self.selected_index + delta, len(self.filtered_routers) - 1))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _header_lines(self) -> List[str]:
        if self.search_active:
            hint = f"Search: {self.query}"
        elif self.query:
            hint = f"Filter: {self.query}"
        else:
            hint = "🔍 Press / to search"

        count = f"{len(self.filtered_routers)} routers"
        if self.query:
            count += f" (of {len(self.snapshot.routers)})"

        lines = [hint, count]
        if self.snapshot.error is not None:
            lines.append(f"Error: {self.snapshot.error} (showing last good data)")
        lines.append("")
        return lines

    def _router_block(self, router: Router, selected: bool) -> List[str]:
        services = self.snapshot.services
        status = self._statuses.get(router.name, ServiceStatus.UNKNOWN)
        marker = ">" if selected else " "
        icon = "💀" if status == ServiceStatus.DOWN else "⬢"
        entry_points = ", ".join(router.entry_points) or "-"
        lines = [
            f"{marker} {icon} {router.name}  [{status.value.upper()}]  {entry_points}",
            f"    → {router.rule}",
        ]

        main = find_service_by_name(router.service, services)
        if main is None:
            lines.append(f"    └── {router.service} (not found)")
            return lines

        if main.is_failover:
            lines.append(f"    └── {main.name} (failover)")
            primary, fallback = get_failover_services(main.name, services)
            if primary:
                primary_status = get_service_status(primary, services)
                lines.append(f"        ├── {STATUS_ICON[primary_status]} {primary.name}")
            if fallback:
                fallback_status = get_service_status(fallback, services)
                lines.append(f"        └── {STATUS_ICON[fallback_status]} {fallback.name}")
            return lines

        main_status = get_service_status(main, services)
        lines.append(f"    └── {STATUS_ICON[main_status]} {main.name}  (used by {len(main.used_by)})")

        if selected and main.load_balancer:
            servers = main.load_balancer.servers
            for idx, server in enumerate(servers):
                branch = "└──" if idx == len(servers) - 1 else "├──"
                up = main.server_status.get(server.url) == "UP"
                lines.append(f"        {branch} {'✓' if up else '✗'} {server.url}")
        return lines

    def _ensure_selected_visible(self, starts: List[int], total: int, body_height: int) -> None:
        start = starts[self.selected_index]
        end = starts[self.selected_index + 1] if self.selected_index + 1 < len(starts) else total
        if start < self.scroll_offset:
            self.scroll_offset = start
        elif end > self.scroll_offset + body_height:
            self.scroll_offset = start if end - start > body_height else end - body_height
        self.scroll_offset = max(0, min(self.scroll_offset, max(0, total - body_height)))

    def render(self, height: Optional[int] = None) -> str:
        """Render the current state as text. `height` limits the number of lines."""
        snap = self.snapshot
        if snap.error is not None and not snap.has_data:
            return f"Error: {snap.error}"
        if snap.loading and not snap.has_data:
            return "Loading..."

        header = self._header_lines()
        if not self.filtered_routers:
            empty = "No routers match your search" if self.query else "No routers found"
            return "\n".join(header + [empty])

        body: List[str] = []
        starts: List[int] = []
        for i, router in enumerate(self.filtered_routers):
            starts.append(len(body))
            body.extend(self._router_block(router, i == self.selected_index))
            if i < len(self.filtered_routers) - 1:
                body.append("")

        if height is not None:
            body_height = max(1, height - len(header))
            self._ensure_selected_visible(starts, len(body), body_height)
            body = body[self.scroll_offset:self.scroll_offset + body_height]

        return "\n".join(header + body)

    def footer(self) -> str:
        if self.search_active:
            if not self.query:
                return "Search: (type to filter routers) | ESC: exit | Enter: accept"
            return f"Search: {self.query} | ESC: exit | Enter: accept"

        parts = [f"q: quit | r: refresh | /: search | s: sort | sort: {self.sort_mode}"]
        last_updated = self.snapshot.last_updated
        if last_updated is not None:
            parts.append(f"{max(0, int(self._clock() - last_updated))}s ago")
        if self.snapshot.loading:
            parts.append("⟳ refreshing")
        return " | ".join(parts)
