import logging
from collections.abc import Callable
from dataclasses import dataclass

import rumps
from AppKit import NSAlternateKeyMask, NSEvent
from PyObjCTools import AppHelper

from clipsift import __version__
from clipsift.config import DB_PATH, IMAGE_DIR, MENU_DISPLAY_COUNT, POLL_INTERVAL
from clipsift.engine import ClipboardEngine
from clipsift.errors import ClipsiftError
from clipsift.models import Bucket, CacheSnapshot, Category, ClipboardEntry, HistoryEvent
from clipsift.pasteboard import Pasteboard
from clipsift.storage import StorageManager
from clipsift.utils import ensure_dirs

logger = logging.getLogger(__name__)

ENTRY_KEY_PREFIX = "clipsift_entry_"

BUCKET_TITLES = {
    Bucket.LOGS: "Logs",
    Bucket.PROMPTS: "Prompts",
    Bucket.IMAGES: "Images",
    Bucket.OTHER: "Other",
}

CATEGORY_MARKS = {
    Category.URL: "🔗",
    Category.CODE: "⟨⟩",
    Category.LOG: "▤",
    Category.PROMPT: "❯",
    Category.IMAGE: "🖼",
    Category.FILE: "📄",
}


class AppHelperScheduler:
    """Runs settle continuations on the main run loop after a delay."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        AppHelper.callLater(delay, callback)


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    icon: str | None = None
    dimensions: tuple[int, int] | None = None
    template: bool | None = None
    entry_id: str | None = None
    is_submenu: bool = False
    children: list["MenuItemSpec | None"] | None = None


class ClipsiftApp(rumps.App):
    def __init__(self):
        super().__init__("Clipsift", title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Initialize app components. Separated for testability."""
        ensure_dirs()
        self._storage = StorageManager(DB_PATH, image_dir=IMAGE_DIR)
        self._engine = ClipboardEngine(
            Pasteboard(),
            AppHelperScheduler(),
            persistence=self._storage,
            image_dir=IMAGE_DIR,
            on_error=self._on_engine_error,
        )
        self._engine.load()
        self._unsubscribe = self._engine.subscribe(self._on_history_event)
        self._entry_ids: dict[str, str] = {}
        self._build_menu()

    def _build_menu(self) -> None:
        """Build the menu from computed specifications."""
        self.menu.clear()
        self._entry_ids.clear()
        specs = self._compute_menu_specs(self._engine.snapshot(), self._engine.list(limit=MENU_DISPLAY_COUNT))
        self._render_menu_specs(specs)

    def _compute_menu_specs(self, snapshot: CacheSnapshot, recent: list[ClipboardEntry]) -> list[MenuItemSpec | None]:
        """Compute menu item specifications. Pure logic, no rumps dependency."""
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Clipsift v{__version__} - Clipboard History"),
            None,  # separator
        ]

        for bucket in Bucket:
            entries = snapshot.bucket(bucket)
            title = f"{BUCKET_TITLES[bucket]} ({len(entries)})"
            if entries:
                children: list[MenuItemSpec | None] = [self._compute_entry_spec(e) for e in entries]
                specs.append(MenuItemSpec(title, is_submenu=True, children=children))
            else:
                specs.append(MenuItemSpec(title))

        specs.append(None)  # separator

        if not recent:
            specs.append(MenuItemSpec("(No clipboard history)"))
        else:
            for entry in recent:
                specs.append(self._compute_entry_spec(entry))

        specs.extend([
            None,  # separator
            MenuItemSpec("Clear History", callback=self._on_clear),
            None,  # separator
            MenuItemSpec("Quit Clipsift", callback=self._on_quit),
        ])

        return specs

    def _compute_entry_spec(self, entry: ClipboardEntry) -> MenuItemSpec:
        """Compute menu item spec for a clipboard entry."""
        key = f"{ENTRY_KEY_PREFIX}{entry.id}"
        self._entry_ids[key] = entry.id

        mark = CATEGORY_MARKS.get(entry.category)
        spec = MenuItemSpec(
            title=f"{mark} {entry.preview}" if mark else entry.preview,
            callback=self._on_entry_click,
            entry_id=entry.id,
        )

        if entry.category == Category.IMAGE and entry.payload_path:
            spec.title = entry.preview
            spec.icon = entry.payload_path
            spec.dimensions = (32, 32)
            spec.template = False

        return spec

    def _render_menu_specs(self, specs: list[MenuItemSpec | None]) -> None:
        """Render menu item specifications to actual rumps MenuItems."""
        self.menu = [self._render_single_spec(spec) for spec in specs]

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        if spec.is_submenu and spec.children:
            submenu = rumps.MenuItem(spec.title)
            for child in spec.children:
                submenu.add(self._render_single_spec(child))
            return submenu

        kwargs = {"callback": spec.callback}
        if spec.icon:
            kwargs["icon"] = spec.icon
        if spec.dimensions:
            kwargs["dimensions"] = spec.dimensions
        if spec.template is not None:
            kwargs["template"] = spec.template

        item = rumps.MenuItem(spec.title, **kwargs)

        if spec.entry_id is not None:
            item._id = f"{ENTRY_KEY_PREFIX}{spec.entry_id}"

        return item

    def _on_history_event(self, _event: HistoryEvent) -> None:
        self._build_menu()

    def _on_engine_error(self, error: ClipsiftError) -> None:
        rumps.notification("Clipsift", "", f"Storage error: {error}", sound=False)

    @rumps.timer(POLL_INTERVAL)
    def _poll_clipboard(self, _sender) -> None:
        self._engine.tick()

    def _on_entry_click(self, sender) -> None:
        entry_id = self._entry_ids.get(getattr(sender, "_id", ""))
        if entry_id is None:
            return

        # Option-click removes the entry instead of copying it
        if NSEvent.modifierFlags() & NSAlternateKeyMask:
            self._engine.remove(entry_id)
            return

        if self._engine.copy_back(entry_id):
            rumps.notification("Clipsift", "", "Copied to clipboard", sound=False)

    def _on_clear(self, _sender) -> None:
        if rumps.alert("Clipsift", "Clear all clipboard history?", ok="Clear", cancel="Cancel"):
            self._engine.clear()

    def _on_quit(self, _sender) -> None:
        self._engine.stop()
        self._unsubscribe()
        self._storage.close()
        rumps.quit_application()
