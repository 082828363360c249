#!/usr/bin/env python3
"""
Menu Maker - hierarchical launcher menu built from shortcut folders, CSV lists and saved menus
Features: Directory/CSV/store sources, Collapse/Expand groups, Info display, Theme selection, Export
"""

import argparse
import copy
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Label, Static

from menu_engine import (
    ActionResolver,
    CsvCatalog,
    DEFAULT_BROWSER_PATHS,
    JsonFileStore,
    MenuError,
    MenuStore,
    MenuTree,
    MenuTreeBuilder,
    PreconditionFailure,
    normalize_shortcut_key,
)
from menu_host import (
    ByName,
    GroupHandle,
    ItemHandle,
    Launcher,
    MenuPresenter,
    extract_tree,
    install_tree,
)


logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".local" / "menu-maker"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

THEMES = {
    "classic": {
        "name": "Classic Teal",
        "primary": "#00b4d8",
        "accent": "#00f5ff",
        "bg": "#034e68",
        "surface": "#023047",
        "text": "#caf0f8"
    },
    "nord": {
        "name": "Nord Theme",
        "primary": "#5e81ac",
        "accent": "#88c0d0",
        "bg": "#2e3440",
        "surface": "#3b4252",
        "text": "#eceff4"
    },
    "gruvbox": {
        "name": "Gruvbox Dark",
        "primary": "#d79921",
        "accent": "#fabd2f",
        "bg": "#282828",
        "surface": "#3c3836",
        "text": "#fbf1c7"
    },
    "dracula": {
        "name": "Dracula",
        "primary": "#bd93f9",
        "accent": "#ff79c6",
        "bg": "#282a36",
        "surface": "#44475a",
        "text": "#f8f8f2"
    },
    "monokai": {
        "name": "Monokai",
        "primary": "#a6e22e",
        "accent": "#f92672",
        "bg": "#272822",
        "surface": "#383830",
        "text": "#f8f8f2"
    }
}


def build_css(theme: Dict[str, str]) -> str:
    """Render the application stylesheet for a theme."""
    return f"""
    Screen {{
        background: {theme['bg']};
    }}

    Header {{
        background: {theme['primary']};
        color: white;
        text-align: center;
        height: 1;
    }}

    Footer {{
        background: {theme['primary']};
        color: {theme['text']};
        height: 1;
    }}

    .main-container {{
        height: 1fr;
        background: {theme['surface']};
    }}

    .status-bar {{
        dock: top;
        height: 1;
        background: {theme['primary']};
        color: {theme['text']};
        text-align: center;
    }}

    .menu-container {{
        height: 1fr;
        background: {theme['surface']};
        padding: 1 1;
        overflow-y: auto;
    }}

    .group-header {{
        height: 1;
        padding: 0 1;
        background: {theme['surface']};
        color: {theme['text']};
        text-style: bold;
    }}

    .menu-item {{
        height: 1;
        padding: 0 2;
        background: {theme['surface']};
        color: {theme['text']};
    }}

    .group-header.-selected, .menu-item.-selected {{
        background: {theme['accent']};
        color: {theme['bg']};
        text-style: bold;
    }}

    .info-container, .edit-container {{
        width: 100%;
        height: auto;
        background: {theme['surface']};
        border: solid {theme['accent']};
        padding: 1 2;
    }}

    .info-title, .edit-title {{
        text-align: center;
        text-style: bold;
        color: {theme['accent']};
    }}

    .info-field {{
        color: {theme['text']};
    }}

    .button-row {{
        align: center middle;
        height: auto;
    }}

    Button {{
        margin: 0;
        padding: 0 1;
    }}
    """


# ---- Configuration ----

class MenuMakerConfig:
    """Settings kept in ~/.local/menu-maker/menus.json."""

    def __init__(self, path: Optional[Path] = None, data: Optional[Dict[str, Any]] = None):
        self.path = Path(path) if path else CONFIG_DIR / "menus.json"
        data = data or {}
        settings = data.get("app_settings", {})
        host = data.get("host", {})
        self.title: str = settings.get("title") or "Menu Maker"
        self.theme: str = settings.get("theme") if settings.get("theme") in THEMES else "classic"
        self.sources: List[Dict[str, Any]] = [s for s in data.get("sources", []) if isinstance(s, dict)]
        self.export_namespace: str = data.get("export_namespace") or "MenuMaker/Exported"
        self.store_file = Path(data.get("store_file") or self.path.parent / "store.json").expanduser()
        self.log_file = Path(data.get("log_file") or self.path.parent / "menu-maker.log").expanduser()
        self.edit_command: Optional[str] = host.get("edit_command")
        self.url_handler: Optional[str] = host.get("url_handler")
        self.browser_paths: List[str] = list(host.get("browser_paths") or DEFAULT_BROWSER_PATHS)
        self.collapsed: List[str] = list(data.get("collapsed", []))

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "MenuMakerConfig":
        """Load settings, creating the file with defaults when it does not exist."""
        config_path = Path(path) if path else CONFIG_DIR / "menus.json"
        if not config_path.exists():
            config = cls(config_path)
            config.save()
            return config
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top level must be an object")
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config %s: %s", config_path, e)
            return cls(config_path)
        return cls(config_path, data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app_settings": {"title": self.title, "theme": self.theme},
            "sources": copy.deepcopy(self.sources),
            "export_namespace": self.export_namespace,
            "store_file": str(self.store_file),
            "log_file": str(self.log_file),
            "host": {
                "edit_command": self.edit_command,
                "url_handler": self.url_handler,
                "browser_paths": self.browser_paths,
            },
            "collapsed": sorted(set(self.collapsed)),
        }

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning("Cannot save config %s: %s", self.path, e)

    def make_resolver(self) -> ActionResolver:
        return ActionResolver(
            edit_command=self.edit_command,
            url_handler=self.url_handler,
            browser_paths=self.browser_paths,
        )

    def make_store(self) -> MenuStore:
        return MenuStore(JsonFileStore(self.store_file))


def configure_logging(log_file: Optional[Path] = None, console: bool = False, verbose: bool = False) -> None:
    """Send logs to a file (the terminal belongs to the UI) and optionally stderr."""
    handlers: List[logging.Handler] = []
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError:
            pass  # keep running without a log file
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if not handlers:
        handlers.append(logging.NullHandler())
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_source_tree(source: Dict[str, Any], resolver: ActionResolver, store: MenuStore) -> MenuTree:
    """Build one configured source; raises PreconditionFailure when its root is missing."""
    kind = source.get("type", "directory")
    name = source.get("name")
    if kind == "directory":
        return MenuTreeBuilder(resolver).build(Path(source["path"]).expanduser(), name)
    if kind == "csv":
        mode = source.get("mode", CsvCatalog.DIRECT)
        return CsvCatalog(Path(source["path"]).expanduser()).build_tree(mode, name)
    if kind == "store":
        return store.import_tree(source["namespace"], name)
    raise ValueError(f"Unknown source type: {kind!r}")


def load_sources(
    presenter: MenuPresenter,
    sources: List[Dict[str, Any]],
    resolver: ActionResolver,
    store: MenuStore,
    force: bool = False,
) -> Tuple[int, List[str]]:
    """Install every source into the presenter; returns (items installed, error messages)."""
    installed = 0
    errors: List[str] = []
    for source in sources:
        try:
            tree = build_source_tree(source, resolver, store)
        except (MenuError, KeyError, ValueError) as e:
            logger.error("Source %s not loaded: %s", source, e)
            errors.append(str(e))
            continue
        parent = ByName(source["parent"]) if source.get("parent") else None
        report = install_tree(presenter, tree, parent=parent, force=force)
        installed += report.installed + report.replaced
        logger.info("%s: %s", tree.source, tree.summary())
    return installed, errors


# ---- Screens ----

class InfoScreen(Screen):
    """Screen for displaying what a menu item launches."""

    BINDINGS = [
        Binding("escape,i,enter", "close", "Close"),
    ]

    def __init__(self, item: ItemHandle):
        super().__init__()
        self.item = item

    def compose(self) -> ComposeResult:
        """Create info screen layout."""
        action = self.item.action
        with Container(classes="info-container"):
            yield Label("Menu Item Information", classes="info-title")
            yield Label(f"Name: {self.item.name}", classes="info-field", markup=False)
            yield Label(f"Kind: {action.kind}", classes="info-field", markup=False)
            yield Label(f"Program: {action.program}", classes="info-field", markup=False)
            yield Label(f"Arguments: {action.arguments or ''}", classes="info-field", markup=False)
            yield Label(f"Shortcut: {self.item.shortcut_key or 'N/A'}", classes="info-field", markup=False)
            yield Label(f"Source: {action.source_extension or 'N/A'}", classes="info-field", markup=False)
            with Horizontal(classes="button-row"):
                yield Button("Close", id="close", variant="primary")

    def action_close(self) -> None:
        """Close the info screen."""
        self.dismiss()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "close":
            self.dismiss()


class SettingsScreen(Screen):
    """Screen for choosing the theme and title."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("enter", "apply", "Apply"),
        Binding("up", "cursor_up", "Up"),
        Binding("down", "cursor_down", "Down"),
    ]

    def __init__(self, current_title: str, current_theme: str = "classic"):
        super().__init__()
        self.current_title = current_title
        self.theme_keys = list(THEMES.keys())
        self.selected_index = self.theme_keys.index(current_theme) if current_theme in THEMES else 0

    def compose(self) -> ComposeResult:
        """Create settings screen layout."""
        with Container(classes="edit-container"):
            yield Label("Application Settings", classes="edit-title")
            yield Label("Choose Theme:")
            for i, theme_key in enumerate(self.theme_keys):
                yield Label(self._theme_label(i), id=f"theme_{i}")
            yield Label("Application Title:")
            yield Input(value=self.current_title, id="title_input")
            with Horizontal(classes="button-row"):
                yield Button("Apply", id="apply", variant="primary")
                yield Button("Cancel", id="cancel")

    def _theme_label(self, index: int) -> str:
        marker = "▶ " if index == self.selected_index else "  "
        return f"{marker}{THEMES[self.theme_keys[index]]['name']}"

    def action_cursor_up(self) -> None:
        self.selected_index = max(0, self.selected_index - 1)
        self.update_selection()

    def action_cursor_down(self) -> None:
        self.selected_index = min(len(self.theme_keys) - 1, self.selected_index + 1)
        self.update_selection()

    def update_selection(self) -> None:
        for i in range(len(self.theme_keys)):
            self.query_one(f"#theme_{i}", Label).update(self._theme_label(i))

    def action_apply(self) -> None:
        title = self.query_one("#title_input", Input).value.strip() or self.current_title
        self.dismiss({"action": "apply", "theme": self.theme_keys[self.selected_index], "title": title})

    def action_cancel(self) -> None:
        self.dismiss({"action": "cancel"})

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "apply":
            self.action_apply()
        elif event.button.id == "cancel":
            self.action_cancel()


# ---- Application ----

class MenuMakerApp(App):
    """Menu Maker - hierarchical launcher menu."""

    CSS = build_css(THEMES["classic"])

    TITLE = "Menu Maker"
    AUTO_FOCUS = None

    BINDINGS = [
        Binding("q,escape", "exit_app", "Exit"),
        Binding("enter", "execute_item", "Execute", show=True),
        Binding("i", "show_info", "Info", show=True),
        Binding("s", "open_settings", "Settings", show=True),
        Binding("space", "toggle_group", "Toggle Group", show=True),
        Binding("ctrl+r", "reload_sources", "Reload", show=True),
        Binding("ctrl+e", "export_menu", "Export", show=True),
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
        Binding("tab", "cursor_down", "Next", show=False),
        Binding("shift+tab", "cursor_up", "Previous", show=False),
    ]

    def __init__(
        self,
        config: Optional[MenuMakerConfig] = None,
        presenter: Optional[MenuPresenter] = None,
        launcher: Optional[Launcher] = None,
        store: Optional[MenuStore] = None,
        sources: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__()
        self.config = config or MenuMakerConfig.load()
        self.sources = sources if sources is not None else self.config.sources
        self.presenter = presenter or MenuPresenter(self.config.title)
        self.launcher = launcher or Launcher()
        self.store = store or self.config.make_store()
        self.resolver = self.config.make_resolver()
        self.current_index = 0
        self.display_items: List[Dict[str, Any]] = []
        self.collapsed = set(self.config.collapsed)
        self.status_message = ""
        self.status_bar: Optional[Static] = None
        self.menu_container: Optional[ScrollableContainer] = None

    def compose(self) -> ComposeResult:
        """Create the application layout."""
        yield Header()
        with Container(classes="main-container"):
            self.status_bar = Static("", classes="status-bar")
            yield self.status_bar
            self.menu_container = ScrollableContainer(classes="menu-container")
            yield self.menu_container
        yield Footer()

    def on_mount(self) -> None:
        """Load sources once the widgets exist."""
        self.title = self.config.title
        self.apply_theme(self.config.theme, save=False)
        if not self.presenter.root.groups and not self.presenter.root.items:
            self.load_configured_sources()
        self.presenter.subscribe(self.update_menu_display)
        self.update_menu_display()

    def load_configured_sources(self, force: bool = False) -> None:
        installed, errors = load_sources(self.presenter, self.sources, self.resolver, self.store, force)
        if errors:
            self.status_message = f"{len(errors)} source(s) failed: {errors[0]}"
        else:
            self.status_message = f"Loaded {installed} item(s)"

    def _collect_display(self, group: GroupHandle, depth: int) -> None:
        indent = "  " * depth
        for child in group.groups:
            expanded = child.path not in self.collapsed
            marker = "▼" if expanded else "▶"
            self.display_items.append({
                "type": "group",
                "handle": child,
                "text": f"{indent}{marker}{child.name}",
            })
            if expanded:
                self._collect_display(child, depth + 1)
        for item in group.items:
            suffix = f"  [{item.shortcut_key}]" if item.shortcut_key else ""
            self.display_items.append({
                "type": "item",
                "handle": item,
                "text": f"{indent}  {item.name}{suffix}",
            })

    def update_menu_display(self) -> None:
        """Rebuild the menu widgets from the presenter tree."""
        self.display_items = []
        self._collect_display(self.presenter.root, 0)
        self.current_index = max(0, min(self.current_index, len(self.display_items) - 1))

        if self.menu_container is None:
            return
        self.menu_container.remove_children()
        widgets = []
        for entry in self.display_items:
            css_class = "group-header" if entry["type"] == "group" else "menu-item"
            entry["widget"] = Static(entry["text"], classes=css_class, markup=False)
            widgets.append(entry["widget"])
        if widgets:
            self.menu_container.mount(*widgets)
        self.update_highlighting()
        self.update_status()

    def update_highlighting(self) -> None:
        for i, entry in enumerate(self.display_items):
            widget = entry.get("widget")
            if widget is None:
                continue
            if i == self.current_index:
                widget.add_class("-selected")
                self.ensure_widget_visible(widget)
            else:
                widget.remove_class("-selected")

    def ensure_widget_visible(self, widget: Static) -> None:
        """Scroll the menu so the selected widget is on screen."""
        if self.menu_container is None:
            return
        try:
            self.menu_container.scroll_to_widget(widget, animate=False)
        except Exception:
            # not laid out yet; the next highlight pass scrolls it
            pass

    def update_status(self) -> None:
        if self.status_bar is None:
            return
        total = len(self.display_items)
        current = self.current_index + 1 if total else 0
        status = f"Item {current}/{total} | Theme: {self.config.theme.title()}"
        if self.status_message:
            status = f"{status} | {self.status_message}"
        self.status_bar.update(status)

    def selected(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.current_index < len(self.display_items):
            return self.display_items[self.current_index]
        return None

    def move_cursor(self, step: int) -> None:
        if not self.display_items:
            return
        self.current_index = (self.current_index + step) % len(self.display_items)
        self.update_highlighting()
        self.update_status()

    def action_cursor_up(self) -> None:
        self.move_cursor(-1)

    def action_cursor_down(self) -> None:
        self.move_cursor(1)

    def launch_item(self, item: ItemHandle) -> None:
        result = self.launcher.launch(item.action)
        self.status_message = result.message
        self.update_status()

    def action_execute_item(self) -> None:
        """Launch the selected item or toggle the selected group."""
        entry = self.selected()
        if entry is None:
            return
        if entry["type"] == "item":
            self.launch_item(entry["handle"])
        else:
            self.action_toggle_group()

    def action_toggle_group(self) -> None:
        """Collapse or expand the selected group and remember it."""
        entry = self.selected()
        if entry is None or entry["type"] != "group":
            return
        group = entry["handle"]
        if group.path in self.collapsed:
            self.collapsed.discard(group.path)
        else:
            self.collapsed.add(group.path)
        self.config.collapsed = sorted(self.collapsed)
        self.config.save()
        self.update_menu_display()
        for i, candidate in enumerate(self.display_items):
            if candidate["handle"] is group:
                self.current_index = i
                break
        self.update_highlighting()
        self.update_status()

    def action_show_info(self) -> None:
        entry = self.selected()
        if entry is not None and entry["type"] == "item":
            self.push_screen(InfoScreen(entry["handle"]))

    def action_reload_sources(self) -> None:
        """Rebuild the menu from the configured sources."""
        self.presenter.clear()
        self.load_configured_sources()
        self.update_menu_display()

    def action_export_menu(self) -> None:
        """Save the live menu to the configured store namespace."""
        tree = extract_tree(self.presenter)
        try:
            count = self.store.export(self.config.export_namespace, tree, overwrite=True)
        except MenuError as e:
            logger.error("Export failed: %s", e)
            self.status_message = f"Export failed: {e}"
        else:
            self.status_message = f"Exported {count} item(s) to {self.config.export_namespace}"
        self.update_status()

    def on_key(self, event: events.Key) -> None:
        """Launch the item bound to a pressed shortcut key."""
        if len(self.screen_stack) > 1:
            return
        key = normalize_shortcut_key(event.key)
        if not key:
            return
        for item in self.presenter.iter_items():
            if normalize_shortcut_key(item.shortcut_key) == key:
                event.stop()
                event.prevent_default()
                self.launch_item(item)
                return

    def action_open_settings(self) -> None:
        def handle_settings_result(result: Optional[Dict[str, Any]]) -> None:
            if not result or result.get("action") != "apply":
                return
            self.config.title = result.get("title") or self.config.title
            self.title = self.config.title
            self.apply_theme(result.get("theme", self.config.theme))

        self.push_screen(SettingsScreen(self.config.title, self.config.theme), callback=handle_settings_result)

    def apply_theme(self, theme_name: str, save: bool = True) -> None:
        """Apply theme colors to the entire application."""
        theme_name = theme_name if theme_name in THEMES else "classic"
        self.stylesheet.add_source(build_css(THEMES[theme_name]), read_from=("menu-maker-theme", ""))
        self.refresh_css(animate=False)
        self.config.theme = theme_name
        if save:
            self.config.save()
        self.refresh(layout=True)
        self.update_status()

    def action_exit_app(self) -> None:
        """Exit the application."""
        self.config.collapsed = sorted(self.collapsed)
        self.config.save()
        self.exit()


# ---- Command line ----

def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="menu-maker", description="Hierarchical launcher menu")
    parser.add_argument("--config", type=Path, help="Settings file (default ~/.local/menu-maker/menus.json)")
    parser.add_argument("--dir", action="append", default=[], help="Build a menu group from a directory")
    parser.add_argument("--csv", help="CSV catalog with App and AppPath/AppFullName columns")
    parser.add_argument("--lookup", action="store_true", help="Resolve CSV items by name at launch time")
    parser.add_argument("--import", dest="import_ns", action="append", default=[],
                        help="Add the menu saved under a store namespace")
    parser.add_argument("--name", help="Group name for the --dir/--csv menu")
    parser.add_argument("--export", dest="export_ns", help="Save the menu to a store namespace and exit")
    parser.add_argument("--overwrite", action="store_true", help="Clear the namespace before exporting")
    parser.add_argument("--list", action="store_true", help="Print the --csv catalog and exit")
    parser.add_argument("--launch", metavar="KEY", help="Launch the --csv catalog entry KEY and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def command_line_sources(args: argparse.Namespace) -> List[Dict[str, Any]]:
    sources: List[Dict[str, Any]] = []
    for path in args.dir:
        sources.append({"type": "directory", "path": path, "name": args.name})
    if args.csv:
        mode = CsvCatalog.LOOKUP if args.lookup else CsvCatalog.DIRECT
        sources.append({"type": "csv", "path": args.csv, "mode": mode, "name": args.name})
    for namespace in args.import_ns:
        sources.append({"type": "store", "namespace": namespace})
    return sources


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    config = MenuMakerConfig.load(args.config)
    headless = bool(args.list or args.launch or args.export_ns)
    configure_logging(config.log_file, console=headless, verbose=args.verbose)

    if (args.list or args.launch) and not args.csv:
        print("--list and --launch need --csv", file=sys.stderr)
        return 2

    try:
        if args.list:
            for entry in CsvCatalog(args.csv).list_entries():
                print(f"{entry.app}\t{entry.full_name or ''}\t{entry.app_path or ''}")
            return 0

        if args.launch:
            result = Launcher().launch_by_name(args.launch, args.csv)
            print(result.message)
            return 0 if result.ok else 1

        sources = command_line_sources(args)
        if args.export_ns:
            presenter = MenuPresenter(config.title)
            store = config.make_store()
            for source in sources or config.sources:
                tree = build_source_tree(source, config.make_resolver(), store)
                install_tree(presenter, tree, as_group=len(sources or config.sources) > 1)
                print(f"{tree.source}: {tree.summary()}")
            count = store.export(args.export_ns, extract_tree(presenter), overwrite=args.overwrite)
            print(f"Exported {count} item(s) to {args.export_ns}")
            return 0
    except PreconditionFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except MenuError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (KeyError, ValueError) as e:
        print(f"Error: bad source {e}", file=sys.stderr)
        return 2

    MenuMakerApp(config, sources=sources or None).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
