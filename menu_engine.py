"""
Menu Engine - action resolution and menu-tree model for Menu Maker
Features: File-to-action resolution, directory/CSV/store sources, JSON key/value store
"""

import csv
import json
import logging
import os
import re
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union
from urllib.parse import quote


logger = logging.getLogger(__name__)

SHORTCUT_KEY_SUFFIX = "_ShKey"
SUPPORTED_EXTENSIONS = (".lnk", ".ps1", ".bat", ".cmd", ".exe", ".pdf", ".url")

DEFAULT_BROWSER_PATHS = [
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
]

_URL_LINE = re.compile(r"^URL=")
_TRUE_VALUES = ("true", "yes", "1")


# ---- Errors ----

class MenuError(Exception):
    """Base class for every Menu Maker failure."""


class PreconditionFailure(MenuError):
    """A root-level input is missing; the whole operation is aborted."""


class DirectoryNotFound(PreconditionFailure):
    pass


class CatalogNotFound(PreconditionFailure):
    pass


class CatalogFormatError(PreconditionFailure):
    pass


class NamespaceNotFound(PreconditionFailure):
    pass


class EntryResolutionFailure(MenuError):
    """One entry could not be turned into an action; only that entry is dropped."""

    code = "EntryResolutionFailure"

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{path}: {message}")
        self.path = str(path)
        self.reason = message


class UnsupportedExtension(EntryResolutionFailure):
    code = "UnsupportedExtension"


class MalformedUrlFile(EntryResolutionFailure):
    code = "MalformedUrlFile"


class BrowserNotFound(EntryResolutionFailure):
    code = "BrowserNotFound"


class ShortcutUnreadable(EntryResolutionFailure):
    code = "ShortcutUnreadable"


class StoreError(MenuError):
    pass


class StoreWriteError(StoreError):
    """Writing to the store failed; ``written`` entries made it before the failure."""

    def __init__(self, message: str, written: int = 0):
        super().__init__(message)
        self.written = written


class StoreReadError(StoreError):
    pass


class ReservedNameCollision(MenuError):
    pass


class DuplicateName(MenuError):
    pass


class CatalogKeyNotFound(MenuError):
    pass


# ---- Model ----

class ActionKind:
    RUN_PROCESS = "RunProcess"
    RUN_PROCESS_ELEVATED = "RunProcessElevatedArgs"
    OPEN_DOCUMENT = "OpenDocument"
    OPEN_URL = "OpenUrl"
    EDIT_IN_HOST = "EditInHost"
    LAUNCH_BY_NAME = "LaunchByName"

    ALL = (RUN_PROCESS, RUN_PROCESS_ELEVATED, OPEN_DOCUMENT, OPEN_URL, EDIT_IN_HOST, LAUNCH_BY_NAME)


@dataclass(frozen=True)
class Action:
    """What program to run, with which (already escaped) arguments."""
    kind: str
    program: str
    arguments: Optional[str] = None
    window: Optional[str] = None
    source_extension: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ActionKind.ALL:
            raise ValueError(f"Unknown action kind: {self.kind!r}")
        if not self.program:
            raise ValueError("Action program must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "program": self.program,
            "arguments": self.arguments,
            "window": self.window,
            "source_extension": self.source_extension,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Action":
        return Action(
            kind=d.get("kind", ActionKind.RUN_PROCESS),
            program=d.get("program", ""),
            arguments=d.get("arguments"),
            window=d.get("window"),
            source_extension=d.get("source_extension"),
        )


def serialize_action(action: Action) -> str:
    """Encode an action as a single JSON line."""
    return json.dumps(action.to_dict(), sort_keys=True, ensure_ascii=False)


def deserialize_action(text: str) -> Action:
    """Decode an action written by serialize_action; raises ValueError on bad input."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Not a serialized action: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Serialized action must be a JSON object")
    return Action.from_dict(data)


@dataclass
class Diagnostic:
    source: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.source}: {self.message}"


@dataclass
class MenuItem:
    name: str
    action: Action
    shortcut_key: Optional[str] = None

    def __post_init__(self):
        if self.action is None:
            raise ValueError(f"Menu item {self.name!r} has no action")


@dataclass
class MenuNode:
    """A group of child groups and items whose names are unique across both."""
    name: str
    groups: List["MenuNode"] = field(default_factory=list)
    items: List[MenuItem] = field(default_factory=list)

    def has_child(self, name: str) -> bool:
        key = name.casefold()
        return any(child.name.casefold() == key for child in self.groups) or \
            any(child.name.casefold() == key for child in self.items)

    def add_group(self, group: "MenuNode") -> "MenuNode":
        if self.has_child(group.name):
            raise DuplicateName(f"{self.name!r} already has a child named {group.name!r}")
        self.groups.append(group)
        return group

    def add_item(self, item: MenuItem) -> MenuItem:
        if self.has_child(item.name):
            raise DuplicateName(f"{self.name!r} already has a child named {item.name!r}")
        self.items.append(item)
        return item

    def replace_item(self, item: MenuItem) -> Optional[MenuItem]:
        """Put an item in place of a same-named item, returning the one replaced."""
        key = item.name.casefold()
        for idx, existing in enumerate(self.items):
            if existing.name.casefold() == key:
                self.items[idx] = item
                return existing
        self.add_item(item)
        return None

    def find_item(self, name: str) -> Optional[MenuItem]:
        key = name.casefold()
        for item in self.items:
            if item.name.casefold() == key:
                return item
        return None

    def find_group(self, name: str) -> Optional["MenuNode"]:
        key = name.casefold()
        for group in self.groups:
            if group.name.casefold() == key:
                return group
        return None

    def flatten(self) -> Iterator[MenuItem]:
        """Yield every item in this group and below, depth-first."""
        yield from self.items
        for group in self.groups:
            yield from group.flatten()


@dataclass
class MenuTree:
    root: MenuNode
    source: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0

    def items(self) -> List[MenuItem]:
        return list(self.root.flatten())

    def summary(self) -> str:
        return f"{self.processed} entries processed, {self.skipped} skipped"

    def warn(self, source: str, code: str, message: str, entry: bool = True) -> None:
        """Record a diagnostic; only entry-level ones count as skipped entries."""
        diagnostic = Diagnostic(source, code, message)
        self.diagnostics.append(diagnostic)
        if entry:
            self.skipped += 1
        logger.warning("%s", diagnostic)


# ---- Quoting helpers ----

def escape_quotes(text: str) -> str:
    """Mark embedded double quotes as shell-escaped."""
    return text.replace('"', '\\"')


def unescape_quotes(text: str) -> str:
    return text.replace('\\"', '"')


def quote_argument(text: str) -> str:
    return f'"{escape_quotes(text)}"'


def split_arguments(text: str) -> List[str]:
    """Turn a stored argument string back into the argv it stands for."""
    return shlex.split(unescape_quotes(text))


def path_to_file_uri(path: Union[str, Path]) -> str:
    """Build a file:// URI, percent-escaping the path and using forward slashes."""
    text = str(path).replace("\\", "/")
    return "file:///" + quote(text.lstrip("/"), safe="/:")


def normalize_shortcut_key(text: Optional[str]) -> Optional[str]:
    """Turn "Ctrl+Shift+S" into the lower-case "ctrl+shift+s" key form."""
    if not text or not text.strip():
        return None
    parts = [part.strip().lower() for part in text.split("+") if part.strip()]
    return "+".join(parts) or None


def default_edit_command() -> str:
    editor = os.environ.get("EDITOR", "").strip()
    if editor:
        return editor
    return "notepad.exe" if sys.platform == "win32" else "vi"


def default_url_handler() -> str:
    if sys.platform == "win32":
        return "explorer.exe"
    if sys.platform == "darwin":
        return "open"
    return "xdg-open"


def read_windows_shortcut(path: Union[str, Path]) -> Tuple[str, str]:
    """Read (target path, arguments) from a .lnk file through WScript.Shell."""
    try:
        import win32com.client
    except ImportError as e:
        raise ShortcutUnreadable(path, "reading .lnk files requires pywin32 on Windows") from e
    try:
        shell = win32com.client.Dispatch("WScript.Shell")
        shortcut = shell.CreateShortcut(str(path))
        return shortcut.Targetpath, shortcut.Arguments
    except Exception as e:
        raise ShortcutUnreadable(path, f"cannot read shortcut: {e}") from e


ShortcutParser = Callable[[Union[str, Path]], Tuple[str, str]]


# ---- ActionResolver ----

class ActionResolver:
    """Map one file-system entry to an Action, selected by its extension."""

    def __init__(
        self,
        edit_command: Optional[str] = None,
        url_handler: Optional[str] = None,
        browser_paths: Optional[List[str]] = None,
        shortcut_parser: Optional[ShortcutParser] = None,
    ):
        self.edit_command = edit_command or default_edit_command()
        self.url_handler = url_handler or default_url_handler()
        self.browser_paths = list(browser_paths) if browser_paths is not None else list(DEFAULT_BROWSER_PATHS)
        self.shortcut_parser = shortcut_parser or read_windows_shortcut
        self._handlers: Dict[str, Callable[[Path], Action]] = {
            ".lnk": self._resolve_shortcut,
            ".ps1": self._resolve_script,
            ".bat": self._resolve_batch,
            ".cmd": self._resolve_batch,
            ".exe": self._resolve_executable,
            ".pdf": self._resolve_pdf,
            ".url": self._resolve_url_file,
        }

    def supports(self, path: Union[str, Path]) -> bool:
        return Path(path).suffix.lower() in self._handlers

    def resolve(self, path: Union[str, Path]) -> Action:
        """Return the action for path or raise an EntryResolutionFailure."""
        path = Path(path)
        handler = self._handlers.get(path.suffix.lower())
        if handler is None:
            raise UnsupportedExtension(path, f"unsupported extension {path.suffix or '(none)'!r}")
        return handler(path)

    def resolve_item(self, path: Union[str, Path], name: Optional[str] = None) -> MenuItem:
        path = Path(path)
        return MenuItem(name=name or path.stem, action=self.resolve(path))

    def _resolve_shortcut(self, path: Path) -> Action:
        target, arguments = self.shortcut_parser(path)
        if not target:
            raise ShortcutUnreadable(path, "shortcut has no target path")
        return Action(
            kind=ActionKind.RUN_PROCESS,
            program=target,
            arguments=escape_quotes(arguments) if arguments else None,
            source_extension=".lnk",
        )

    def _resolve_script(self, path: Path) -> Action:
        return Action(
            kind=ActionKind.EDIT_IN_HOST,
            program=self.edit_command,
            arguments=quote_argument(os.path.abspath(path)),
            source_extension=".ps1",
        )

    def _resolve_batch(self, path: Path) -> Action:
        return Action(
            kind=ActionKind.RUN_PROCESS,
            program=os.path.abspath(path),
            window="normal",
            source_extension=path.suffix.lower(),
        )

    def _resolve_executable(self, path: Path) -> Action:
        return Action(kind=ActionKind.RUN_PROCESS, program=os.path.abspath(path), source_extension=".exe")

    def _resolve_pdf(self, path: Path) -> Action:
        browser = next((candidate for candidate in self.browser_paths if os.path.isfile(candidate)), None)
        if browser is None:
            raise BrowserNotFound(path, "no browser found at " + ", ".join(self.browser_paths))
        return Action(
            kind=ActionKind.OPEN_DOCUMENT,
            program=browser,
            arguments=quote_argument(path_to_file_uri(os.path.abspath(path))),
            source_extension=".pdf",
        )

    def _resolve_url_file(self, path: Path) -> Action:
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            raise MalformedUrlFile(path, f"cannot read file: {e}") from e
        for line in lines:
            if _URL_LINE.match(line):
                url = _URL_LINE.sub("", line, count=1).strip()
                if url:
                    return Action(kind=ActionKind.OPEN_URL, program=self.url_handler,
                                  arguments=quote_argument(url), source_extension=".url")
                break
        raise MalformedUrlFile(path, "no URL= line")


# ---- MenuTreeBuilder ----

class MenuTreeBuilder:
    """Mirror a directory tree as groups of resolved items."""

    def __init__(self, resolver: Optional[ActionResolver] = None):
        self.resolver = resolver or ActionResolver()

    def build(self, root_path: Union[str, Path], root_name: Optional[str] = None) -> MenuTree:
        root_path = Path(root_path)
        if not root_path.is_dir():
            raise DirectoryNotFound(f"Directory not found: {root_path}")
        root_path = Path(os.path.abspath(root_path))
        tree = MenuTree(root=MenuNode(root_name or root_path.name or str(root_path)),
                        source=f"directory:{root_path}")
        visited = {os.path.realpath(root_path)}
        self._fill_node(tree.root, root_path, tree, visited)
        logger.info("Built menu from %s: %s", root_path, tree.summary())
        return tree

    def _build_node(self, path: Path, name: str, tree: MenuTree, visited: set) -> MenuNode:
        node = MenuNode(name)
        self._fill_node(node, path, tree, visited)
        return node

    def _fill_node(self, node: MenuNode, path: Path, tree: MenuTree, visited: set) -> None:
        try:
            entries = sorted(os.scandir(path), key=lambda entry: (entry.name.casefold(), entry.name))
        except OSError as e:
            tree.warn(str(path), "Unreadable", f"cannot list directory: {e}", entry=False)
            return

        for entry in entries:
            entry_path = Path(entry.path)
            if entry.is_dir():
                canonical = os.path.realpath(entry_path)
                if canonical in visited:
                    tree.warn(str(entry_path), "SymlinkCycle", f"already visited as {canonical}", entry=False)
                    continue
                if node.has_child(entry.name):
                    tree.warn(str(entry_path), "DuplicateName", f"{node.name!r} already has {entry.name!r}",
                              entry=False)
                    continue
                node.add_group(self._build_node(entry_path, entry.name, tree, visited | {canonical}))
                continue

            tree.processed += 1
            try:
                item = self.resolver.resolve_item(entry_path)
            except EntryResolutionFailure as e:
                tree.warn(str(entry_path), e.code, e.reason)
                continue
            if node.has_child(item.name):
                tree.warn(str(entry_path), "DuplicateName", f"{node.name!r} already has {item.name!r}")
                continue
            node.add_item(item)


# ---- CSV catalog ----

@dataclass(frozen=True)
class CatalogEntry:
    app: str
    app_path: Optional[str] = None
    full_name: Optional[str] = None
    arguments: Optional[str] = None
    elevated: bool = False

    def to_action(self) -> Action:
        if not self.app_path:
            raise CatalogKeyNotFound(f"Catalog entry {self.app!r} has no AppPath")
        kind = ActionKind.RUN_PROCESS_ELEVATED if self.elevated else ActionKind.RUN_PROCESS
        return Action(kind=kind, program=self.app_path, arguments=self.arguments or None,
                      source_extension=".csv")


class CsvCatalog:
    """A CSV list of launchable apps keyed by the App column."""

    DIRECT = "direct"
    LOOKUP = "lookup"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_rows(self, required: Iterable[str]) -> List[Dict[str, str]]:
        if not self.path.is_file():
            raise CatalogNotFound(f"CSV file not found: {self.path}")
        with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            headers = [header.strip() for header in (reader.fieldnames or [])]
            missing = [column for column in required if column not in headers]
            if missing:
                raise CatalogFormatError(f"{self.path}: missing column(s) {', '.join(missing)}")
            rows = []
            for raw in reader:
                rows.append({(k or "").strip(): (v or "").strip() for k, v in raw.items() if k})
            return rows

    @staticmethod
    def _entry(row: Dict[str, str]) -> CatalogEntry:
        return CatalogEntry(
            app=row.get("App", ""),
            app_path=row.get("AppPath") or None,
            full_name=row.get("AppFullName") or None,
            arguments=row.get("AppArgs") or None,
            elevated=row.get("Elevated", "").lower() in _TRUE_VALUES,
        )

    def list_entries(self) -> List[CatalogEntry]:
        """Every row, duplicates included, sorted case-insensitively by key."""
        entries = [self._entry(row) for row in self._read_rows(["App"])]
        return sorted(entries, key=lambda entry: entry.app.casefold())

    def lookup(self, key: str) -> CatalogEntry:
        """Return the last row whose App matches key."""
        found = None
        for row in self._read_rows(["App", "AppPath"]):
            if row.get("App", "").casefold() == key.casefold():
                found = self._entry(row)
        if found is None:
            raise CatalogKeyNotFound(f"{key!r} is not in {self.path}")
        return found

    def build_tree(self, mode: str = DIRECT, name: Optional[str] = None) -> MenuTree:
        if mode not in (self.DIRECT, self.LOOKUP):
            raise ValueError(f"Unknown catalog mode: {mode!r}")
        value_column = "AppPath" if mode == self.DIRECT else "AppFullName"
        rows = self._read_rows(["App", value_column])
        tree = MenuTree(root=MenuNode(name or self.path.stem), source=f"csv:{self.path}")
        catalog_path = os.path.abspath(self.path)

        for line_no, row in enumerate(rows, start=2):
            tree.processed += 1
            entry = self._entry(row)
            source = f"{self.path}:{line_no}"
            if not entry.app or not row.get(value_column):
                tree.warn(source, "MissingValue", f"row needs App and {value_column}")
                continue
            if mode == self.DIRECT:
                item = MenuItem(name=entry.app, action=entry.to_action())
            else:
                item = MenuItem(
                    name=entry.full_name,
                    action=Action(kind=ActionKind.LAUNCH_BY_NAME, program=catalog_path,
                                  arguments=entry.app, source_extension=".csv"),
                )
            if tree.root.replace_item(item) is not None:
                tree.warn(source, "DuplicateName", f"{item.name!r} replaces an earlier row")
        logger.info("Built %s menu from %s: %s", mode, self.path, tree.summary())
        return tree


# ---- Key/value store ----

def normalize_namespace(namespace: str) -> str:
    parts = [part.strip() for part in re.split(r"[\\/]+", namespace or "") if part.strip()]
    if not parts:
        raise ValueError("Namespace must not be empty")
    return "/".join(parts)


class KeyValueStore:
    """Named string values grouped under hierarchical namespaces."""

    def namespace_exists(self, namespace: str) -> bool:
        raise NotImplementedError

    def create_namespace(self, namespace: str) -> None:
        raise NotImplementedError

    def value_names(self, namespace: str) -> List[str]:
        raise NotImplementedError

    def get_value(self, namespace: str, name: str) -> Optional[str]:
        raise NotImplementedError

    def set_value(self, namespace: str, name: str, value: str) -> None:
        raise NotImplementedError

    def delete_value(self, namespace: str, name: str) -> None:
        raise NotImplementedError


class JsonFileStore(KeyValueStore):
    """Key/value store kept in one JSON file, saved on every write."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, Dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreReadError(f"Cannot read store {self.path}: {e}") from e
        namespaces = data.get("namespaces", {}) if isinstance(data, dict) else {}
        if not isinstance(namespaces, dict):
            raise StoreReadError(f"Cannot read store {self.path}: 'namespaces' is not an object")
        return {str(ns): dict(values) for ns, values in namespaces.items() if isinstance(values, dict)}

    def _save(self, namespaces: Dict[str, Dict[str, str]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"namespaces": namespaces}, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreWriteError(f"Cannot write store {self.path}: {e}") from e

    def namespace_exists(self, namespace: str) -> bool:
        return normalize_namespace(namespace) in self._load()

    def create_namespace(self, namespace: str) -> None:
        namespaces = self._load()
        namespaces.setdefault(normalize_namespace(namespace), {})
        self._save(namespaces)

    def value_names(self, namespace: str) -> List[str]:
        values = self._load().get(normalize_namespace(namespace))
        if values is None:
            raise NamespaceNotFound(f"Namespace not found: {namespace}")
        return list(values.keys())

    def get_value(self, namespace: str, name: str) -> Optional[str]:
        value = self._load().get(normalize_namespace(namespace), {}).get(name)
        return None if value is None else str(value)

    def set_value(self, namespace: str, name: str, value: str) -> None:
        namespaces = self._load()
        key = normalize_namespace(namespace)
        if key not in namespaces:
            raise StoreWriteError(f"Namespace not found: {namespace}")
        namespaces[key][name] = value
        self._save(namespaces)

    def delete_value(self, namespace: str, name: str) -> None:
        namespaces = self._load()
        values = namespaces.get(normalize_namespace(namespace), {})
        if name in values:
            del values[name]
            self._save(namespaces)


# ---- MenuStore ----

class MenuStore:
    """Persist menu items as (action text, optional <name>_ShKey) value pairs."""

    def __init__(self, backend: KeyValueStore):
        self.backend = backend
        self.diagnostics: List[Diagnostic] = []

    def _warn(self, source: str, code: str, message: str) -> None:
        diagnostic = Diagnostic(source, code, message)
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)

    def _collect(self, source: Union[MenuTree, MenuNode, Iterable[MenuItem]]) -> List[MenuItem]:
        if isinstance(source, MenuTree):
            candidates = source.items()
        elif isinstance(source, MenuNode):
            candidates = list(source.flatten())
        else:
            candidates = list(source)

        for item in candidates:
            if item.name.endswith(SHORTCUT_KEY_SUFFIX):
                raise ReservedNameCollision(
                    f"{item.name!r} ends with the reserved suffix {SHORTCUT_KEY_SUFFIX!r}"
                )

        items: List[MenuItem] = []
        seen = set()
        for item in candidates:
            if item.name.casefold() in seen:
                self._warn(item.name, "DuplicateName", "flattened name already exported; skipped")
                continue
            seen.add(item.name.casefold())
            items.append(item)
        return items

    def export(self, namespace: str, source: Union[MenuTree, MenuNode, Iterable[MenuItem]],
               overwrite: bool = False) -> int:
        """Write every item under namespace and return how many were written."""
        self.diagnostics = []
        items = self._collect(source)

        try:
            if not self.backend.namespace_exists(namespace):
                self.backend.create_namespace(namespace)
        except StoreError as e:
            raise StoreWriteError(f"Cannot create namespace {namespace}: {e}") from e

        if overwrite:
            for name in self.backend.value_names(namespace):
                try:
                    self.backend.delete_value(namespace, name)
                except StoreError as e:
                    self._warn(name, "DeleteFailed", str(e))

        written = 0
        for item in items:
            try:
                self.backend.set_value(namespace, item.name, serialize_action(item.action))
                shortcut_name = item.name + SHORTCUT_KEY_SUFFIX
                if item.shortcut_key:
                    self.backend.set_value(namespace, shortcut_name, item.shortcut_key)
                elif self.backend.get_value(namespace, shortcut_name) is not None:
                    self.backend.delete_value(namespace, shortcut_name)
            except StoreError as e:
                raise StoreWriteError(f"Export to {namespace} failed at {item.name!r}: {e}", written) from e
            written += 1
        logger.info("Exported %d entries to %s", written, namespace)
        return written

    def import_tree(self, namespace: str, name: Optional[str] = None) -> MenuTree:
        """Read a namespace back as one flat group."""
        self.diagnostics = []
        if not self.backend.namespace_exists(namespace):
            raise NamespaceNotFound(f"Namespace not found: {namespace}")
        normalized = normalize_namespace(namespace)
        tree = MenuTree(root=MenuNode(name or normalized.split("/")[-1]), source=f"store:{normalized}")

        for value_name in self.backend.value_names(namespace):
            if value_name.endswith(SHORTCUT_KEY_SUFFIX):
                continue
            tree.processed += 1
            text = self.backend.get_value(namespace, value_name)
            if not text:
                tree.warn(value_name, "EmptyValue", "no action text stored")
                continue
            try:
                action = deserialize_action(text)
            except ValueError as e:
                tree.warn(value_name, "BadAction", str(e))
                continue
            shortcut_key = self.backend.get_value(namespace, value_name + SHORTCUT_KEY_SUFFIX) or None
            try:
                tree.root.add_item(MenuItem(value_name, action, shortcut_key))
            except DuplicateName as e:
                tree.warn(value_name, "DuplicateName", str(e))
        self.diagnostics = list(tree.diagnostics)
        logger.info("Imported menu from %s: %s", normalized, tree.summary())
        return tree
