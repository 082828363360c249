"""
Menu Host - live menu tree, idempotent installation and process launching
"""

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Union

from menu_engine import (
    Action,
    ActionKind,
    CsvCatalog,
    Diagnostic,
    DuplicateName,
    MenuError,
    MenuItem,
    MenuNode,
    MenuTree,
    split_arguments,
    unescape_quotes,
)


logger = logging.getLogger(__name__)


class LaunchError(MenuError):
    pass


class GroupNotFound(MenuError):
    pass


# ---- Presenter ----

@dataclass(eq=False)
class ItemHandle:
    name: str
    action: Action
    shortcut_key: Optional[str] = None
    parent: Optional["GroupHandle"] = None


@dataclass(eq=False)
class GroupHandle:
    name: str
    parent: Optional["GroupHandle"] = None
    groups: List["GroupHandle"] = field(default_factory=list)
    items: List[ItemHandle] = field(default_factory=list)

    @property
    def path(self) -> str:
        """Slash-joined names from below the root down to this group."""
        names = []
        node = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        return "/".join(reversed(names))


@dataclass(frozen=True)
class ByName:
    """Refer to a group by its slash-separated path under the presenter root."""
    path: str


ParentRef = Union[ByName, GroupHandle, None]


def _same_name(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


class MenuPresenter:
    """In-memory live menu widget tree that a host UI renders."""

    def __init__(self, root_name: str = "Add-ons"):
        self.root = GroupHandle(root_name)
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    def find_group(self, parent: GroupHandle, name: str) -> Optional[GroupHandle]:
        return next((group for group in parent.groups if _same_name(group.name, name)), None)

    def find_item(self, parent: GroupHandle, name: str) -> Optional[ItemHandle]:
        return next((item for item in parent.items if _same_name(item.name, name)), None)

    def resolve_parent(self, ref: ParentRef = None, create: bool = True) -> GroupHandle:
        """Turn a ParentRef into one concrete group handle."""
        if ref is None:
            return self.root
        if isinstance(ref, GroupHandle):
            return ref
        if not isinstance(ref, ByName):
            raise TypeError(f"Unsupported parent reference: {ref!r}")

        group = self.root
        for name in [part for part in ref.path.replace("\\", "/").split("/") if part.strip()]:
            child = self.find_group(group, name.strip())
            if child is None:
                if not create:
                    raise GroupNotFound(f"No menu group named {ref.path!r}")
                child = self.add_group(group, name.strip())
            group = child
        return group

    def add_group(self, parent: GroupHandle, name: str) -> GroupHandle:
        """Return the existing group of that name or add a new one."""
        existing = self.find_group(parent, name)
        if existing is not None:
            return existing
        if self.find_item(parent, name) is not None:
            raise DuplicateName(f"{parent.name!r} already has an item named {name!r}")
        group = GroupHandle(name, parent=parent)
        parent.groups.append(group)
        self._changed()
        return group

    def add_item(self, parent: GroupHandle, name: str, action: Action,
                 shortcut_key: Optional[str] = None) -> ItemHandle:
        if self.find_item(parent, name) is not None or self.find_group(parent, name) is not None:
            raise DuplicateName(f"{parent.name!r} already has a child named {name!r}")
        item = ItemHandle(name, action, shortcut_key, parent=parent)
        parent.items.append(item)
        self._changed()
        return item

    def remove(self, handle: Union[ItemHandle, GroupHandle]) -> None:
        parent = handle.parent
        if parent is None:
            raise ValueError("The root group cannot be removed")
        if isinstance(handle, ItemHandle):
            parent.items.remove(handle)
        else:
            parent.groups.remove(handle)
        handle.parent = None
        self._changed()

    def clear(self) -> None:
        self.root.groups.clear()
        self.root.items.clear()
        self._changed()

    def list_children(self, group: GroupHandle) -> List[ItemHandle]:
        return list(group.items)

    def list_groups(self, group: Optional[GroupHandle] = None) -> List[GroupHandle]:
        return list((group or self.root).groups)

    def iter_items(self, group: Optional[GroupHandle] = None):
        group = group or self.root
        yield from group.items
        for child in group.groups:
            yield from self.iter_items(child)


# ---- Install / extract ----

@dataclass
class InstallReport:
    installed: int = 0
    replaced: int = 0
    skipped: int = 0
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def warn(self, source: str, code: str, message: str) -> None:
        diagnostic = Diagnostic(source, code, message)
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)


def install_item(presenter: MenuPresenter, parent: ParentRef, item: MenuItem, force: bool = False,
                 report: Optional[InstallReport] = None) -> Optional[ItemHandle]:
    """Add item under parent unless one of that name is already there.

    With ``force`` the existing item is removed first and the new one added.
    Returns the new handle, or None when the call was a no-op.
    """
    report = report if report is not None else InstallReport()
    group = presenter.resolve_parent(parent)
    source = f"{group.path or group.name}/{item.name}"

    if presenter.find_group(group, item.name) is not None:
        report.skipped += 1
        report.warn(source, "DuplicateName", "a group of that name already exists")
        return None

    existing = presenter.find_item(group, item.name)
    if existing is not None:
        if not force:
            report.skipped += 1
            report.warn(source, "AlreadyInstalled", "item exists; pass force to replace it")
            return None
        presenter.remove(existing)
        report.replaced += 1
    else:
        report.installed += 1
    return presenter.add_item(group, item.name, item.action, item.shortcut_key)


def install_tree(presenter: MenuPresenter, tree: Union[MenuTree, MenuNode], parent: ParentRef = None,
                 force: bool = False, as_group: bool = True) -> InstallReport:
    """Mirror a tree under parent, as a group named after its root unless as_group is False."""
    report = InstallReport()
    node = tree.root if isinstance(tree, MenuTree) else tree
    group = presenter.resolve_parent(parent)
    if as_group:
        try:
            group = presenter.add_group(group, node.name)
        except DuplicateName as e:
            report.skipped += 1
            report.warn(node.name, "DuplicateName", str(e))
            return report
    _install_node(presenter, group, node, force, report)
    logger.info("Installed %d, replaced %d, skipped %d under %s",
                report.installed, report.replaced, report.skipped, group.path or group.name)
    return report


def _install_node(presenter: MenuPresenter, group: GroupHandle, node: MenuNode, force: bool,
                  report: InstallReport) -> None:
    for item in node.items:
        install_item(presenter, group, item, force=force, report=report)
    for child in node.groups:
        try:
            child_group = presenter.add_group(group, child.name)
        except DuplicateName as e:
            report.skipped += 1
            report.warn(child.name, "DuplicateName", str(e))
            continue
        _install_node(presenter, child_group, child, force, report)


def extract_tree(presenter: MenuPresenter, parent: ParentRef = None) -> MenuTree:
    """Read the live menu under parent back into a MenuTree."""
    group = presenter.resolve_parent(parent, create=False)
    tree = MenuTree(root=_extract_node(group), source=f"presenter:{group.path or group.name}")
    tree.processed = len(tree.items())
    return tree


def _extract_node(group: GroupHandle) -> MenuNode:
    node = MenuNode(group.name)
    for item in group.items:
        node.add_item(MenuItem(item.name, item.action, item.shortcut_key))
    for child in group.groups:
        node.add_group(_extract_node(child))
    return node


# ---- Launcher ----

@dataclass
class LaunchResult:
    ok: bool
    pid: Optional[int] = None
    message: str = ""


class Launcher:
    """Start an action's program without waiting for it to finish."""

    SW_SHOWNORMAL = 1

    def __init__(self, popen: Optional[Callable[..., Any]] = None, platform: Optional[str] = None):
        self.popen = popen or subprocess.Popen
        self.platform = platform or sys.platform

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    def command_line(self, action: Action) -> Union[str, List[str]]:
        """Build what Popen gets: a command string on Windows, an argv list elsewhere."""
        if self.is_windows:
            command = subprocess.list2cmdline([action.program])
            return f"{command} {unescape_quotes(action.arguments)}" if action.arguments else command
        argv = [os.path.expanduser(action.program)]
        if action.arguments:
            argv.extend(split_arguments(action.arguments))
        return argv

    def launch(self, action: Action) -> LaunchResult:
        try:
            if action.kind == ActionKind.LAUNCH_BY_NAME:
                action = CsvCatalog(action.program).lookup(action.arguments or "").to_action()
            if action.kind == ActionKind.RUN_PROCESS_ELEVATED:
                return self._launch_elevated(action)
            return self._spawn(action)
        except MenuError as e:
            logger.warning("Launch failed: %s", e)
            return LaunchResult(False, message=str(e))

    def launch_by_name(self, key: str, catalog_path: str) -> LaunchResult:
        return self.launch(Action(kind=ActionKind.LAUNCH_BY_NAME, program=str(catalog_path), arguments=key))

    def _spawn(self, action: Action) -> LaunchResult:
        try:
            command = self.command_line(action)
        except ValueError as e:
            return LaunchResult(False, message=f"Bad arguments for {action.program}: {e}")

        options = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }
        if self.is_windows:
            if action.window == "normal":
                startupinfo = subprocess.STARTUPINFO()
                startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
                startupinfo.wShowWindow = self.SW_SHOWNORMAL
                options["startupinfo"] = startupinfo
                options["creationflags"] = subprocess.CREATE_NEW_CONSOLE
        else:
            options["start_new_session"] = True

        try:
            process = self.popen(command, **options)
        except OSError as e:
            logger.warning("Cannot start %s: %s", action.program, e)
            return LaunchResult(False, message=f"Cannot start {action.program}: {e}")
        logger.info("Started %s (pid %s)", action.program, getattr(process, "pid", None))
        return LaunchResult(True, pid=getattr(process, "pid", None), message=f"Started {action.program}")

    def _launch_elevated(self, action: Action) -> LaunchResult:
        if not self.is_windows:
            raise LaunchError(f"Elevated launch of {action.program} is only supported on Windows")
        import ctypes

        result = ctypes.windll.shell32.ShellExecuteW(
            None, "runas", action.program, unescape_quotes(action.arguments or "") or None, None,
            self.SW_SHOWNORMAL
        )
        # ShellExecuteW returns a value greater than 32 on success.
        if result <= 32:
            return LaunchResult(False, message=f"Elevated launch of {action.program} failed ({result})")
        return LaunchResult(True, message=f"Started {action.program} elevated")
