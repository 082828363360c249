import os

import pytest

from menu_engine import ActionKind, DirectoryNotFound, MenuTreeBuilder


def touch(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_builds_groups_and_items(tmp_path, resolver):
    root = tmp_path / "root"
    touch(root / "a.ps1")
    touch(root / "sub" / "b.exe")

    tree = MenuTreeBuilder(resolver).build(root)

    assert tree.root.name == "root"
    assert [item.name for item in tree.root.items] == ["a"]
    assert tree.root.items[0].action.kind == ActionKind.EDIT_IN_HOST
    assert [group.name for group in tree.root.groups] == ["sub"]
    sub = tree.root.groups[0]
    assert [item.name for item in sub.items] == ["b"]
    assert sub.items[0].action.kind == ActionKind.RUN_PROCESS
    assert tree.source == f"directory:{os.path.abspath(root)}"


def test_root_name_override(tmp_path, resolver):
    root = tmp_path / "root"
    root.mkdir()

    tree = MenuTreeBuilder(resolver).build(root, "Tools")

    assert tree.root.name == "Tools"


def test_missing_root_aborts(tmp_path, resolver):
    with pytest.raises(DirectoryNotFound):
        MenuTreeBuilder(resolver).build(tmp_path / "missing")


def test_empty_directories_are_kept(tmp_path, resolver):
    root = tmp_path / "root"
    (root / "empty" / "deeper").mkdir(parents=True)

    tree = MenuTreeBuilder(resolver).build(root)

    empty = tree.root.find_group("empty")
    assert empty is not None
    assert empty.items == []
    assert [group.name for group in empty.groups] == ["deeper"]


def test_failed_entries_are_skipped_with_diagnostics(tmp_path, resolver):
    root = tmp_path / "root"
    touch(root / "readme.txt")
    touch(root / "bad.url", "nothing here")
    touch(root / "good.exe")
    touch(root / "deep" / "er" / "site.url", "URL=https://example.org")

    tree = MenuTreeBuilder(resolver).build(root)

    assert [item.name for item in tree.items()] == ["good", "site"]
    codes = sorted(d.code for d in tree.diagnostics)
    assert codes == ["MalformedUrlFile", "UnsupportedExtension"]
    assert tree.processed == 4
    assert tree.summary() == "4 entries processed, 2 skipped"


def test_entries_are_in_case_insensitive_order(tmp_path, resolver):
    root = tmp_path / "root"
    for name in ("Zeta.exe", "alpha.exe", "Beta.exe"):
        touch(root / name)

    tree = MenuTreeBuilder(resolver).build(root)

    assert [item.name for item in tree.root.items] == ["alpha", "Beta", "Zeta"]


def test_duplicate_names_keep_first(tmp_path, resolver):
    root = tmp_path / "root"
    touch(root / "tool.bat")
    touch(root / "tool.exe")
    touch(root / "tool" / "inner.exe")

    tree = MenuTreeBuilder(resolver).build(root)

    assert [group.name for group in tree.root.groups] == ["tool"]
    assert tree.root.items == []
    assert [d.code for d in tree.diagnostics] == ["DuplicateName", "DuplicateName"]
    assert tree.summary() == "3 entries processed, 2 skipped"


def test_symlink_cycle_is_skipped(tmp_path, resolver):
    root = tmp_path / "root"
    touch(root / "sub" / "app.exe")
    try:
        os.symlink(root, root / "sub" / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not available")

    tree = MenuTreeBuilder(resolver).build(root)

    sub = tree.root.find_group("sub")
    assert sub.find_group("loop") is None
    assert [d.code for d in tree.diagnostics] == ["SymlinkCycle"]
    assert tree.summary() == "1 entries processed, 0 skipped"


def test_duplicate_directories_are_not_counted_as_skipped_entries(tmp_path, resolver):
    root = tmp_path / "root"
    touch(root / "Tools" / "a.exe")
    touch(root / "tools" / "b.exe")
    if len(os.listdir(root)) != 2:
        pytest.skip("file system is case-insensitive")

    tree = MenuTreeBuilder(resolver).build(root)

    assert [d.code for d in tree.diagnostics] == ["DuplicateName"]
    assert [i.name for i in tree.root.find_group("tools").items] == ["a"]
    assert tree.summary() == "1 entries processed, 0 skipped"
