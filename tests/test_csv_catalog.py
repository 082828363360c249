import os

import pytest

from menu_engine import (
    ActionKind,
    CatalogFormatError,
    CatalogKeyNotFound,
    CatalogNotFound,
    CsvCatalog,
)
from menu_host import Launcher


def write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def catalog_file(tmp_path):
    return write_csv(tmp_path / "apps.csv", (
        "App,AppPath,AppFullName,AppArgs,Elevated\n"
        "np,C:\\Windows\\notepad.exe,Notepad,,\n"
        "Calc,C:\\Windows\\calc.exe,Calculator,,no\n"
        "reg,C:\\Windows\\regedit.exe,Registry Editor,/m,yes\n"
        "np,C:\\Tools\\notepad++.exe,Notepad Plus,,\n"
    ))


def test_direct_mode_embeds_paths(catalog_file):
    tree = CsvCatalog(catalog_file).build_tree()

    items = {item.name: item for item in tree.root.items}
    assert sorted(items) == ["Calc", "np", "reg"]
    assert items["Calc"].action.kind == ActionKind.RUN_PROCESS
    assert items["Calc"].action.program == "C:\\Windows\\calc.exe"
    assert items["reg"].action.kind == ActionKind.RUN_PROCESS_ELEVATED
    assert items["reg"].action.arguments == "/m"
    assert tree.root.name == "apps"
    assert tree.source == f"csv:{catalog_file}"


def test_direct_mode_duplicate_key_last_wins(catalog_file):
    tree = CsvCatalog(catalog_file).build_tree()

    assert tree.root.find_item("np").action.program == "C:\\Tools\\notepad++.exe"
    assert [d.code for d in tree.diagnostics] == ["DuplicateName"]
    assert tree.processed == 4


def test_lookup_mode_defers_resolution(catalog_file):
    tree = CsvCatalog(catalog_file).build_tree(CsvCatalog.LOOKUP, name="Apps")

    item = tree.root.find_item("Calculator")
    assert tree.root.name == "Apps"
    assert item.action.kind == ActionKind.LAUNCH_BY_NAME
    assert item.action.program == os.path.abspath(catalog_file)
    assert item.action.arguments == "Calc"


def test_lookup_mode_uses_catalog_as_edited_later(tmp_path, fake_popen):
    path = write_csv(tmp_path / "apps.csv", "App,AppPath,AppFullName\ned,/usr/bin/vi,Editor\n")
    item = CsvCatalog(path).build_tree(CsvCatalog.LOOKUP).root.find_item("Editor")

    write_csv(path, "App,AppPath,AppFullName\ned,/usr/bin/nano,Editor\n")
    result = Launcher(popen=fake_popen, platform="linux").launch(item.action)

    assert result.ok
    assert fake_popen.calls[0][0] == ["/usr/bin/nano"]


def test_list_entries_sorted_with_duplicates(catalog_file):
    entries = CsvCatalog(catalog_file).list_entries()

    assert [entry.app for entry in entries] == ["Calc", "np", "np", "reg"]


def test_lookup_last_row_wins(catalog_file):
    entry = CsvCatalog(catalog_file).lookup("NP")

    assert entry.app_path == "C:\\Tools\\notepad++.exe"
    assert entry.full_name == "Notepad Plus"


def test_lookup_unknown_key(catalog_file):
    with pytest.raises(CatalogKeyNotFound):
        CsvCatalog(catalog_file).lookup("paint")


def test_missing_file(tmp_path):
    with pytest.raises(CatalogNotFound):
        CsvCatalog(tmp_path / "none.csv").build_tree()


def test_missing_column_for_mode(tmp_path):
    path = write_csv(tmp_path / "apps.csv", "App,AppPath\nnp,notepad.exe\n")

    assert len(CsvCatalog(path).build_tree().root.items) == 1
    with pytest.raises(CatalogFormatError):
        CsvCatalog(path).build_tree(CsvCatalog.LOOKUP)


def test_blank_values_are_skipped(tmp_path):
    path = write_csv(tmp_path / "apps.csv", "App,AppPath\nnp,\n,calc.exe\nok,ok.exe\n")

    tree = CsvCatalog(path).build_tree()

    assert [item.name for item in tree.root.items] == ["ok"]
    assert [d.code for d in tree.diagnostics] == ["MissingValue", "MissingValue"]
    assert tree.summary() == "3 entries processed, 2 skipped"


def test_unknown_mode(catalog_file):
    with pytest.raises(ValueError):
        CsvCatalog(catalog_file).build_tree("eager")
