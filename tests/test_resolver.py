import os
import shlex
import sys

import pytest

from menu_engine import (
    Action,
    ActionKind,
    ActionResolver,
    BrowserNotFound,
    MalformedUrlFile,
    ShortcutUnreadable,
    UnsupportedExtension,
    deserialize_action,
    normalize_shortcut_key,
    path_to_file_uri,
    read_windows_shortcut,
    serialize_action,
    split_arguments,
)
from tests.helpers import FakeShortcutParser


def make_file(directory, name, text=""):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.mark.parametrize("name,kind", [
    ("tool.lnk", ActionKind.RUN_PROCESS),
    ("script.ps1", ActionKind.EDIT_IN_HOST),
    ("job.bat", ActionKind.RUN_PROCESS),
    ("job2.CMD", ActionKind.RUN_PROCESS),
    ("app.exe", ActionKind.RUN_PROCESS),
    ("manual.pdf", ActionKind.OPEN_DOCUMENT),
    ("site.url", ActionKind.OPEN_URL),
])
def test_supported_extensions_resolve(tmp_path, resolver, name, kind):
    text = "[InternetShortcut]\nURL=https://example.com\n" if name.endswith(".url") else ""
    path = make_file(tmp_path, name, text)

    action = resolver.resolve(path)

    assert action.kind == kind
    assert action.program
    assert resolver.supports(path)


def test_unsupported_extension(tmp_path, resolver):
    path = make_file(tmp_path, "notes.xyz")

    with pytest.raises(UnsupportedExtension) as info:
        resolver.resolve(path)

    assert info.value.code == "UnsupportedExtension"
    assert not resolver.supports(path)


def test_url_file_yields_url_argument(tmp_path, resolver):
    path = make_file(tmp_path, "example.url", "[InternetShortcut]\nIconIndex=0\nURL=https://example.com\n")

    action = resolver.resolve(path)

    assert action.kind == ActionKind.OPEN_URL
    assert action.program == "xdg-open"
    assert action.arguments == '"https://example.com"'
    assert split_arguments(action.arguments) == ["https://example.com"]
    assert action.source_extension == ".url"


def test_url_file_without_url_line(tmp_path, resolver):
    path = make_file(tmp_path, "broken.url", "[InternetShortcut]\nIconIndex=0\n")

    with pytest.raises(MalformedUrlFile):
        resolver.resolve(path)


def test_url_line_must_start_the_line(tmp_path, resolver):
    path = make_file(tmp_path, "indented.url", "  URL=https://example.com\n")

    with pytest.raises(MalformedUrlFile):
        resolver.resolve(path)


def test_script_argument_is_quoted_path_with_spaces(tmp_path, resolver):
    path = make_file(tmp_path / "My Scripts", "do thing.ps1")

    action = resolver.resolve(path)

    assert action.program == "code"
    assert action.arguments == f'"{os.path.abspath(path)}"'
    assert shlex.split(action.arguments) == [os.path.abspath(path)]


def test_batch_requests_normal_window(tmp_path, resolver):
    path = make_file(tmp_path, "build.cmd")

    action = resolver.resolve(path)

    assert action.program == os.path.abspath(path)
    assert action.window == "normal"
    assert action.arguments is None
    assert action.source_extension == ".cmd"


def test_executable_has_no_arguments(tmp_path, resolver):
    action = resolver.resolve(make_file(tmp_path, "app.exe"))

    assert action.arguments is None
    assert action.window is None


def test_pdf_uses_first_existing_browser(tmp_path, resolver, browser):
    path = make_file(tmp_path / "docs dir", "user guide.pdf")

    action = resolver.resolve(path)

    assert action.program == str(browser)
    assert action.arguments.startswith('"file:///')
    assert "user%20guide.pdf" in action.arguments
    assert " " not in action.arguments


def test_pdf_without_browser(tmp_path):
    resolver = ActionResolver(browser_paths=[str(tmp_path / "nope.exe")], shortcut_parser=FakeShortcutParser())

    with pytest.raises(BrowserNotFound):
        resolver.resolve(make_file(tmp_path, "guide.pdf"))


def test_file_uri_for_windows_path():
    assert path_to_file_uri("C:\\Docs\\My File.pdf") == "file:///C:/Docs/My%20File.pdf"
    assert path_to_file_uri("/srv/a b/c.pdf") == "file:///srv/a%20b/c.pdf"


def test_shortcut_with_spaces_and_embedded_quote_round_trips(tmp_path):
    parser = FakeShortcutParser({
        "editor": ("C:\\Program Files\\My Editor\\editor.exe", '--title "Hello World" -n'),
    })
    resolver = ActionResolver(shortcut_parser=parser)
    path = make_file(tmp_path, "editor.lnk")

    action = resolver.resolve(path)

    assert action.program == "C:\\Program Files\\My Editor\\editor.exe"
    assert action.arguments == '--title \\"Hello World\\" -n'
    assert split_arguments(action.arguments) == ["--title", "Hello World", "-n"]
    text = serialize_action(action)
    assert deserialize_action(text) == action
    assert serialize_action(deserialize_action(text)) == text
    assert parser.calls == [str(path)]


def test_shortcut_without_target(tmp_path):
    resolver = ActionResolver(shortcut_parser=FakeShortcutParser({"empty": ("", "")}))

    with pytest.raises(ShortcutUnreadable):
        resolver.resolve(make_file(tmp_path, "empty.lnk"))


@pytest.mark.skipif(sys.platform == "win32", reason="pywin32 is available on Windows")
def test_default_shortcut_reader_needs_windows(tmp_path):
    with pytest.raises(ShortcutUnreadable):
        read_windows_shortcut(make_file(tmp_path, "app.lnk"))


def test_resolution_does_not_touch_files(tmp_path, resolver):
    path = make_file(tmp_path, "site.url", "URL=https://example.com\n")
    before = sorted(os.listdir(tmp_path))

    resolver.resolve(path)

    assert sorted(os.listdir(tmp_path)) == before
    assert path.read_text() == "URL=https://example.com\n"


def test_action_requires_known_kind_and_program():
    with pytest.raises(ValueError):
        Action(kind="Teleport", program="x")
    with pytest.raises(ValueError):
        Action(kind=ActionKind.RUN_PROCESS, program="")


def test_deserialize_rejects_garbage():
    with pytest.raises(ValueError):
        deserialize_action("{not json")
    with pytest.raises(ValueError):
        deserialize_action('["RunProcess"]')


def test_normalize_shortcut_key():
    assert normalize_shortcut_key("Ctrl+Shift+S") == "ctrl+shift+s"
    assert normalize_shortcut_key(" F5 ") == "f5"
    assert normalize_shortcut_key("") is None
    assert normalize_shortcut_key(None) is None
