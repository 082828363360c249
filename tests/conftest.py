import pytest

from menu_engine import ActionResolver
from tests.helpers import FakePopen, FakeShortcutParser


@pytest.fixture
def shortcut_parser():
    return FakeShortcutParser()


@pytest.fixture
def browser(tmp_path):
    path = tmp_path / "browsers" / "chrome.exe"
    path.parent.mkdir()
    path.write_text("")
    return path


@pytest.fixture
def resolver(shortcut_parser, browser):
    return ActionResolver(
        edit_command="code",
        url_handler="xdg-open",
        browser_paths=[str(browser.parent / "missing.exe"), str(browser)],
        shortcut_parser=shortcut_parser,
    )


@pytest.fixture
def fake_popen():
    return FakePopen()
