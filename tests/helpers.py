class FakeShortcutParser:
    """Stand-in for the .lnk reader; maps a shortcut's stem to (target, arguments)."""

    def __init__(self, targets=None):
        self.targets = targets or {}
        self.calls = []

    def __call__(self, path):
        self.calls.append(str(path))
        return self.targets.get(path.stem, ("C:\\Windows\\notepad.exe", ""))


class FakePopen:
    """Records Popen calls instead of starting processes."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []
        self.pid = 4242

    def __call__(self, command, **options):
        if self.fail:
            raise FileNotFoundError(2, "No such file or directory")
        self.calls.append((command, options))
        return self
