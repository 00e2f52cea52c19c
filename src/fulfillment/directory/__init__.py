"""Directory factory.

Provides get_directory() / set_directory(). Defaults to FakeDirectory; a host
service installs its own adapter at startup.
"""

from fulfillment.directory.fake_adapter import FakeDirectory
from fulfillment.directory.port import Directory

_current_directory: Directory | None = None


def get_directory() -> Directory:
    """Return the current directory. Defaults to FakeDirectory."""
    global _current_directory
    if _current_directory is None:
        _current_directory = FakeDirectory()
    return _current_directory


def set_directory(directory: Directory) -> None:
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    global _current_directory
    _current_directory = None
