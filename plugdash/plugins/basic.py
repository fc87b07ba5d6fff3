"""The simplest plugin entry points and the error type plugins raise."""

from __future__ import annotations

from typing import Union


class PluginError(Exception):
    """Raised when a plugin call fails; carries a non-zero return code."""

    def __init__(self, message: str, code: int = 1) -> None:
        super().__init__(message)
        self.code = code


def _as_plugin_error(error: Exception, code: int = 1) -> PluginError:
    """Wrap any failure as a plugin error carrying a return code."""
    if isinstance(error, PluginError):
        return error
    wrapped = PluginError(str(error), code=code)
    wrapped.__cause__ = error
    return wrapped


def greet(name: str) -> str:
    return f"Hello, {name}!"


def test_main() -> str:
    """Return a fixed marker string."""
    return "test"


def minimal_test() -> str:
    """Produce a failed result and surface it as a plugin error."""
    result: Union[str, Exception] = RuntimeError("test error")
    if isinstance(result, Exception):
        raise _as_plugin_error(result)
    return result