"""A plugin that exercises host storage: CRUD, isolation and nested JSON."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from plugdash.plugins.basic import PluginError

PLUGIN_ID = "storage-test-plugin"

_CRUD_DATA = (
    ("test_key_1", {"name": "Test 1", "value": 100}),
    ("test_key_2", {"name": "Test 2", "value": 200}),
    ("test_key_3", {"name": "Test 3", "value": 300}),
)

_COMPLEX_DATA = {
    "user": {
        "id": 12345,
        "name": "Test User",
        "email": "test@example.com",
        "settings": {"theme": "dark", "notifications": True, "language": "zh-CN"},
    },
    "data": {
        "arrays": [1, 2, 3, 4, 5],
        "nested": {"level1": {"level2": {"level3": "deep value"}}},
    },
    "metadata": {"created_at": "2024-07-17T10:00:00Z", "version": "1.0.0"},
}

_DEEP_POINTER = "/data/nested/level1/level2/level3"


class StorageHost(Protocol):
    def store_data(self, plugin_id: str, key: str, value: str) -> str: ...

    def get_data(self, plugin_id: str, key: str) -> str: ...

    def delete_data(self, plugin_id: str, key: str) -> str: ...

    def list_keys(self, plugin_id: str) -> str: ...

    def log_message(self, level: str, message: str) -> str: ...


def _dumps(value: Any, *, sort_keys: bool = True) -> str:
    return json.dumps(
        value, sort_keys=sort_keys, separators=(",", ":"), ensure_ascii=False
    )


def _load(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise PluginError(f"invalid JSON: {exc}") from None


def _field(value: Any, key: str) -> Any:
    """Index a JSON value by key, yielding None where the key is absent."""
    return value.get(key) if isinstance(value, dict) else None


def _is_true(value: Any) -> bool:
    return value is True


def _pointer(value: Any, pointer: str) -> Any:
    """Resolve a JSON pointer, returning None when any step is missing."""
    for raw_segment in pointer.split("/")[1:]:
        segment = raw_segment.replace("~1", "/").replace("~0", "~")
        if isinstance(value, dict) and segment in value:
            value = value[segment]
        elif isinstance(value, list) and segment.isdigit() and int(segment) < len(value):
            value = value[int(segment)]
        else:
            return None
    return value


def _uint(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0


@dataclass(frozen=True)
class _Response:
    success: bool
    message: str
    data: Any = None

    def to_json(self) -> str:
        body = {"success": self.success, "message": self.message, "data": self.data}
        return _dumps(body, sort_keys=False)


def _required(value: Optional[str], what: str, action: str) -> str:
    if value is None:
        raise PluginError(f"{what} is required for {action} action")
    return value


class StorageCheckPlugin:
    """Runs storage scenarios against the host and reports the outcome as JSON."""

    def __init__(self, host: StorageHost, plugin_id: str = PLUGIN_ID) -> None:
        self._host = host
        self._plugin_id = plugin_id

    def test_storage(self, input: str) -> str:
        """Run the action named in the request and return the JSON response."""
        self._host.log_message("info", f"Received request: {input}")
        request = _load(input)
        if not isinstance(request, dict) or not isinstance(request.get("action"), str):
            raise PluginError("request needs a string 'action'")
        key = request.get("key")
        value = request.get("value")
        for name, item in (("key", key), ("value", value)):
            if item is not None and not isinstance(item, str):
                raise PluginError(f"field '{name}' must be a string")

        action = request["action"]
        handlers: dict[str, Callable[[], _Response]] = {
            "store": lambda: self._store(key, value),
            "get": lambda: self._get(key),
            "delete": lambda: self._delete(key),
            "list": self._list,
            "test_crud": self._crud,
            "test_isolation": self._isolation,
            "test_json": self._json_storage,
        }
        handler = handlers.get(action)
        if handler is None:
            response = _Response(False, f"Unknown action: {action}")
        else:
            response = handler()
        return response.to_json()

    def _store(self, key: Optional[str], value: Optional[str]) -> _Response:
        key = _required(key, "Key", "store")
        value = _required(value, "Value", "store")
        result = self._host.store_data(self._plugin_id, key, value)
        self._host.log_message("info", f"Store result: {result}")
        return _Response(
            True, f"Stored key '{key}' successfully", {"key": key, "value": value}
        )

    def _get(self, key: Optional[str]) -> _Response:
        key = _required(key, "Key", "get")
        parsed = _load(self._host.get_data(self._plugin_id, key))
        if _is_true(_field(parsed, "success")):
            return _Response(
                True, f"Retrieved key '{key}' successfully", _field(parsed, "value")
            )
        return _Response(False, f"Key '{key}' not found")

    def _delete(self, key: Optional[str]) -> _Response:
        key = _required(key, "Key", "delete")
        parsed = _load(self._host.delete_data(self._plugin_id, key))
        return _Response(
            _is_true(_field(parsed, "success")),
            f"Delete operation for key '{key}' completed",
            parsed,
        )

    def _list(self) -> _Response:
        parsed = _load(self._host.list_keys(self._plugin_id))
        return _Response(
            _is_true(_field(parsed, "success")), "Listed all keys", _field(parsed, "keys")
        )

    def _crud(self) -> _Response:
        self._host.log_message("info", "Starting CRUD operations test")

        for key, value in _CRUD_DATA:
            self._host.store_data(self._plugin_id, key, _dumps(value))
            self._host.log_message("info", f"Stored {key}")

        for key, expected in _CRUD_DATA:
            parsed = _load(self._host.get_data(self._plugin_id, key))
            if isinstance(parsed, dict) and "value" in parsed:
                stored = parsed["value"]
                if stored != expected:
                    return _Response(
                        False,
                        f"Value mismatch for key '{key}'",
                        {"expected": expected, "actual": stored},
                    )

        self._host.store_data(
            self._plugin_id,
            "test_key_1",
            _dumps({"name": "Test 1 Updated", "value": 150}),
        )
        updated = _load(self._host.get_data(self._plugin_id, "test_key_1"))
        initial = _load(self._host.list_keys(self._plugin_id))
        self._host.delete_data(self._plugin_id, "test_key_2")
        after_delete = _load(self._host.list_keys(self._plugin_id))

        return _Response(
            True,
            "CRUD operations test completed successfully",
            {
                "initial_keys": _field(initial, "keys"),
                "keys_after_delete": _field(after_delete, "keys"),
                "updated_value": _field(updated, "value"),
            },
        )

    def _isolation(self) -> _Response:
        self._host.log_message("info", "Testing data isolation")
        self._host.store_data(
            self._plugin_id,
            "isolation_test",
            _dumps({"plugin": "storage-test", "secret": "secret"}),
        )
        parsed = _load(self._host.list_keys(self._plugin_id))
        return _Response(
            True,
            "Data isolation test completed",
            {
                "my_plugin_id": self._plugin_id,
                "my_keys": _field(parsed, "keys"),
                "note": "Each plugin should only see its own data",
            },
        )

    def _json_storage(self) -> _Response:
        self._host.log_message("info", "Testing complex JSON storage")
        self._host.store_data(self._plugin_id, "complex_json", _dumps(_COMPLEX_DATA))
        parsed = _load(self._host.get_data(self._plugin_id, "complex_json"))

        if not isinstance(parsed, dict) or "value" not in parsed:
            return _Response(False, "Failed to retrieve complex JSON data")

        stored = parsed["value"]
        deep_value = _pointer(stored, _DEEP_POINTER)
        if deep_value == "deep value":
            return _Response(
                True,
                "Complex JSON storage test passed",
                {
                    "stored_successfully": True,
                    "deep_value_retrieved": deep_value,
                    "data_integrity": "verified",
                },
            )
        return _Response(False, "Failed to retrieve nested value correctly", stored)

    def concurrent_write_test(self, input: str) -> str:
        """Write one record keyed by thread and iteration, as a concurrent writer would."""
        request = _load(input)
        thread_id = _uint(_field(request, "thread_id"))
        iteration = _uint(_field(request, "iteration"))
        key = f"concurrent_thread_{thread_id}_iter_{iteration}"
        value = {
            "thread_id": thread_id,
            "iteration": iteration,
            "timestamp": int(time.time() * 1000),
        }
        self._host.store_data(self._plugin_id, key, _dumps(value))
        self._host.log_message(
            "debug", f"Thread {thread_id} wrote iteration {iteration}"
        )
        return _dumps(
            {"success": True, "thread_id": thread_id, "iteration": iteration, "key": key}
        )