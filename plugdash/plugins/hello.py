"""The hello-world plugin: greetings, messaging and storage round trips."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from plugdash.plugins.basic import PluginError

logger = logging.getLogger(__name__)

PLUGIN_ID = "hello"


class HelloHost(Protocol):
    def store_data(self, plugin_id: str, key: str, value: str) -> str: ...

    def get_data(self, plugin_id: str, key: str) -> str: ...

    def delete_data(self, plugin_id: str, key: str) -> str: ...

    def list_keys(self, plugin_id: str) -> str: ...

    def send_message(self, sender: str, to: str, payload: str) -> str: ...

    def log_message(self, level: str, message: str) -> str: ...


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _load_object(text: str) -> dict:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PluginError(f"invalid JSON: {exc}") from None
    if not isinstance(value, dict):
        raise PluginError("expected a JSON object")
    return value


def _require(obj: dict, key: str, kind: type) -> Any:
    value = obj.get(key)
    if not isinstance(value, kind):
        raise PluginError(f"field '{key}' missing or of the wrong type")
    return value


def _greeting_key(name: str) -> str:
    return f"greeting_{name}"


class HelloPlugin:
    def __init__(self, host: HelloHost) -> None:
        self._host = host

    def greet(self) -> str:
        self._host.log_message("info", "Hello plugin started")
        return "Hello from plugin!"

    def greet_name(self, name: str) -> str:
        return f"Hello, {name}! Welcome to Minimal Kernel."

    def info(self) -> str:
        return _dumps(
            {
                "name": "hello",
                "version": "0.1.0",
                "description": "Hello World plugin for minimal kernel",
            }
        )

    def send_greeting(self, input: str) -> str:
        request = _load_object(input)
        to = _require(request, "to", str)
        content = _require(request, "content", str)
        logger.info("准备发送问候到 %s", to)
        self._host.log_message("info", f"Sending greeting to {to}")
        msg_id = self._host.send_message(PLUGIN_ID, to, content)
        return f"已发送消息到 {to}，消息ID: {msg_id}"

    def save_greeting(self, name: str) -> str:
        value = {"greeting": f"Hello, {name}!", "timestamp": "2024-07-17"}
        self._host.store_data(PLUGIN_ID, _greeting_key(name), _dumps(value))
        return f"已保存问候语给 {name}"

    def load_greeting(self, name: str) -> str:
        response = _load_object(self._host.get_data(PLUGIN_ID, _greeting_key(name)))
        success = _require(response, "success", bool)
        value = response.get("value")
        if success and value is not None:
            return f"Retrieved: {_dumps(value)}"
        return f"No greeting found for {name}"

    def list_greetings(self) -> str:
        response = _load_object(self._host.list_keys(PLUGIN_ID))
        success = _require(response, "success", bool)
        keys = _require(response, "keys", list)
        if not all(isinstance(k, str) for k in keys):
            raise PluginError("field 'keys' must hold strings")
        if not success:
            return "Failed to list greetings"
        listed = ", ".join(json.dumps(k, ensure_ascii=False) for k in keys)
        return f"Stored greetings: [{listed}]"