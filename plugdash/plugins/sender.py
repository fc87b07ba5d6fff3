"""The sending end of the end-to-end messaging checks."""

from __future__ import annotations

import json
from typing import Any, Protocol

from plugdash.plugins.basic import PluginError

PLUGIN_ID = "sender"
_STORE_ID = "test_sender"
_FIXED_TIMESTAMP = "2025-01-01T00:00:00Z"
_NONEXISTENT = "nonexistent_plugin"


class SenderHost(Protocol):
    def send_message(self, request: str) -> str: ...

    def log_message(self, level: str, message: str) -> str: ...

    def store_data(self, request: str, value: str) -> str: ...


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _load_object(text: str) -> dict:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PluginError(f"invalid JSON: {exc}") from None
    if not isinstance(value, dict):
        raise PluginError("request must be an object")
    return value


def _string(obj: dict, key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise PluginError(f"field '{key}' missing or not a string")
    return value


def _payload(body: Any) -> list[int]:
    """Encode a JSON body as the list of bytes carried in a message payload."""
    return list(_dumps(body).encode("utf-8"))


class SenderPlugin:
    """Sends single and batched test messages and records what was sent."""

    def __init__(self, host: SenderHost) -> None:
        self._host = host

    def _send(self, to: str, body: Any) -> str:
        message = {"from": _STORE_ID, "to": to, "payload": _payload(body)}
        return self._host.send_message(_dumps(message))

    def _store(self, key: str, value: Any) -> None:
        self._host.store_data(
            _dumps({"plugin_id": _STORE_ID, "key": key, "value": value}), ""
        )

    def init(self) -> str:
        self._host.log_message("info", "Test Sender plugin initialized")
        return "Test Sender ready"

    def send_test_message(self, input: str) -> str:
        """Send one test message and record it under ``sent_<test_id>_<msg_id>``."""
        request = _load_object(input)
        to = _string(request, "to")
        text = _string(request, "message")
        test_id = _string(request, "test_id")

        self._host.log_message("info", f"Sending test message to {to}: {text}")

        msg_id = self._send(
            to,
            {
                "type": "test_message",
                "content": text,
                "test_id": test_id,
                "timestamp": _FIXED_TIMESTAMP,
            },
        )

        self._store(
            f"sent_{test_id}_{msg_id}",
            {
                "message_id": msg_id,
                "to": to,
                "content": text,
                "test_id": test_id,
                "sent_at": _FIXED_TIMESTAMP,
            },
        )

        return _dumps({"success": True, "message_id": msg_id, "test_id": test_id})

    def send_batch_messages(self, input: str) -> str:
        """Send each message in turn and record the batch under ``batch_<test_id>``."""
        request = _load_object(input)
        to = _string(request, "to")
        test_id = _string(request, "test_id")
        messages = request.get("messages")
        if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages):
            raise PluginError("field 'messages' must be a list of strings")

        self._host.log_message("info", f"Sending {len(messages)} messages to {to}")

        results = []
        for index, text in enumerate(messages):
            msg_id = self._send(
                to,
                {
                    "type": "batch_test_message",
                    "content": text,
                    "test_id": test_id,
                    "batch_index": index,
                    "timestamp": _FIXED_TIMESTAMP,
                },
            )
            results.append({"index": index, "message_id": msg_id, "content": text})

        self._store(
            f"batch_{test_id}",
            {
                "test_id": test_id,
                "to": to,
                "count": len(messages),
                "results": results,
                "sent_at": _FIXED_TIMESTAMP,
            },
        )

        return _dumps(
            {
                "success": True,
                "test_id": test_id,
                "sent_count": len(results),
                "results": results,
            }
        )

    def send_to_nonexistent(self, input: str) -> str:
        """Send to a plugin that does not exist and report what the host answered."""
        test_id = input
        self._host.log_message("info", "Testing send to nonexistent plugin")
        result = self._send(_NONEXISTENT, {"type": "error_test", "test_id": test_id})
        return _dumps({"test_id": test_id, "result": result})

    def get_status(self) -> str:
        return _dumps(
            {
                "plugin": _STORE_ID,
                "status": "active",
                "version": "0.1.0",
                "capabilities": [
                    "send_test_message",
                    "send_batch_messages",
                    "send_to_nonexistent",
                ],
            }
        )