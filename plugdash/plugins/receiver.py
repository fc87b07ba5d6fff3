"""The receiving end of the end-to-end messaging checks."""

from __future__ import annotations

import json
from typing import Any, Optional, Protocol

from plugdash.plugins.basic import PluginError

PLUGIN_ID = "receiver"
_STORE_ID = "test_receiver"
_COUNT_KEY = "message_count"
_FIXED_TIMESTAMP = "2025-01-01T00:00:00Z"
_TEST_MESSAGE = "test_message"


class ReceiverHost(Protocol):
    def send_message(self, request: str) -> str: ...

    def log_message(self, level: str, message: str) -> str: ...

    def store_data(self, request: str, value: str) -> str: ...

    def get_data(self, request: str) -> str: ...


def _dumps(value: Any, *, sort_keys: bool = True) -> str:
    return json.dumps(
        value, sort_keys=sort_keys, separators=(",", ":"), ensure_ascii=False
    )


def _load(data: str | bytes) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PluginError(f"invalid JSON: {exc}") from None


def _string(obj: dict, key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise PluginError(f"field '{key}' missing or not a string")
    return value


def _payload_bytes(value: Any) -> bytes:
    if not isinstance(value, list) or not all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value
    ):
        raise PluginError("field 'payload' must be a list of bytes")
    return bytes(value)


def _parse_payload(raw: bytes) -> dict:
    """Validate a message payload and return it in its canonical field order."""
    value = _load(raw)
    if not isinstance(value, dict):
        raise PluginError("payload must be an object")
    payload = {
        "type": _string(value, "type"),
        "content": _string(value, "content"),
        "test_id": _string(value, "test_id"),
    }
    batch_index = value.get("batch_index")
    if batch_index is not None:
        if not isinstance(batch_index, int) or isinstance(batch_index, bool) or batch_index < 0:
            raise PluginError("field 'batch_index' must be a non-negative integer")
        payload["batch_index"] = batch_index
    payload["timestamp"] = _string(value, "timestamp")
    return payload


def _as_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


class ReceiverPlugin:
    """Counts and records incoming messages and acknowledges test messages."""

    def __init__(self, host: ReceiverHost) -> None:
        self._host = host

    def _store(self, key: str, value: Any) -> None:
        self._host.store_data(
            _dumps({"plugin_id": _STORE_ID, "key": key, "value": value}), ""
        )

    def _count(self) -> int:
        result = _load(self._host.get_data(_dumps({"plugin_id": _STORE_ID, "key": _COUNT_KEY})))
        return _as_int(result.get("value") if isinstance(result, dict) else None)

    def init(self) -> str:
        self._host.log_message("info", "Test Receiver plugin initialized")
        self._store(_COUNT_KEY, 0)
        return "Test Receiver ready"

    def process_message(self, input: str) -> str:
        """Record an incoming message and reply to it if it is a test message."""
        message = _load(input)
        if not isinstance(message, dict):
            raise PluginError("message must be an object")
        sender = _string(message, "from")
        _string(message, "to")
        _string(message, "timestamp")
        message_id = _string(message, "id")
        msg_type: Optional[Any] = message.get("msg_type")
        if msg_type is not None and not isinstance(msg_type, str):
            raise PluginError("field 'msg_type' must be a string")
        payload = _parse_payload(_payload_bytes(message.get("payload")))

        self._host.log_message(
            "info",
            f"Received {payload['type']} message from {sender}: {payload['content']}",
        )

        new_count = self._count() + 1
        self._store(_COUNT_KEY, new_count)

        self._store(
            f"received_{payload['test_id']}_{message_id}",
            {
                "message_id": message_id,
                "from": sender,
                "payload": payload,
                "received_at": _FIXED_TIMESTAMP,
                "sequence": new_count,
            },
        )

        if payload["type"] == _TEST_MESSAGE:
            reply_body = _dumps(
                {
                    "type": "test_reply",
                    "original_id": message_id,
                    "test_id": payload["test_id"],
                    "content": f"Received: {payload['content']}",
                    "timestamp": _FIXED_TIMESTAMP,
                }
            ).encode("utf-8")
            reply = {"from": _STORE_ID, "to": sender, "payload": list(reply_body)}
            reply_id = self._host.send_message(_dumps(reply))
            self._host.log_message(
                "info", f"Sent reply {reply_id} for message {message_id}"
            )

        return _dumps(
            {
                "success": True,
                "message_id": message_id,
                "test_id": payload["test_id"],
                "sequence": new_count,
            }
        )

    def get_test_messages(self, test_id: str) -> str:
        """Report the total number of messages received for a test run."""
        return _dumps(
            {"test_id": test_id, "total_received": self._count(), "status": "active"}
        )

    def get_stats(self) -> str:
        return _dumps(
            {
                "plugin": _STORE_ID,
                "total_messages_received": self._count(),
                "status": "active",
                "version": "0.1.0",
            }
        )

    def reset_stats(self) -> str:
        self._store(_COUNT_KEY, 0)
        self._host.log_message("info", "Test Receiver stats reset")
        return _dumps({"success": True, "message": "Stats reset"})