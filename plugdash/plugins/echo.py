"""A plugin that echoes messages back to their sender."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from plugdash.plugins.basic import PluginError

logger = logging.getLogger(__name__)

PLUGIN_ID = "echo"
TOPIC = "echo_topic"


class EchoHost(Protocol):
    def send_message(self, request: str) -> str: ...

    def log_message(self, level: str, message: str) -> str: ...

    def subscribe_topic(self, request: str) -> str: ...


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _parse_message(value: Any) -> tuple[str, str]:
    if not isinstance(value, dict):
        raise PluginError("message must be an object")
    sender, content = value.get("from"), value.get("content")
    if not isinstance(sender, str) or not isinstance(content, str):
        raise PluginError("message needs string fields 'from' and 'content'")
    return sender, content


def _load(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise PluginError(f"invalid JSON input: {exc}") from None


class EchoPlugin:
    """Replies to each message with ``Echo: <content>``."""

    def __init__(self, host: EchoHost) -> None:
        self._host = host

    def init(self) -> str:
        logger.info("Echo 插件已初始化")
        self._host.subscribe_topic(_dumps({"plugin_id": PLUGIN_ID, "topic": TOPIC}))
        self._host.log_message(
            "info", "Echo plugin initialized and subscribed to echo_topic"
        )
        return "Echo plugin initialized"

    def _reply(self, sender: str, content: str) -> str:
        reply = {"from": PLUGIN_ID, "to": sender, "payload": f"Echo: {content}"}
        return self._host.send_message(_dumps(reply))

    def process_message(self, input: str) -> str:
        sender, content = _parse_message(_load(input))
        logger.info("收到来自 %s 的消息: %s", sender, content)
        self._host.log_message("info", f"Received message from {sender}: {content}")
        msg_id = self._reply(sender, content)
        return f"已回显消息给 {sender}，消息ID: {msg_id}"

    def echo_multiple(self, input: str) -> str:
        batch = _load(input)
        messages = batch.get("messages") if isinstance(batch, dict) else None
        if not isinstance(messages, list):
            raise PluginError("batch needs a 'messages' list")
        parsed = [_parse_message(m) for m in messages]
        results = [
            f"Echoed to {sender}: {self._reply(sender, content)}"
            for sender, content in parsed
        ]
        return _dumps({"status": "success", "count": len(results), "results": results})