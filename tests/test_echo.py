import json

import pytest

from plugdash.plugins.basic import PluginError
from plugdash.plugins.echo import EchoPlugin


class FakeHost:
    def __init__(self):
        self.sent = []
        self.logs = []
        self.subscriptions = []

    def send_message(self, request):
        self.sent.append(json.loads(request))
        return f"id-{len(self.sent)}"

    def log_message(self, level, message):
        self.logs.append((level, message))
        return "{}"

    def subscribe_topic(self, request):
        self.subscriptions.append(json.loads(request))
        return "{}"


@pytest.fixture
def host():
    return FakeHost()


def test_init_subscribes(host):
    assert EchoPlugin(host).init() == "Echo plugin initialized"
    assert host.subscriptions == [{"plugin_id": "echo", "topic": "echo_topic"}]
    assert host.logs == [("info", "Echo plugin initialized and subscribed to echo_topic")]


def test_process_message_replies(host):
    plugin = EchoPlugin(host)
    out = plugin.process_message(json.dumps({"from": "alice", "content": "hi"}))
    assert host.sent == [{"from": "echo", "to": "alice", "payload": "Echo: hi"}]
    assert out == "已回显消息给 alice，消息ID: id-1"
    assert host.logs == [("info", "Received message from alice: hi")]


def test_process_message_bad_input(host):
    with pytest.raises(PluginError):
        EchoPlugin(host).process_message("not json")
    with pytest.raises(PluginError):
        EchoPlugin(host).process_message(json.dumps({"from": "a"}))
    assert host.sent == []


def test_echo_multiple(host):
    batch = {
        "messages": [
            {"from": "a", "content": "one"},
            {"from": "b", "content": "two"},
        ]
    }
    result = json.loads(EchoPlugin(host).echo_multiple(json.dumps(batch)))
    assert result["status"] == "success"
    assert result["count"] == 2
    assert result["results"] == ["Echoed to a: id-1", "Echoed to b: id-2"]
    assert [m["to"] for m in host.sent] == ["a", "b"]


def test_echo_multiple_empty(host):
    result = json.loads(EchoPlugin(host).echo_multiple('{"messages": []}'))
    assert result == {"status": "success", "count": 0, "results": []}


def test_echo_multiple_requires_messages(host):
    with pytest.raises(PluginError):
        EchoPlugin(host).echo_multiple("{}")