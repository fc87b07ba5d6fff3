import json

import pytest

from plugdash.plugins.basic import PluginError
from plugdash.plugins.receiver import ReceiverPlugin


class FakeHost:
    def __init__(self):
        self.data = {}
        self.logs = []
        self.sent = []

    def store_data(self, request, value):
        req = json.loads(request)
        self.data[(req["plugin_id"], req["key"])] = req["value"]
        return json.dumps({"success": True})

    def get_data(self, request):
        req = json.loads(request)
        key = (req["plugin_id"], req["key"])
        if key in self.data:
            return json.dumps({"success": True, "value": self.data[key]})
        return json.dumps({"success": False, "error": "not found"})

    def log_message(self, level, message):
        self.logs.append((level, message))
        return json.dumps({"success": True})

    def send_message(self, request):
        self.sent.append(json.loads(request))
        return f"reply-{len(self.sent)}"


def incoming(msg_id="m1", sender="test_sender", **payload):
    body = {"type": "test_message", "content": "hello", "test_id": "t1",
            "timestamp": "2025-01-01T00:00:00Z"}
    body.update(payload)
    return json.dumps({
        "from": sender,
        "to": "test_receiver",
        "payload": list(json.dumps(body).encode("utf-8")),
        "timestamp": "2025-01-01T00:00:00Z",
        "id": msg_id,
    })


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def plugin(host):
    p = ReceiverPlugin(host)
    p.init()
    return p


def test_init_resets_counter(host):
    plugin = ReceiverPlugin(host)
    assert plugin.init() == "Test Receiver ready"
    assert host.data[("test_receiver", "message_count")] == 0


def test_process_test_message_replies(plugin, host):
    result = json.loads(plugin.process_message(incoming(msg_id="m1", sender="alice")))
    assert result["success"] is True
    assert result["message_id"] == "m1"
    assert result["test_id"] == "t1"
    assert result["sequence"] == 1

    assert len(host.sent) == 1
    reply = host.sent[0]
    assert reply["from"] == "test_receiver"
    assert reply["to"] == "alice"
    body = json.loads(bytes(reply["payload"]))
    assert body["type"] == "test_reply"
    assert body["original_id"] == "m1"
    assert body["content"] == "Received: hello"


def test_process_records_message(plugin, host):
    result = json.loads(plugin.process_message(incoming(msg_id="m9", test_id="run")))
    assert result["message_id"] == "m9"
    assert result["test_id"] == "run"
    assert result["sequence"] == 1
    record = host.data[("test_receiver", "received_run_m9")]
    assert record["message_id"] == "m9"
    assert record["from"] == "test_sender"
    assert record["payload"]["content"] == "hello"
    assert record["sequence"] == result["sequence"]
    assert "batch_index" not in record["payload"]


def test_batch_message_no_reply(plugin, host):
    result = json.loads(
        plugin.process_message(incoming(type="batch_test_message", batch_index=4))
    )
    assert result["success"] is True
    assert result["message_id"] == "m1"
    assert result["sequence"] == 1
    assert host.sent == []
    record = host.data[("test_receiver", "received_t1_m1")]
    assert record["payload"]["batch_index"] == 4


def test_sequence_and_stats_agree(plugin):
    first = json.loads(plugin.process_message(incoming(msg_id="a")))
    second = json.loads(plugin.process_message(incoming(msg_id="b")))
    assert second["sequence"] == first["sequence"] + 1
    stats = json.loads(plugin.get_stats())
    assert stats["total_messages_received"] == second["sequence"]
    assert stats["plugin"] == "test_receiver"


def test_get_test_messages(plugin):
    plugin.process_message(incoming())
    report = json.loads(plugin.get_test_messages("t1"))
    assert report["test_id"] == "t1"
    assert report["total_received"] == json.loads(plugin.get_stats())["total_messages_received"]
    assert report["status"] == "active"


def test_reset_stats(plugin):
    plugin.process_message(incoming())
    result = json.loads(plugin.reset_stats())
    assert result["success"] is True
    assert json.loads(plugin.get_stats())["total_messages_received"] == 0


def test_count_defaults_to_zero_without_init(host):
    plugin = ReceiverPlugin(host)
    assert json.loads(plugin.get_stats())["total_messages_received"] == 0


def test_bad_payload_raises(plugin):
    message = json.dumps({"from": "x", "to": "y", "payload": list(b"nope"),
                          "timestamp": "t", "id": "i"})
    with pytest.raises(PluginError):
        plugin.process_message(message)


def test_missing_field_raises(plugin):
    with pytest.raises(PluginError):
        plugin.process_message(json.dumps({"from": "x"}))


def test_invalid_json_raises(plugin):
    with pytest.raises(PluginError):
        plugin.process_message("{")