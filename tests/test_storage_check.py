import json

import pytest

from plugdash.plugins.basic import PluginError
from plugdash.plugins.storage_check import PLUGIN_ID, StorageCheckPlugin


class FakeHost:
    def __init__(self):
        self.data = {}
        self.logs = []

    def store_data(self, plugin_id, key, value):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = value
        self.data.setdefault(plugin_id, {})[key] = parsed
        return json.dumps({"success": True})

    def get_data(self, plugin_id, key):
        bucket = self.data.get(plugin_id, {})
        if key in bucket:
            return json.dumps({"success": True, "value": bucket[key]})
        return json.dumps({"success": False, "error": "not found"})

    def delete_data(self, plugin_id, key):
        existed = self.data.get(plugin_id, {}).pop(key, None) is not None
        return json.dumps({"success": existed})

    def list_keys(self, plugin_id):
        return json.dumps({"success": True, "keys": sorted(self.data.get(plugin_id, {}))})

    def log_message(self, level, message):
        self.logs.append((level, message))
        return json.dumps({"success": True})


class CorruptingHost(FakeHost):
    def get_data(self, plugin_id, key):
        return json.dumps({"success": True, "value": {"corrupted": True}})


class ForgetfulHost(FakeHost):
    def get_data(self, plugin_id, key):
        return json.dumps({"success": False})


def run(plugin, **request):
    return json.loads(plugin.test_storage(json.dumps(request)))


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def plugin(host):
    return StorageCheckPlugin(host)


def test_store_then_get_round_trip(plugin, host):
    stored = run(plugin, action="store", key="k", value="v")
    assert stored["success"] is True
    assert stored["data"] == {"key": "k", "value": "v"}
    assert host.data[PLUGIN_ID]["k"] == "v"

    got = run(plugin, action="get", key="k")
    assert got["success"] is True
    assert got["data"] == "v"


def test_store_logs_request(plugin, host):
    text = json.dumps({"action": "list"})
    plugin.test_storage(text)
    assert host.logs[0] == ("info", f"Received request: {text}")


def test_get_missing_key_fails(plugin):
    got = run(plugin, action="get", key="absent")
    assert got["success"] is False
    assert got["data"] is None
    assert "absent" in got["message"]


@pytest.mark.parametrize("action", ["store", "get", "delete"])
def test_missing_key_raises(plugin, action):
    with pytest.raises(PluginError):
        run(plugin, action=action, value="v")


def test_store_without_value_raises(plugin):
    with pytest.raises(PluginError):
        run(plugin, action="store", key="k")


def test_delete_then_list(plugin):
    run(plugin, action="store", key="a", value="1")
    run(plugin, action="store", key="b", value="2")
    deleted = run(plugin, action="delete", key="a")
    assert deleted["success"] is True
    listed = run(plugin, action="list")
    assert listed["success"] is True
    assert listed["data"] == ["b"]


def test_unknown_action(plugin):
    result = run(plugin, action="bogus")
    assert result["success"] is False
    assert result["message"] == "Unknown action: bogus"


def test_invalid_json_raises(plugin):
    with pytest.raises(PluginError):
        plugin.test_storage("not json")


def test_crud_operations(plugin):
    result = run(plugin, action="test_crud")
    assert result["success"] is True
    data = result["data"]
    assert data["initial_keys"] == ["test_key_1", "test_key_2", "test_key_3"]
    assert data["keys_after_delete"] == ["test_key_1", "test_key_3"]
    assert data["updated_value"] == {"name": "Test 1 Updated", "value": 150}


def test_crud_reports_mismatch():
    plugin = StorageCheckPlugin(CorruptingHost())
    result = run(plugin, action="test_crud")
    assert result["success"] is False
    assert result["message"] == "Value mismatch for key 'test_key_1'"
    assert result["data"]["expected"] == {"name": "Test 1", "value": 100}
    assert result["data"]["actual"] == {"corrupted": True}


def test_isolation(plugin):
    result = run(plugin, action="test_isolation")
    assert result["success"] is True
    assert result["data"]["my_plugin_id"] == "storage-test-plugin"
    assert result["data"]["my_keys"] == ["isolation_test"]


def test_json_storage(plugin, host):
    result = run(plugin, action="test_json")
    assert result["success"] is True
    assert result["data"]["deep_value_retrieved"] == "deep value"
    assert host.data[PLUGIN_ID]["complex_json"]["user"]["id"] == 12345


def test_json_storage_wrong_value():
    plugin = StorageCheckPlugin(CorruptingHost())
    result = run(plugin, action="test_json")
    assert result["success"] is False
    assert result["data"] == {"corrupted": True}


def test_json_storage_missing_value():
    plugin = StorageCheckPlugin(ForgetfulHost())
    result = run(plugin, action="test_json")
    assert result["success"] is False
    assert result["message"] == "Failed to retrieve complex JSON data"


def test_concurrent_write(plugin, host):
    result = json.loads(
        plugin.concurrent_write_test(json.dumps({"thread_id": 3, "iteration": 7}))
    )
    assert result["success"] is True
    assert result["key"] == "concurrent_thread_3_iter_7"
    stored = host.data[PLUGIN_ID]["concurrent_thread_3_iter_7"]
    assert stored["thread_id"] == 3
    assert stored["iteration"] == 7
    assert stored["timestamp"] > 0


def test_concurrent_write_defaults_to_zero(plugin):
    result = json.loads(plugin.concurrent_write_test("{}"))
    assert result["key"] == "concurrent_thread_0_iter_0"
    assert (result["thread_id"], result["iteration"]) == (0, 0)