# plugdash

This package provides building blocks for a plugin-driven dashboard. It is a library and has no
command of its own.

- `plugdash.app_state.AppState` is a thread-safe readiness flag. It has `set_ready()` and
  `is_ready()`.
- `plugdash.container.ContainerManager` tracks plugin containers and inline grid widgets.
- `plugdash.system_monitor.SystemMonitor` reads CPU, memory and process figures through psutil.
  It can also publish them at a fixed interval.
- `plugdash.plugin_creator` writes a new plugin project from a template.
- `plugdash.plugins` holds the sample plugins: `basic`, `echo`, `hello`, `storage_check`,
  `receiver` and `sender`.

## Installation

```
pip install plugdash
```

## Containers and inline widgets

```python
from plugdash.container import ContainerManager, GridPosition, GridSize, RenderMode

manager = ContainerManager()

widget_id = manager.create_inline_widget(
    "clock", GridPosition(row=0, col=0), GridSize(row_span=1, col_span=2), {"format": "24h"}
)
manager.update_inline_widget(widget_id, {"format": "12h"})
print([w.to_json() for w in manager.list_inline_widgets()])

container_id = manager.create_container("notes", RenderMode.CANVAS)
print(manager.get_container(container_id).to_json())
manager.remove_container(container_id)
```

### Render modes

`create_container` takes a `RenderMode` or its string value (`"webview"`, `"inline"`,
`"canvas"`, `"native"`).

- If you leave out position and size, they default to (100, 100) and 400 × 300.
- `inline` and `canvas` containers become active immediately.
- `native` raises `ContainerError`.
- `webview` needs an app handle, set with `set_app_handle`.

### The app handle

The app handle is any object with these methods:

- `create_window(label, url, *, title, position, size)` returns a window object. That window has
  `eval(script)`, `close()` and `set_size(width, height)`.
- `get_window(label)` returns the window with that label, or `None`.
- `emit(event, payload)` sends an event to the front end.

When the app handle is set, the manager uses it as follows:

- It injects a `pluginAPI` script into every new window.
- It closes and resizes windows through the handle.
- It emits `create-inline-widget`, `remove-inline-widget` and `update-inline-widget` events.

### Plugin pages

By default, a plugin's page URL is `../plugins/ui-<id>/index.html`. If you construct the manager
with `plugins_dir`, the page must exist at `plugins_dir/ui-<id>/index.html`. It is then given as
a `file://` URL.

### Errors

Unknown container or widget ids raise `ContainerError`.

## System statistics

```python
from plugdash.system_monitor import SystemMonitor

monitor = SystemMonitor()
stats = monitor.get_system_stats()
print(stats.cpu_usage, stats.memory_usage, stats.process_count)
for proc in monitor.get_processes():      # at most 20, largest memory first
    print(proc.pid, proc.name, proc.memory_usage)
```

`SystemMonitor(app_handle)` with `start_monitoring(interval_ms)` publishes a `system-stats`
event every interval. The payload is the stats as a dict. `stop_monitoring()` ends every loop
that `start_monitoring` started.

The disk figures are fixed placeholders: 1 TB total, 500 GB used, 50 %. The network counters are
always 0.

## Plugin scaffolding

```python
from pathlib import Path
from plugdash.plugin_creator import PluginConfig, create_plugin_from_template

config = PluginConfig.from_dict({
    "name": "heart-rate",
    "displayName": "Heart Rate",
    "description": "Collects heart rate samples",
    "author": "Example Author",
    "version": "0.1.0",
    "type": "data-collector",
    "features": [],
    "icon": "H",
})
result = create_plugin_from_template(config, Path("my-workspace"))
print(result.success, result.path, result.message)
```

`create_plugin_from_template` writes `plugins/<name>/` under the project root. The project root
defaults to the parent of the working directory. It creates three files:

- `Cargo.toml`
- `src/lib.rs`
- `README.md`

The template is chosen by type: `data-collector`, `analyzer` or `ui-widget`. Any other type gets
the data-collector template.

Some inputs do not create a project. In these cases the function returns a `CreatePluginResult`
with `success=False` instead of raising:

- a name with characters other than lower-case letters, digits and `-`;
- a plugin directory that already exists.

If the root `Cargo.toml` has a `members = [` list, `update_workspace_members` adds
`"plugins/<name>"` to it.

`generate_cargo_toml`, `generate_lib_rs` and `generate_readme` return the generated text without
writing anything.

## Sample plugins

Each plugin class takes a host object that supplies messaging, storage and logging. The host
methods each plugin calls are described by a `Protocol` in the plugin's module:

| Plugin | Protocol |
| --- | --- |
| `EchoPlugin` | `EchoHost` |
| `HelloPlugin` | `HelloHost` |
| `StorageCheckPlugin` | `StorageHost` |
| `ReceiverPlugin` | `ReceiverHost` |
| `SenderPlugin` | `SenderHost` |

Inputs and outputs are JSON strings. Invalid input raises `plugdash.plugins.basic.PluginError`.

### `basic`

- `greet(name)` returns a greeting for the name.
- `test_main()` returns `"test"`.
- `minimal_test()` always raises `PluginError`.

### `echo`

`EchoPlugin` subscribes to `echo_topic`. It replies to each message with `Echo: <content>`.

### `hello`

`HelloPlugin` has three groups of methods:

- greetings: `greet`, `greet_name`, `info`;
- messaging: `send_greeting`;
- storage round trips: `save_greeting`, `load_greeting`, `list_greetings`.

### `storage_check`

`StorageCheckPlugin.test_storage` runs one action on the host storage. The actions are `store`,
`get`, `delete`, `list`, `test_crud`, `test_isolation` and `test_json`. It also has
`concurrent_write_test`.

### `receiver` and `sender`

`ReceiverPlugin` and `SenderPlugin` are the two ends of a messaging check.

- Message payloads are JSON encoded as a list of bytes.
- Timestamps are fixed at `2025-01-01T00:00:00Z`.

For example, with an in-memory host:

```python
import json
from plugdash.plugins.hello import HelloPlugin

class MemoryHost:
    def __init__(self):
        self.data = {}
    def store_data(self, plugin_id, key, value):
        self.data[(plugin_id, key)] = json.loads(value)
        return json.dumps({"success": True})
    def get_data(self, plugin_id, key):
        value = self.data.get((plugin_id, key))
        return json.dumps({"success": value is not None, "value": value})
    def delete_data(self, plugin_id, key):
        return json.dumps({"success": self.data.pop((plugin_id, key), None) is not None})
    def list_keys(self, plugin_id):
        keys = [k for p, k in self.data if p == plugin_id]
        return json.dumps({"success": True, "keys": keys})
    def send_message(self, sender, to, payload):
        return "msg-1"
    def log_message(self, level, message):
        return json.dumps({"success": True})

plugin = HelloPlugin(MemoryHost())
plugin.save_greeting("Ada")
print(plugin.load_greeting("Ada"))
```

## What this package does not do

This package has no kernel, message bus, persistent storage or plugin runtime. Sample plugins
only work with a host object that you supply.

It also does not include:

- a window system: webview containers need an app handle that you supply;
- a desktop application or command-line entry point;
- any saving or loading of dashboard layouts.

## Running the tests

```
pip install -e ".[test]"
pytest
```