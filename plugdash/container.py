"""Management of plugin containers (windows) and inline dashboard widgets."""

from __future__ import annotations

import copy
import enum
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class ContainerError(Exception):
    """Raised when a container or widget operation fails."""


class _Window(Protocol):
    def eval(self, script: str) -> None: ...

    def close(self) -> None: ...

    def set_size(self, width: int, height: int) -> None: ...


class _AppHandle(Protocol):
    def create_window(
        self,
        label: str,
        url: str,
        *,
        title: str,
        position: "ContainerPosition",
        size: "ContainerSize",
    ) -> _Window: ...

    def get_window(self, label: str) -> Optional[_Window]: ...

    def emit(self, event: str, payload: Any) -> None: ...


class RenderMode(enum.Enum):
    """How a plugin container is rendered."""

    WEBVIEW = "webview"
    INLINE = "inline"
    CANVAS = "canvas"
    NATIVE = "native"


class StatusKind(enum.Enum):
    """Lifecycle state of a container or widget."""

    LOADING = "loading"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class ContainerStatus:
    """A status, carrying a message when it is an error."""

    kind: StatusKind
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is StatusKind.ERROR and self.message is None:
            raise ValueError("an error status needs a message")
        if self.kind is not StatusKind.ERROR and self.message is not None:
            raise ValueError("only an error status carries a message")

    def to_json(self) -> Any:
        """Return the wire form: a name, or {"error": message}."""
        if self.kind is StatusKind.ERROR:
            return {"error": self.message}
        return self.kind.value


@dataclass(frozen=True)
class ContainerPosition:
    x: float
    y: float


@dataclass(frozen=True)
class ContainerSize:
    width: float
    height: float


@dataclass(frozen=True)
class GridPosition:
    row: int
    col: int


@dataclass(frozen=True)
class GridSize:
    row_span: int
    col_span: int


@dataclass
class PluginContainer:
    id: str
    plugin_id: str
    render_mode: RenderMode
    position: ContainerPosition
    size: ContainerSize
    status: ContainerStatus
    webview_label: Optional[str] = None

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "plugin_id": self.plugin_id,
            "render_mode": self.render_mode.value,
            "webview_label": self.webview_label,
            "position": {"x": self.position.x, "y": self.position.y},
            "size": {"width": self.size.width, "height": self.size.height},
            "status": self.status.to_json(),
        }


@dataclass
class InlineWidget:
    id: str
    plugin_id: str
    widget_type: str
    position: GridPosition
    size: GridSize
    config: Any = field(default_factory=dict)
    status: ContainerStatus = field(
        default_factory=lambda: ContainerStatus(StatusKind.ACTIVE)
    )

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "plugin_id": self.plugin_id,
            "widget_type": self.widget_type,
            "position": {"row": self.position.row, "col": self.position.col},
            "size": {"row_span": self.size.row_span, "col_span": self.size.col_span},
            "config": self.config,
            "status": self.status.to_json(),
        }


_DEFAULT_POSITION = ContainerPosition(100.0, 100.0)
_DEFAULT_SIZE = ContainerSize(400.0, 300.0)

_PLUGIN_API_SCRIPT = """
window.__PLUGIN_ID__ = {plugin_id};
window.__CONTAINER_ID__ = {label};
window.pluginAPI = {{
    pluginId: {plugin_id},
    containerId: {label},
    invoke: window.__TAURI__.core.invoke,
    subscribe: async function(topic, callback) {{
        await window.__TAURI__.core.invoke('subscribe_data', {{ topic: topic, pluginId: {plugin_id} }});
        return window.__TAURI__.event.listen('kernel-message', (event) => {{
            const message = event.payload;
            if (message.topic === topic || message.to === {plugin_id}) {{
                callback(message);
            }}
        }});
    }},
    send: async function(targetPluginId, data) {{
        await window.__TAURI__.core.invoke('send_to_plugin', {{ pluginId: targetPluginId, message: data }});
    }},
    broadcast: async function(topic, data) {{
        await window.__TAURI__.event.emit('plugin-broadcast-' + topic, {{
            from: {plugin_id}, topic: topic, data: data, timestamp: Date.now()
        }});
    }},
    onBroadcast: async function(topic, callback) {{
        return window.__TAURI__.event.listen('plugin-broadcast-' + topic, (event) => callback(event.payload));
    }}
}};
console.log('Plugin ' + {plugin_id} + ' loaded with Tauri API support');
"""


class ContainerManager:
    """Keeps track of plugin containers and inline widgets.

    With ``plugins_dir`` set, plugin pages are looked up on disk under
    ``plugins_dir/ui-<id>/index.html``; otherwise a bundled relative path is used.
    """

    def __init__(self, plugins_dir: Optional[Path] = None) -> None:
        self._plugins_dir = Path(plugins_dir) if plugins_dir is not None else None
        self._containers: dict[str, PluginContainer] = {}
        self._inline_widgets: dict[str, InlineWidget] = {}
        self._app_handle: Optional[_AppHandle] = None
        self._lock = threading.RLock()

    def set_app_handle(self, app_handle: _AppHandle) -> None:
        with self._lock:
            self._app_handle = app_handle

    def create_container(
        self,
        plugin_id: str,
        render_mode: RenderMode | str,
        position: Optional[ContainerPosition] = None,
        size: Optional[ContainerSize] = None,
    ) -> str:
        """Create a container and return its id."""
        mode = RenderMode(render_mode)
        container_id = str(uuid.uuid4())
        position = position or _DEFAULT_POSITION
        size = size or _DEFAULT_SIZE
        container = PluginContainer(
            id=container_id,
            plugin_id=plugin_id,
            render_mode=mode,
            position=position,
            size=size,
            status=ContainerStatus(StatusKind.LOADING),
        )

        with self._lock:
            if mode is RenderMode.WEBVIEW:
                label = f"plugin-{plugin_id}-{container_id[:8]}"
                logger.info("Creating WebView window with label: %s", label)
                if self._app_handle is None:
                    logger.error("App handle not set!")
                    raise ContainerError("App handle not set")
                self._open_window(self._app_handle, label, plugin_id, position, size)
                container.webview_label = label
                container.status = ContainerStatus(StatusKind.ACTIVE)
            elif mode is RenderMode.INLINE:
                logger.info("Creating inline widget container for plugin: %s", plugin_id)
                container.status = ContainerStatus(StatusKind.ACTIVE)
            elif mode is RenderMode.CANVAS:
                container.status = ContainerStatus(StatusKind.ACTIVE)
            else:
                raise ContainerError("Native render mode not implemented yet")

            self._containers[container_id] = container
        return container_id

    def _open_window(
        self,
        app_handle: _AppHandle,
        label: str,
        plugin_id: str,
        position: ContainerPosition,
        size: ContainerSize,
    ) -> None:
        url = self.plugin_url(plugin_id)
        logger.info("Creating WebView window for plugin %s with URL: %s", plugin_id, url)
        window = app_handle.create_window(
            label,
            url,
            title=f"Plugin: {plugin_id}",
            position=position,
            size=size,
        )
        window.eval(
            _PLUGIN_API_SCRIPT.format(
                plugin_id=json.dumps(plugin_id), label=json.dumps(label)
            )
        )

    def plugin_url(self, plugin_id: str) -> str:
        """Return the URL of a plugin's HTML page."""
        if self._plugins_dir is None:
            return f"../plugins/ui-{plugin_id}/index.html"
        page = self._plugins_dir / f"ui-{plugin_id}" / "index.html"
        if not page.exists():
            raise ContainerError(f"Plugin HTML not found: {page}")
        return f"file://{page}"

    def get_container(self, container_id: str) -> Optional[PluginContainer]:
        with self._lock:
            container = self._containers.get(container_id)
            return copy.deepcopy(container) if container is not None else None

    def remove_container(self, container_id: str) -> None:
        with self._lock:
            try:
                container = self._containers.pop(container_id)
            except KeyError:
                raise ContainerError(f"Container not found: {container_id}") from None
            if container.webview_label and self._app_handle is not None:
                window = self._app_handle.get_window(container.webview_label)
                if window is not None:
                    window.close()

    def list_containers(self) -> list[PluginContainer]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._containers.values()]

    def update_container_status(self, container_id: str, status: ContainerStatus) -> None:
        with self._lock:
            self._require_container(container_id).status = status

    def resize_container(self, container_id: str, size: ContainerSize) -> None:
        with self._lock:
            container = self._require_container(container_id)
            container.size = size
            if container.webview_label and self._app_handle is not None:
                window = self._app_handle.get_window(container.webview_label)
                if window is not None:
                    window.set_size(int(size.width), int(size.height))

    def _require_container(self, container_id: str) -> PluginContainer:
        try:
            return self._containers[container_id]
        except KeyError:
            raise ContainerError(f"Container not found: {container_id}") from None

    def create_inline_widget(
        self,
        widget_type: str,
        position: GridPosition,
        size: GridSize,
        config: Any,
    ) -> str:
        """Create an inline widget, notify the front end and return its id."""
        widget_id = str(uuid.uuid4())
        widget = InlineWidget(
            id=widget_id,
            plugin_id=f"widget-{widget_type}",
            widget_type=widget_type,
            position=position,
            size=size,
            config=config,
        )
        with self._lock:
            self._inline_widgets[widget_id] = widget
            if self._app_handle is not None:
                self._app_handle.emit("create-inline-widget", widget.to_json())
        return widget_id

    def remove_inline_widget(self, widget_id: str) -> None:
        with self._lock:
            if self._inline_widgets.pop(widget_id, None) is None:
                raise ContainerError(f"Widget not found: {widget_id}")
            if self._app_handle is not None:
                self._app_handle.emit("remove-inline-widget", widget_id)

    def list_inline_widgets(self) -> list[InlineWidget]:
        with self._lock:
            return [copy.deepcopy(w) for w in self._inline_widgets.values()]

    def update_inline_widget(self, widget_id: str, config: Any) -> None:
        with self._lock:
            widget = self._inline_widgets.get(widget_id)
            if widget is None:
                raise ContainerError(f"Widget not found: {widget_id}")
            widget.config = copy.deepcopy(config)
            if self._app_handle is not None:
                self._app_handle.emit(
                    "update-inline-widget", {"id": widget_id, "config": config}
                )