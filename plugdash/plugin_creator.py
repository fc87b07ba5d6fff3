"""Scaffolding of new plugin projects from built-in templates."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

_ALLOWED_NAME_CHARS = frozenset(string.ascii_lowercase + string.digits + "-")
_INDENT = "    "
# Blank lines inside generated function bodies keep the body indentation.
_BLANK = "    "


@dataclass(frozen=True)
class PluginConfig:
    """Settings describing the plugin to create."""

    name: str
    display_name: str
    description: str
    author: str
    version: str
    plugin_type: str
    icon: str
    features: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PluginConfig":
        """Build a config from its wire form (``displayName`` and ``type`` keys)."""
        try:
            return cls(
                name=data["name"],
                display_name=data["displayName"],
                description=data["description"],
                author=data["author"],
                version=data["version"],
                plugin_type=data["type"],
                features=list(data["features"]),
                icon=data["icon"],
            )
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r}") from None


@dataclass(frozen=True)
class CreatePluginResult:
    success: bool
    path: str
    message: str

    def to_json(self) -> dict:
        return {"success": self.success, "path": self.path, "message": self.message}


# ---------------------------------------------------------------------------
# Emitters for the generated plugin source
# ---------------------------------------------------------------------------


class _Raw(str):
    """An expression emitted as-is inside a generated JSON literal."""


def _quote(text: str) -> str:
    return '"' + text + '"'


def _literal(value: Any) -> str:
    if isinstance(value, _Raw):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return _quote(str(value))


def _json_body(obj: Mapping[str, Any], indent: int) -> list[str]:
    """Render a mapping as a braced object whose closing brace sits at ``indent``."""
    pad = " " * indent
    lines = ["{"]
    items = list(obj.items())
    for position, (key, value) in enumerate(items):
        sep = "," if position < len(items) - 1 else ""
        if isinstance(value, Mapping):
            inner = _json_body(value, indent + 4)
            lines.append(f"{pad}    {_quote(key)}: {inner[0]}")
            lines.extend(inner[1:-1])
            lines.append(inner[-1] + sep)
        else:
            lines.append(f"{pad}    {_quote(key)}: {_literal(value)}{sep}")
    lines.append(pad + "}")
    return lines


def _json_lines(prefix: str, obj: Mapping[str, Any], indent: int, suffix: str) -> list[str]:
    body = _json_body(obj, indent)
    return [prefix + "json!(" + body[0], *body[1:-1], body[-1] + ")" + suffix]


def _ok_json(obj: Mapping[str, Any]) -> list[str]:
    return _json_lines("    Ok(", obj, 4, ".to_string())")


def _struct(
    name: str,
    fields: Iterable[tuple[str, str]],
    *,
    derive: str = "Serialize, Deserialize",
    indent: int = 0,
) -> list[str]:
    pad = " " * indent
    return [
        f"{pad}#[derive({derive})]",
        f"{pad}struct {name} " + "{",
        *(f"{pad}    {field_name}: {kind}," for field_name, kind in fields),
        pad + "}",
    ]


def _vec_lines(prefix: str, items: Iterable[str], indent: int) -> list[str]:
    pad = " " * indent
    return [
        prefix + "vec![",
        *(f"{pad}    {_quote(item)}.to_string()," for item in items),
        pad + "],",
    ]


def _host_block(decls: Sequence[tuple[str, Sequence[str]]]) -> list[str]:
    lines = ["// 声明主机函数", "#[host_fn]", 'extern "ExtismHost" {']
    for name, params in decls:
        args = ", ".join(f"{param}: &str" for param in params)
        lines.append(f"    fn {name}({args}) -> String;")
    lines.append("}")
    return lines


def _unsafe_log(template: str, argument: str) -> list[str]:
    call = 'log_message_host("info", &format!(' + _quote(template) + ", " + argument + "))?;"
    return ["    unsafe {", "        " + call, "    }"]


def _plugin_fn(doc: str, signature: str, body: Sequence[str]) -> list[str]:
    return [
        f"/// {doc}",
        "#[plugin_fn]",
        f"pub fn {signature} -> FnResult<String> " + "{",
        *body,
        "}",
    ]


def _header(config: PluginConfig) -> list[str]:
    return [
        f"//! {config.display_name}",
        "//! ",
        f"//! {config.description}",
        "//! ",
        f"//! 作者: {config.author}",
    ]


_COMMON_USES = [
    "use extism_pdk::*;",
    "use serde::{Deserialize, Serialize};",
    "use serde_json::json;",
]


def _init_fn(
    config: PluginConfig, log_template: str, message: str, between: Sequence[str] = ()
) -> list[str]:
    body = [
        *_unsafe_log(log_template, _quote(config.display_name)),
        *between,
        *_ok_json({"success": True, "message": message}),
    ]
    return _plugin_fn("插件初始化", "init()", body)


def _info_fn(config: PluginConfig, kind: str) -> list[str]:
    body = _ok_json(
        {
            "id": _Raw("PLUGIN_ID"),
            "name": config.display_name,
            "version": config.version,
            "type": kind,
            "icon": config.icon,
            "description": config.description,
        }
    )
    return _plugin_fn("获取插件信息", "info()", body)


def _render(
    config: PluginConfig,
    *,
    uses: list[str],
    host: Sequence[tuple[str, Sequence[str]]],
    struct: list[str],
    functions: Sequence[list[str]],
) -> str:
    sections = [
        _header(config),
        uses,
        _host_block(host),
        [f"const PLUGIN_ID: &str = {_quote(config.name)};"],
        struct,
        *functions,
    ]
    return "\n\n".join("\n".join(section) for section in sections) + "\n"


def _data_collector(config: PluginConfig) -> str:
    collect = [
        "    // TODO: 实现数据收集逻辑",
        "    let data = HealthData {",
        "        timestamp: Utc::now().to_rfc3339(),",
        "        value: 72.0, // 示例数据",
        "        unit: " + _quote("bpm") + ".to_string(),",
        *_json_lines("        metadata: ", {"source": "manual", "quality": "good"}, 8, ","),
        "    };",
        _BLANK,
        "    // 存储数据",
        "    let key = format!(" + _quote("data_{}") + ", Utc::now().timestamp());",
        "    unsafe {",
        "        store_data_host(PLUGIN_ID, &key, &serde_json::to_string(&data)?)?;",
        '        log_message_host("info", &format!(' + _quote("数据已收集: {:?}") + ", data))?;",
        "    }",
        _BLANK,
        *_ok_json({"success": True, "data": _Raw("data")}),
    ]
    latest = [
        "    // TODO: 实现获取最新数据的逻辑",
        *_ok_json({"success": True, "message": "获取数据功能待实现"}),
    ]
    return _render(
        config,
        uses=[*_COMMON_USES, "use chrono::{DateTime, Utc};"],
        host=[
            ("store_data_host", ("plugin_id", "key", "value")),
            ("get_data_host", ("plugin_id", "key")),
            ("log_message_host", ("level", "message")),
        ],
        struct=_struct(
            "HealthData",
            [
                ("timestamp", "String"),
                ("value", "f64"),
                ("unit", "String"),
                ("metadata", "serde_json::Value"),
            ],
        ),
        functions=[
            _init_fn(config, "{} 初始化成功", "插件初始化成功"),
            _plugin_fn("收集数据", "collect_data()", collect),
            _plugin_fn("获取最新数据", "get_latest_data()", latest),
            _info_fn(config, "data-collector"),
        ],
    )


def _analyzer(config: PluginConfig) -> str:
    analyze = [
        "    // 解析输入参数",
        *_struct(
            "AnalyzeRequest",
            [("target_plugin", "String"), ("time_range", "Option<String>")],
            derive="Deserialize",
            indent=4,
        ),
        _BLANK,
        "    let request: AnalyzeRequest = serde_json::from_str(&input)?;",
        _BLANK,
        *_unsafe_log("开始分析 {} 的数据", "request.target_plugin"),
        _BLANK,
        "    // TODO: 实现数据分析逻辑",
        "    let result = AnalysisResult {",
        "        summary: " + _quote("数据分析完成") + ".to_string(),",
        *_vec_lines("        insights: ", ["平均值处于正常范围", "检测到轻微上升趋势"], 8),
        *_vec_lines("        recommendations: ", ["建议保持当前状态"], 8),
        *_json_lines(
            "        statistics: ",
            {"count": 100, "average": 75.5, "min": 60, "max": 90},
            8,
            ",",
        ),
        "    };",
        _BLANK,
        *_ok_json({"success": True, "result": _Raw("result")}),
    ]
    report = [
        "    // TODO: 实现报告生成逻辑",
        *_ok_json({"success": True, "message": "报告生成功能待实现"}),
    ]
    return _render(
        config,
        uses=list(_COMMON_USES),
        host=[
            ("get_data_host", ("plugin_id", "key")),
            ("list_keys_host", ("plugin_id",)),
            ("log_message_host", ("level", "message")),
        ],
        struct=_struct(
            "AnalysisResult",
            [
                ("summary", "String"),
                ("insights", "Vec<String>"),
                ("recommendations", "Vec<String>"),
                ("statistics", "serde_json::Value"),
            ],
        ),
        functions=[
            _init_fn(config, "{} 初始化成功", "分析器初始化成功"),
            _plugin_fn("分析数据", "analyze(input: String)", analyze),
            _plugin_fn("生成报告", "generate_report(input: String)", report),
            _info_fn(config, "analyzer"),
        ],
    )


def _ui_widget(config: PluginConfig) -> str:
    widget_data = [
        "    // TODO: 实现获取组件显示数据的逻辑",
        "    let data = WidgetData {",
        "        title: " + _quote(config.display_name) + ".to_string(),",
        "        value: json!(75),",
        "        unit: Some(" + _quote("单位") + ".to_string()),",
        "        chart_data: Some(vec![60.0, 65.0, 70.0, 75.0, 72.0]),",
        "    };",
        _BLANK,
        *_ok_json({"success": True, "data": _Raw("data")}),
    ]
    interaction = [
        *_struct(
            "InteractionEvent",
            [("event_type", "String"), ("payload", "serde_json::Value")],
            derive="Deserialize",
            indent=4,
        ),
        _BLANK,
        "    let event: InteractionEvent = serde_json::from_str(&input)?;",
        _BLANK,
        *_unsafe_log("处理交互事件: {}", "event.event_type"),
        _BLANK,
        "    // TODO: 根据事件类型处理用户交互",
        _BLANK,
        *_ok_json({"success": True, "message": "交互处理成功"}),
    ]
    return _render(
        config,
        uses=list(_COMMON_USES),
        host=[
            ("subscribe_data_host", ("plugin_id", "target")),
            ("send_message_host", ("from", "to", "payload")),
            ("log_message_host", ("level", "message")),
        ],
        struct=_struct(
            "WidgetData",
            [
                ("title", "String"),
                ("value", "serde_json::Value"),
                ("unit", "Option<String>"),
                ("chart_data", "Option<Vec<f64>>"),
            ],
        ),
        functions=[
            _init_fn(
                config,
                "{} UI 组件初始化成功",
                "UI 组件初始化成功",
                between=(_BLANK, "    // TODO: 订阅需要的数据源", _BLANK),
            ),
            _plugin_fn("获取组件数据", "get_widget_data()", widget_data),
            _plugin_fn("处理用户交互", "handle_interaction(input: String)", interaction),
            _info_fn(config, "ui-widget"),
        ],
    )


_RENDERERS_BY_TYPE: dict[str, Callable[[PluginConfig], str]] = {
    "data-collector": _data_collector,
    "analyzer": _analyzer,
    "ui-widget": _ui_widget,
}


def _is_valid_name(name: str) -> bool:
    return all(c in _ALLOWED_NAME_CHARS for c in name)


def create_plugin_from_template(
    config: PluginConfig, project_root: Optional[Path] = None
) -> CreatePluginResult:
    """Create ``plugins/<name>`` under the project root and register it.

    Without ``project_root`` the parent of the working directory is used.
    """
    if not _is_valid_name(config.name):
        return CreatePluginResult(
            success=False,
            path="",
            message="插件名称只能包含小写字母、数字和连字符",
        )

    root = Path(project_root) if project_root is not None else Path.cwd().parent
    plugin_dir = root / "plugins" / config.name

    if plugin_dir.exists():
        return CreatePluginResult(
            success=False,
            path=str(plugin_dir),
            message=f"插件 '{config.name}' 已存在",
        )

    (plugin_dir / "src").mkdir(parents=True)
    (plugin_dir / "Cargo.toml").write_text(generate_cargo_toml(config), encoding="utf-8")
    (plugin_dir / "src" / "lib.rs").write_text(generate_lib_rs(config), encoding="utf-8")
    (plugin_dir / "README.md").write_text(generate_readme(config), encoding="utf-8")

    update_workspace_members(root, config.name)

    return CreatePluginResult(
        success=True,
        path=str(plugin_dir),
        message=f"插件 '{config.display_name}' 创建成功",
    )


def generate_cargo_toml(config: PluginConfig) -> str:
    """Render the plugin's package manifest."""
    sections: list[tuple[str, list[tuple[str, str]]]] = [
        ("workspace", []),
        (
            "package",
            [
                ("name", _quote(config.name)),
                ("version", _quote(config.version)),
                ("edition", _quote("2021")),
                ("authors", "[" + _quote(config.author) + "]"),
                ("description", _quote(config.description)),
            ],
        ),
        ("lib", [("crate-type", "[" + _quote("cdylib") + "]")]),
        (
            "dependencies",
            [
                ("extism-pdk", _quote("1.0")),
                ("serde", "{ version = " + _quote("1.0") + ", features = [" + _quote("derive") + "] }"),
                ("serde_json", _quote("1.0")),
                ("chrono", _quote("0.4")),
            ],
        ),
    ]
    blocks = [
        "\n".join([f"[{title}]", *(f"{key} = {value}" for key, value in entries)])
        for title, entries in sections
    ]
    return "\n\n".join(blocks) + "\n"


def generate_lib_rs(config: PluginConfig) -> str:
    """Render the library source for the plugin's type; unknown types get the basic one."""
    renderer = _RENDERERS_BY_TYPE.get(config.plugin_type, _data_collector)
    return renderer(config)


def _fence(*lines: str) -> str:
    return "\n".join(["```bash", *lines, "```"])


def generate_readme(config: PluginConfig) -> str:
    """Render the plugin's README."""
    parts = [
        f"# {config.icon} {config.display_name}",
        config.description,
        "## 功能特性",
        "\n".join(
            [
                f"- 类型: {config.plugin_type}",
                f"- 版本: {config.version}",
                f"- 作者: {config.author}",
            ]
        ),
        "## 开发指南",
        "### 构建插件",
        _fence("cargo build --target wasm32-unknown-unknown --release"),
        "### 测试插件",
        _fence("# 在项目根目录运行", f"cargo run -- --plugin-dir plugins/{config.name}"),
        "## API 文档",
        "### 导出函数",
        "\n".join(["- `init()` - 插件初始化", "- `info()` - 获取插件信息"]),
    ]
    return "\n\n".join(parts) + "\n"


def update_workspace_members(project_root: Path, plugin_name: str) -> None:
    """Append ``plugins/<name>`` to the workspace members list, if there is one."""
    manifest = Path(project_root) / "Cargo.toml"
    if not manifest.exists():
        return

    content = manifest.read_text(encoding="utf-8")
    if f"plugins/{plugin_name}" in content:
        return

    members_start = content.find("members = [")
    if members_start < 0:
        return
    members_end = content.find("]", members_start)
    if members_end < 0:
        return

    comma = content.rfind(",", 0, members_end)
    insert_pos = comma + 1 if comma >= 0 else members_end
    new_content = (
        f'{content[:insert_pos]}\n{_INDENT}"plugins/{plugin_name}",{content[insert_pos:]}'
    )
    manifest.write_text(new_content, encoding="utf-8")