import pytest

from plugdash.plugin_creator import (
    CreatePluginResult,
    PluginConfig,
    create_plugin_from_template,
    generate_cargo_toml,
    generate_lib_rs,
    generate_readme,
    update_workspace_members,
)


def make_config(name="heart-rate", plugin_type="data-collector"):
    return PluginConfig(
        name=name,
        display_name="Heart Rate",
        description="Collects pulse readings",
        author="Example Author",
        version="0.2.0",
        plugin_type=plugin_type,
        icon="H",
        features=["storage"],
    )


def test_from_dict_maps_wire_names():
    config = PluginConfig.from_dict(
        {
            "name": "x",
            "displayName": "X Plugin",
            "description": "d",
            "author": "a",
            "version": "1.0.0",
            "type": "analyzer",
            "features": ["f"],
            "icon": "i",
        }
    )
    assert config.display_name == "X Plugin"
    assert config.plugin_type == "analyzer"
    assert config.features == ["f"]


def test_from_dict_missing_field():
    with pytest.raises(ValueError):
        PluginConfig.from_dict({"name": "x"})


def test_result_to_json():
    result = CreatePluginResult(success=True, path="p", message="m")
    assert result.to_json() == {"success": True, "path": "p", "message": "m"}


@pytest.mark.parametrize("name", ["Bad", "bad_name", "has space", "ünï"])
def test_invalid_name_rejected(tmp_path, name):
    result = create_plugin_from_template(make_config(name=name), tmp_path)
    assert result.success is False
    assert result.path == ""
    assert result.message == "插件名称只能包含小写字母、数字和连字符"
    assert not (tmp_path / "plugins").exists()


def test_creates_files(tmp_path):
    config = make_config()
    result = create_plugin_from_template(config, tmp_path)
    plugin_dir = tmp_path / "plugins" / "heart-rate"
    assert result.success is True
    assert result.path == str(plugin_dir)
    assert "Heart Rate" in result.message
    assert (plugin_dir / "Cargo.toml").read_text(encoding="utf-8") == generate_cargo_toml(config)
    assert (plugin_dir / "src" / "lib.rs").read_text(encoding="utf-8") == generate_lib_rs(config)
    assert (plugin_dir / "README.md").read_text(encoding="utf-8") == generate_readme(config)


def test_existing_plugin_not_overwritten(tmp_path):
    config = make_config()
    assert create_plugin_from_template(config, tmp_path).success
    again = create_plugin_from_template(config, tmp_path)
    assert again.success is False
    assert again.path == str(tmp_path / "plugins" / "heart-rate")
    assert "heart-rate" in again.message


def test_cargo_toml_contents():
    text = generate_cargo_toml(make_config())
    assert 'name = "heart-rate"' in text
    assert 'version = "0.2.0"' in text
    assert 'authors = ["Example Author"]' in text
    assert 'crate-type = ["cdylib"]' in text


def test_lib_rs_dispatches_on_type():
    analyzer = generate_lib_rs(make_config(plugin_type="analyzer"))
    widget = generate_lib_rs(make_config(plugin_type="ui-widget"))
    collector = generate_lib_rs(make_config(plugin_type="data-collector"))
    assert "pub fn analyze" in analyzer
    assert "pub fn get_widget_data" in widget
    assert "pub fn collect_data" in collector
    assert 'const PLUGIN_ID: &str = "heart-rate";' in collector


def test_unknown_type_uses_basic_template():
    unknown = generate_lib_rs(make_config(plugin_type="other"))
    assert unknown == generate_lib_rs(make_config(plugin_type="data-collector"))


def test_readme_mentions_fields():
    text = generate_readme(make_config())
    assert text.startswith("# H Heart Rate\n")
    assert "- 类型: data-collector" in text
    assert "plugins/heart-rate" in text


def test_workspace_members_updated(tmp_path):
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[workspace]\nmembers = [".", "plugin-sdk"]\n', encoding="utf-8")
    create_plugin_from_template(make_config(), tmp_path)
    content = manifest.read_text(encoding="utf-8")
    assert content == '[workspace]\nmembers = [".",\n    "plugins/heart-rate", "plugin-sdk"]\n'


def test_workspace_update_is_idempotent(tmp_path):
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('members = ["a", "b"]\n', encoding="utf-8")
    update_workspace_members(tmp_path, "new")
    once = manifest.read_text(encoding="utf-8")
    update_workspace_members(tmp_path, "new")
    assert manifest.read_text(encoding="utf-8") == once
    assert once.count("plugins/new") == 1


def test_workspace_missing_manifest_is_noop(tmp_path):
    update_workspace_members(tmp_path, "new")
    assert not (tmp_path / "Cargo.toml").exists()


def test_workspace_without_members_unchanged(tmp_path):
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text("[package]\nname = \"x\"\n", encoding="utf-8")
    update_workspace_members(tmp_path, "new")
    assert manifest.read_text(encoding="utf-8") == "[package]\nname = \"x\"\n"