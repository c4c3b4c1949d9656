from pathlib import Path

import pytest

from yuntu_client.maya_info import Platform
from yuntu_client.maya_plugins import (
    format_plugin_name,
    parse_autoload_plugins,
    parse_plugin_prefs,
    plugin_paths_from_environment,
    read_maya_env_paths,
    read_module_paths,
    read_plugin_prefs,
    read_plugins_from_prefs,
    scan_all_plugin_directories,
)
from yuntu_client.maya_versions import UNKNOWN, estimate_arnold_version

PREFS_TEXT = (
    'evalDeferred("autoLoadPlugin(\\"\\", \\"mtoa\\", \\"mtoa\\")");\n'
    'evalDeferred("autoLoadPlugin(\\"\\", \\"fbxmaya\\", \\"fbxmaya\\")");\n'
    'pluginInfo -edit -pluginPath "C:/plugins/vray" "vrayformaya";\n'
)

AUTOLOAD_TEXT = (
    'autoLoadPlugin("", "mtoa", "mtoa");\n'
    'autoLoadPlugin("", "fbxmaya", "fbxmaya");\n'
    'autoLoadPlugin("", "redshift4maya", "redshift4maya");\n'
)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_plugin_prefs_reads_both_formats():
    result = parse_plugin_prefs(PREFS_TEXT)
    assert result["mtoa"] == ""
    assert result["fbxmaya"] == ""
    assert result["vrayformaya"] == "C:/plugins/vray"


def test_parse_plugin_prefs_path_overrides_autoload():
    text = (
        'autoLoadPlugin("", "mtoa", "mtoa");\n'
        'pluginInfo -edit -pluginPath "D:/arnold" "mtoa";\n'
    )
    assert parse_plugin_prefs(text) == {"mtoa": "D:/arnold"}


def test_parse_plugin_prefs_empty():
    assert parse_plugin_prefs("") == {}


def test_read_plugin_prefs_standard_location(tmp_path):
    _write(tmp_path / "Documents/maya/2024/prefs/pluginPrefs.mel", PREFS_TEXT)
    assert read_plugin_prefs("2024", tmp_path) == parse_plugin_prefs(PREFS_TEXT)


def test_read_plugin_prefs_my_documents_fallback(tmp_path):
    _write(tmp_path / "My Documents/maya/2023/prefs/pluginPrefs.mel", PREFS_TEXT)
    assert "mtoa" in read_plugin_prefs("2023", tmp_path)


def test_read_plugin_prefs_missing(tmp_path):
    assert read_plugin_prefs("2024", tmp_path) == {}


def test_parse_autoload_plugins():
    entries = parse_autoload_plugins(AUTOLOAD_TEXT)
    assert entries == [
        ("", "mtoa", "mtoa"),
        ("", "fbxmaya", "fbxmaya"),
        ("", "redshift4maya", "redshift4maya"),
    ]


def test_read_plugins_from_prefs_keeps_renderers_only(tmp_path):
    home = tmp_path / "home"
    _write(home / "Documents/maya/2024/prefs/pluginPrefs.mel", AUTOLOAD_TEXT)
    maya_root = tmp_path / "Maya2024"
    plugin_file = _write(maya_root / "plug-ins" / "mtoa.mll", "x")

    renderers = read_plugins_from_prefs("2024", home, maya_root)

    assert [r.name for r in renderers] == ["mtoa", "redshift4maya"]
    assert all(r.is_loaded for r in renderers)
    assert all(r.version == UNKNOWN for r in renderers)
    assert renderers[0].plugin_path == str(plugin_file)
    assert renderers[1].plugin_path == ""


def test_read_plugins_from_prefs_missing_file(tmp_path):
    assert read_plugins_from_prefs("2024", tmp_path, tmp_path) == []


def test_read_maya_env_paths(tmp_path):
    existing = tmp_path / "plugins_a"
    existing.mkdir()
    other = tmp_path / "plugins_b"
    other.mkdir()
    missing = tmp_path / "nowhere"
    text = (
        "# comment PATH = ignored\n"
        "// another comment\n"
        "\n"
        f"MAYA_PLUG_IN_PATH = {existing};{missing}\n"
        f"PYTHONPATH={other}\n"
        "MAYA_DISABLE_CIP = 1\n"
    )
    _write(tmp_path / "Documents/maya/2024/Maya.env", text)

    assert read_maya_env_paths("2024", tmp_path) == [str(existing), str(other)]


def test_read_maya_env_paths_missing_file(tmp_path):
    assert read_maya_env_paths("2024", tmp_path) == []


def test_read_module_paths_relative_parent(tmp_path):
    apps = tmp_path / "ApplicationPlugins"
    module_root = apps / "MtoA"
    (module_root / "plug-ins").mkdir(parents=True)
    _write(module_root / "Contents" / "mtoa.mod", "# header\n+ mtoa 5.1.0 ../\n")

    paths = read_module_paths([apps])

    root = module_root.absolute().as_posix()
    assert f"{root}/plug-ins" in paths
    assert root in paths
    assert all(Path(p).is_dir() for p in paths)


def test_read_module_paths_absolute_root(tmp_path):
    arnold = tmp_path / "Arnold" / "maya2024"
    (arnold / "bin" / "plug-ins").mkdir(parents=True)
    modules = tmp_path / "modules"
    _write(modules / "arnold" / "mtoa.mod", f"+ MAYAVERSION:2024 mtoa 5.3.0 {arnold.as_posix()}\n")

    paths = read_module_paths([modules, modules])

    assert f"{arnold.as_posix()}/bin/plug-ins" in paths
    assert arnold.as_posix() in paths
    assert f"{arnold.as_posix()}/plug-ins" not in paths


def test_read_module_paths_ignores_missing_and_unrelated(tmp_path):
    modules = tmp_path / "modules"
    _write(modules / "thing" / "notes.txt", "+ mtoa 5.1.0 ../\n")
    _write(modules / "other" / "x.mod", "+ mtoa 5.1.0 /definitely/not/here\n")
    assert read_module_paths([modules, tmp_path / "absent"]) == []


def test_plugin_paths_from_environment_windows(tmp_path):
    first = tmp_path / "a"
    first.mkdir()
    second = tmp_path / "b"
    second.mkdir()
    location = tmp_path / "maya"
    (location / "plug-ins").mkdir(parents=True)
    environ = {
        "MAYA_PLUG_IN_PATH": f"{first};{tmp_path / 'missing'}; {second} ",
        "MAYA_MODULE_PATH": str(first),
        "MAYA_LOCATION": str(location),
    }

    paths = plugin_paths_from_environment(environ, Platform.WINDOWS)

    assert paths == [str(first), str(second), f"{location}/plug-ins"]


def test_plugin_paths_from_environment_uses_colon_elsewhere(tmp_path):
    first = tmp_path / "a"
    first.mkdir()
    second = tmp_path / "b"
    second.mkdir()
    environ = {"MAYA_SCRIPT_PATH": f"{first}:{second}"}
    assert plugin_paths_from_environment(environ, Platform.LINUX) == [str(first), str(second)]


def test_plugin_paths_from_environment_empty():
    assert plugin_paths_from_environment({}, Platform.WINDOWS) == []


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("mtoa", "Arnold (mtoa)"),
        ("vrayformaya", "V-Ray"),
        ("redshift4maya", "Redshift"),
        ("pgYetiMaya", "Yeti (毛发系统)"),
        ("xgenToolkit", "XGen (毛发)"),
        ("bifrostGraph", "Bifrost (流体)"),
        ("MASH", "MASH (运动图形)"),
        ("fbxmaya", "fbxmaya"),
    ],
)
def test_format_plugin_name(name, expected):
    assert format_plugin_name(name) == expected


def test_scan_all_plugin_directories(tmp_path):
    folder = tmp_path / "plug-ins"
    for name in ("mtoa.mll", "vrayformaya.MLL", "fbxmaya.mll", "redshift_notes.txt"):
        _write(folder / name, "x")

    renderers = scan_all_plugin_directories("2024", [folder, folder], Platform.WINDOWS)

    by_name = {r.name: r for r in renderers}
    assert sorted(by_name) == ["mtoa", "vrayformaya"]
    assert not any(r.is_loaded for r in renderers)
    assert by_name["vrayformaya"].version == UNKNOWN
    assert by_name["mtoa"].version == estimate_arnold_version("2024")
    assert Path(by_name["mtoa"].plugin_path) == (folder / "mtoa.mll").absolute()


def test_scan_all_plugin_directories_respects_platform(tmp_path):
    folder = tmp_path / "plug-ins"
    _write(folder / "mtoa.mll", "x")
    _write(folder / "redshift4maya.so", "x")

    renderers = scan_all_plugin_directories("1999", [folder, tmp_path / "absent"], Platform.LINUX)

    assert [r.name for r in renderers] == ["redshift4maya"]
    assert renderers[0].version == UNKNOWN