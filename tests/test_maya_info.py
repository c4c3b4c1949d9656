import sys
from pathlib import Path

import pytest

from yuntu_client.maya_info import (
    MayaSoftwareInfo,
    Platform,
    RendererInfo,
    current_host,
    current_platform,
    executable_path,
    plugin_extensions,
    plugin_globs,
)


@pytest.mark.parametrize(
    "platform, suffix",
    [
        (Platform.WINDOWS, "/bin/maya.exe"),
        (Platform.MAC, "/Maya.app/Contents/bin/maya"),
        (Platform.LINUX, "/bin/maya"),
    ],
)
def test_executable_path(platform, suffix):
    root = "C:/Program Files/Autodesk/Maya2024"
    assert executable_path(root, platform) == root + suffix


def test_plugin_extensions_windows():
    assert plugin_extensions(Platform.WINDOWS) == (".mll", ".dll", ".py")


def test_plugin_extensions_mac():
    assert plugin_extensions(Platform.MAC) == (".bundle", ".py")


def test_plugin_globs_linux():
    assert plugin_globs(Platform.LINUX) == ("*.so", "*.py")


@pytest.mark.parametrize("platform", list(Platform))
def test_globs_cover_extensions(platform):
    globs = plugin_globs(platform)
    assert len(globs) == len(plugin_extensions(platform))
    assert all(g.startswith("*.") for g in globs)


@pytest.mark.parametrize(
    "name, expected",
    [("win32", Platform.WINDOWS), ("darwin", Platform.MAC), ("linux", Platform.LINUX)],
)
def test_current_platform(monkeypatch, name, expected):
    monkeypatch.setattr(sys, "platform", name)
    assert current_platform() is expected


def test_current_host_matches_platform():
    host = current_host()
    assert host.platform is current_platform()
    assert host.home == Path.home()
    assert len(host.drives) >= 1


def test_maya_info_defaults_are_independent():
    first = MayaSoftwareInfo()
    second = MayaSoftwareInfo()
    first.plugins.append("mtoa")
    assert second.plugins == []
    assert first.is_valid is False


def test_renderer_info_defaults():
    info = RendererInfo()
    assert info.is_loaded is False
    assert info.name == ""