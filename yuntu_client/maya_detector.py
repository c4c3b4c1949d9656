"""Detect installed Maya versions, their renderers and plug-ins."""

from __future__ import annotations

import argparse
import itertools
import json
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import asdict
from pathlib import Path

from yuntu_client.maya_info import (
    HostEnvironment,
    MayaSoftwareInfo,
    Platform,
    RendererInfo,
    current_host,
    executable_path,
    plugin_extensions,
    plugin_globs,
)
from yuntu_client.maya_plugins import (
    format_plugin_name,
    plugin_paths_from_environment,
    read_maya_env_paths,
    read_module_paths,
    read_plugin_prefs,
    read_plugins_from_prefs,
    scan_all_plugin_directories,
)
from yuntu_client.maya_scene import (
    detect_missing_assets,
    extract_maya_version_from_scene,
    extract_renderer_from_scene,
    extract_version_from_path,
    scan_scene_assets,
)
from yuntu_client.maya_search import (
    _arnold_module_dirs,
    brute_force_search_maya,
    brute_force_search_plugin,
    detect_arnold,
    detect_redshift,
    detect_vray,
    is_valid_maya_install,
    scan_common_install_paths,
)
from yuntu_client.maya_versions import UNKNOWN, extract_arnold_version

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

LOADED = "[已加载]"
FOUND_BY_SEARCH = "[暴力搜索找到]"
REGISTERED_MISSING = "[已注册，但文件未找到]"
FOUND_BY_SCAN = "[扫描发现]"

_SCAN_FORMATTED_NAMES = (
    ("miarmy", "Miarmy (群集动画)"),
    ("yeti", "Yeti (毛发系统)"),
    ("xgen", "XGen (毛发)"),
    ("bifrost", "Bifrost (流体)"),
    ("mash", "MASH (运动图形)"),
    ("mtoa", "Arnold (mtoa)"),
)

_MAYA_REGISTRY_KEYS = (
    "HKEY_LOCAL_MACHINE\\SOFTWARE\\Autodesk\\Maya",
    "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Autodesk\\Maya",
)

_REGISTRY_VALUE_NAMES = (
    "INSTALL_DIR",
    "InstallDir",
    "INSTALL_PATH",
    "Path",
    "PluginPath",
    "Location",
    "MTOA_INSTALL_DIR",
    "",
)


def _third_party_registry_keys(maya_version: str) -> tuple[str, ...]:
    return (
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\Autodesk\\Arnold",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Autodesk\\Arnold",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\SolidAngle\\Arnold",
        f"HKEY_CURRENT_USER\\Software\\MtoA{maya_version}",
        "HKEY_CURRENT_USER\\Software\\Autodesk\\Arnold",
        "HKEY_CURRENT_USER\\Software\\SolidAngle\\Arnold",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\Chaos Group\\V-Ray",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Chaos Group\\V-Ray",
        "HKEY_CURRENT_USER\\Software\\Chaos Group\\V-Ray",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\Redshift",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Redshift",
        "HKEY_CURRENT_USER\\Software\\Redshift",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\Peregrine Labs\\Yeti",
        "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Peregrine Labs\\Yeti",
        "HKEY_CURRENT_USER\\Software\\Peregrine Labs\\Yeti",
    )


def _read_registry(key_path: str) -> tuple[dict[str, str], list[str]] | None:
    """Values and sub-key names of a registry key; None where there is no registry."""
    try:
        import winreg
    except ImportError:
        return None
    hive_name, _, sub_path = key_path.partition("\\")
    hive = getattr(winreg, hive_name, None)
    if hive is None:
        return None
    try:
        with winreg.OpenKey(hive, sub_path) as key:
            values: dict[str, str] = {}
            for index in itertools.count():
                try:
                    name, data, _ = winreg.EnumValue(key, index)
                except OSError:
                    break
                values[name] = str(data)
            subkeys: list[str] = []
            for index in itertools.count():
                try:
                    subkeys.append(winreg.EnumKey(key, index))
                except OSError:
                    break
    except OSError:
        return None
    return values, subkeys


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _first_existing(candidates: Iterable[str]) -> str | None:
    return next((c for c in candidates if os.path.exists(c)), None)


def _scan_formatted_name(name: str) -> str:
    lowered = name.lower()
    for marker, formatted in _SCAN_FORMATTED_NAMES:
        if marker in lowered:
            return formatted
    return name


def _matches_any(file_name: str, patterns: Iterable[str]) -> bool:
    import fnmatch

    lowered = file_name.lower()
    return any(fnmatch.fnmatchcase(lowered, p.lower()) for p in patterns)


class MayaDetector:
    """Scans a host for Maya installations, renderers and plug-ins."""

    def __init__(
        self,
        host: HostEnvironment | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.host = host if host is not None else current_host()
        self._on_progress = on_progress

    def _progress(self, value: int, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(value, message)

    # ---------------------------------------------------------------- versions

    def _registry_maya_paths(self) -> list[str]:
        if self.host.platform is not Platform.WINDOWS:
            return []
        paths = []
        for key in _MAYA_REGISTRY_KEYS:
            entry = _read_registry(key)
            if entry is None:
                continue
            for version in entry[1]:
                sub = _read_registry(f"{key}\\{version}")
                if sub is None:
                    continue
                location = sub[0].get("MAYA_INSTALL_LOCATION", "")
                if location:
                    paths.append(location)
        return paths

    def detect_all_maya_versions(self) -> list[MayaSoftwareInfo]:
        """Every valid Maya installation found on the host."""
        results: list[MayaSoftwareInfo] = []
        self._progress(10, "正在扫描 Maya 安装路径...")

        candidates = _dedupe(
            self._registry_maya_paths() + scan_common_install_paths(self.host)
        )
        self._progress(30, f"找到 {len(candidates)} 个可能的 Maya 安装路径，正在验证...")

        progress = 30
        step = 50 // len(candidates) if candidates else 0
        for path in candidates:
            if is_valid_maya_install(path, self.host.platform):
                info = self.detect_maya_at_path(path)
                if info.is_valid:
                    results.append(info)
                else:
                    logger.debug("invalid Maya installation: %s", path)
            progress += step
            self._progress(progress, f"验证: {path}")

        if not results:
            self._progress(80, "启动全盘搜索 Maya...")
            for path in brute_force_search_maya(self.host):
                if is_valid_maya_install(path, self.host.platform):
                    info = self.detect_maya_at_path(path)
                    if info.is_valid:
                        results.append(info)

        self._progress(100, "Maya 检测完成")
        logger.debug("found %d valid Maya installations", len(results))
        return results

    def detect_maya_at_path(self, install_path: str) -> MayaSoftwareInfo:
        """Describe the Maya installation in ``install_path``."""
        info = MayaSoftwareInfo(name="Maya", install_path=install_path)
        info.version = extract_version_from_path(install_path)
        info.executable_path = executable_path(install_path, self.host.platform)
        info.renderers = [
            f"{renderer.name} {renderer.version}" for renderer in self.detect_renderers(info)
        ]
        info.plugins = self.detect_plugins(info)
        info.is_valid = bool(info.version) and os.path.exists(info.executable_path)
        if Path(f"{install_path}/bin").is_dir():
            info.full_version = info.version
        return info

    # --------------------------------------------------------------- renderers

    def _arnold_version(self, plugin_path: str, maya_version: str) -> str:
        return extract_arnold_version(
            plugin_path,
            maya_version,
            _arnold_module_dirs(self.host, plugin_path, maya_version),
        )

    def _arnold_from_prefs(self, maya_info: MayaSoftwareInfo, plugin_dir: str) -> RendererInfo:
        arnold = RendererInfo(
            name="Arnold (Plug-in Manager)",
            version=UNKNOWN,
            plugin_path=plugin_dir,
            is_loaded=True,
        )
        extensions = (".mll", ".dll")
        if plugin_dir:
            search_dirs = [plugin_dir]
        else:
            install = maya_info.install_path
            version = extract_version_from_path(install)
            search_dirs = [
                f"{install}/bin/plug-ins",
                f"{install}/plug-ins",
                f"{install}/bin/plug-ins/arnold",
                f"C:/Program Files/Autodesk/Arnold/maya{version}/plug-ins",
                f"C:/Program Files (x86)/Autodesk/Arnold/maya{version}/plug-ins",
                f"C:/solidangle/mtoadeploy/{version}/plug-ins",
                f"C:/Program Files/solidangle/mtoadeploy/{version}/plug-ins",
            ]
        found = _first_existing(
            f"{directory}/mtoa{ext}" for directory in search_dirs for ext in extensions
        )
        if found:
            arnold.plugin_path = found
            arnold.version = self._arnold_version(found, maya_info.version)
        else:
            logger.debug("Arnold registered but plug-in file not found")
        return arnold

    def _renderers_from_prefs(self, maya_info: MayaSoftwareInfo) -> list[RendererInfo]:
        prefs = read_plugin_prefs(maya_info.version, self.host.home)
        renderers = []
        if "mtoa" in prefs:
            renderers.append(self._arnold_from_prefs(maya_info, prefs["mtoa"]))
        for marker, display in (("vray", "V-Ray"), ("redshift", "Redshift")):
            name = next((n for n in sorted(prefs) if marker in n.lower()), None)
            if name is not None:
                renderers.append(
                    RendererInfo(
                        name=display, version=UNKNOWN, plugin_path=prefs[name], is_loaded=True
                    )
                )
        return renderers

    def detect_renderers(self, maya_info: MayaSoftwareInfo) -> list[RendererInfo]:
        """Renderer plug-ins available to a Maya installation."""
        renderers = list(self.get_all_maya_plugins(maya_info.version))
        if renderers:
            return renderers

        if self.host.platform is Platform.WINDOWS:
            renderers.extend(self._renderers_from_prefs(maya_info))

        names = {r.name for r in renderers}
        install = maya_info.install_path
        if "Arnold" not in names:
            arnold = detect_arnold(self.host, install)
            if arnold is not None:
                renderers.append(arnold)
        if "V-Ray" not in names:
            vray = detect_vray(install, self.host.platform)
            if vray is not None:
                renderers.append(vray)
        if "Redshift" not in names:
            redshift = detect_redshift(install, self.host.platform)
            if redshift is not None:
                renderers.append(redshift)
        return renderers

    # ----------------------------------------------------------------- plugins

    def _registered_plugin_dirs(self, maya_info: MayaSoftwareInfo) -> list[str]:
        install = maya_info.install_path
        version = maya_info.version
        home = self.host.home.as_posix()
        dirs = [
            f"{install}/plug-ins",
            f"{install}/bin/plug-ins",
            f"{home}/Documents/maya/{version}/plug-ins",
        ]
        for drive in self.host.drives:
            dirs += [
                f"{drive}Program Files/Autodesk/Arnold/maya{version}/plug-ins",
                f"{drive}Program Files (x86)/Autodesk/Arnold/maya{version}/plug-ins",
                f"{drive}solidangle/mtoadeploy/{version}/plug-ins",
                f"{drive}Program Files/Chaos Group/V-Ray/Maya {version}/plug-ins",
                f"{drive}ProgramData/Redshift/Plugins/Maya/{version}",
                f"{drive}Program Files/Peregrine Labs/Yeti-v*/plug-ins",
            ]
        return dirs

    def _registered_plugins(self, maya_info: MayaSoftwareInfo) -> list[str]:
        prefs = read_plugin_prefs(maya_info.version, self.host.home)
        extensions = plugin_extensions(self.host.platform)
        search_dirs = self._registered_plugin_dirs(maya_info)
        plugins = []
        for name in sorted(prefs):
            directory = prefs[name]
            found = None
            if directory:
                found = _first_existing(f"{directory}/{name}{ext}" for ext in extensions)
            if found is None:
                found = _first_existing(
                    f"{d}/{name}{ext}" for d in search_dirs for ext in extensions
                )
            formatted = format_plugin_name(name)
            if found is not None:
                plugins.append(f"{formatted} {LOADED}")
                continue
            searched = any(
                brute_force_search_plugin(self.host, name + ext, maya_info.version)
                for ext in extensions
            )
            plugins.append(f"{formatted} {FOUND_BY_SEARCH if searched else REGISTERED_MISSING}")
        return plugins

    def _module_dirs(self, maya_version: str) -> list[str]:
        home = self.host.home.as_posix()
        dirs = [
            f"{home}/Documents/maya/{maya_version}/modules",
            f"{home}/Documents/maya/modules",
            "C:/ProgramData/Autodesk/ApplicationPlugins",
            f"C:/Program Files/Common Files/Autodesk Shared/Modules/maya/{maya_version}",
            "C:/Program Files/Common Files/Autodesk Shared/Modules/maya",
        ]
        for drive in self.host.drives:
            dirs += [
                f"{drive}ProgramData/Autodesk/ApplicationPlugins",
                f"{drive}Program Files/Common Files/Autodesk Shared/Modules/maya/{maya_version}",
            ]
        return _dedupe(dirs)

    def _registry_plugin_paths(self, maya_version: str) -> list[str]:
        paths: list[str] = []
        for base_key in _third_party_registry_keys(maya_version):
            entry = _read_registry(base_key)
            if entry is None:
                continue
            values, subkeys = entry
            for value_name in _REGISTRY_VALUE_NAMES:
                install = values.get(value_name, "")
                if install and Path(install).is_dir():
                    paths.append(install)
                    for sub in (
                        "/plug-ins",
                        "/bin/plug-ins",
                        f"/maya{maya_version}/plug-ins",
                        f"/maya{maya_version}",
                        "/scripts",
                        "",
                    ):
                        if Path(install + sub).is_dir():
                            paths.append(install + sub)
            wanted = maya_version.lower()
            for subkey in subkeys:
                if wanted not in subkey.lower():
                    continue
                sub_entry = _read_registry(f"{base_key}\\{subkey}")
                if sub_entry is None:
                    continue
                for value_name in _REGISTRY_VALUE_NAMES:
                    install = sub_entry[0].get(value_name, "")
                    if install and Path(install).is_dir():
                        paths.append(install)
                        for sub in (
                            "/plug-ins",
                            "/bin/plug-ins",
                            f"/maya{maya_version}/plug-ins",
                            f"/maya{maya_version}",
                            "",
                        ):
                            if Path(install + sub).is_dir():
                                paths.append(install + sub)
                        break
        return paths

    def _scan_dirs(self, maya_info: MayaSoftwareInfo) -> list[str]:
        install = maya_info.install_path
        version = maya_info.version
        home = self.host.home.as_posix()
        dirs = [f"{install}/plug-ins", f"{install}/bin/plug-ins"]
        if self.host.platform is Platform.WINDOWS:
            dirs.append(f"{home}/Documents/maya/{version}/plug-ins")
            dirs += read_maya_env_paths(version, self.host.home)
            dirs += read_module_paths(self._module_dirs(version))
            dirs += self._registry_plugin_paths(version)
        elif self.host.platform is Platform.MAC:
            dirs.append(f"{home}/Library/Preferences/Autodesk/maya/{version}/plug-ins")
        return _dedupe(dirs)

    def detect_plugins(self, maya_info: MayaSoftwareInfo) -> list[str]:
        """Plug-in names with how each was found, e.g. "V-Ray [已加载]"."""
        plugins: list[str] = []
        if self.host.platform is Platform.WINDOWS:
            plugins.extend(self._registered_plugins(maya_info))

        patterns = plugin_globs(self.host.platform)
        for directory in self._scan_dirs(maya_info):
            folder = Path(directory)
            if not folder.is_dir():
                continue
            try:
                entries = sorted(folder.iterdir(), key=lambda p: p.name.lower())
            except OSError:
                continue
            for entry in entries:
                if not entry.is_file() or not _matches_any(entry.name, patterns):
                    continue
                base_name = entry.name.split(".")[0]
                lowered = base_name.lower()
                if any(lowered in existing.lower() for existing in plugins):
                    continue
                plugins.append(f"{_scan_formatted_name(base_name)} {FOUND_BY_SCAN}")

        return _dedupe(plugins)

    def get_all_maya_plugins(self, maya_version: str) -> list[RendererInfo]:
        """Renderer plug-ins from pluginPrefs.mel and the known plug-in directories."""
        plugins: list[RendererInfo] = []
        for plugin in read_plugins_from_prefs(maya_version, self.host.home):
            if all(existing.name != plugin.name for existing in plugins):
                plugins.append(plugin)

        home = self.host.home.as_posix()
        v = maya_version
        directories = [
            f"C:/Program Files/Autodesk/Maya{v}/plug-ins",
            f"C:/Program Files/Autodesk/Maya{v}/bin/plug-ins",
            f"C:/Program Files/Autodesk/Maya{v}/modules",
            f"{home}/Documents/maya/{v}/plug-ins",
            f"{home}/Documents/maya/{v}/modules",
            f"{home}/Documents/maya/modules",
            f"C:/Program Files/Chaos Group/V-Ray/Maya {v}/bin",
            f"C:/Program Files/Redshift/Plugins/Maya/{v}/plug-ins",
            f"C:/Program Files/Autodesk/Arnold/maya{v}/plug-ins",
            f"C:/Program Files/solidangle/mtoadeploy/{v}/plug-ins",
            f"C:/Program Files/Thinkbox/Deadline/10/plugins/Maya/{v}",
        ]
        directories += plugin_paths_from_environment(self.host.environ, self.host.platform)
        directories += [
            f"//server/plugins/maya{v}",
            "//shared/autodesk/maya/plugins",
            "//network/maya/plug-ins",
        ]

        for scanned in scan_all_plugin_directories(v, directories, self.host.platform):
            if all(
                existing.name != scanned.name or existing.plugin_path != scanned.plugin_path
                for existing in plugins
            ):
                plugins.append(scanned)
        return plugins


def main(argv: list[str] | None = None) -> int:
    """Print detected Maya installations, or facts about one scene, as JSON."""
    parser = argparse.ArgumentParser(
        prog="yuntu-maya", description="Detect Maya installations and scene requirements."
    )
    parser.add_argument("--scene", help="report version, renderer and assets of a scene file")
    args = parser.parse_args(argv)

    if args.scene:
        report = {
            "version": extract_maya_version_from_scene(args.scene),
            "renderer": extract_renderer_from_scene(args.scene),
            "assets": scan_scene_assets(args.scene),
            "missing_assets": detect_missing_assets(args.scene),
        }
    else:
        detector = MayaDetector()
        report = [asdict(info) for info in detector.detect_all_maya_versions()]

    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0