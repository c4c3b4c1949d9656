"""Locate Maya installations and renderer plug-ins on disk."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from yuntu_client.maya_info import (
    HostEnvironment,
    Platform,
    RendererInfo,
    executable_path,
)
from yuntu_client.maya_scene import extract_version_from_path
from yuntu_client.maya_versions import UNKNOWN, extract_arnold_version

logger = logging.getLogger(__name__)

_MAYA_INSTALL_RE = re.compile(r"Maya\d{4}", re.IGNORECASE)
_MODULE_ROOT_RE = re.compile(r"\+\s+\w+\s+\d+\.\d+\.\d+\s+(.+)")

_MAC_INSTALL_PATHS = (
    "/Applications/Autodesk/maya2024",
    "/Applications/Autodesk/maya2023",
    "/Applications/Autodesk/maya2022",
)
_LINUX_INSTALL_PATHS = (
    "/usr/autodesk/maya2024",
    "/usr/autodesk/maya2023",
    "/opt/autodesk/maya2024",
    "/opt/autodesk/maya2023",
)

_PLUGIN_SEARCH_BASES = (
    "Program Files/Autodesk",
    "Program Files (x86)/Autodesk",
    "Program Files/Autodesk/Arnold",
    "Program Files (x86)/Autodesk/Arnold",
    "solidangle",
    "Program Files/solidangle",
    "Program Files (x86)/solidangle",
    "Arnold",
    "Program Files/Arnold",
    "Program Files (x86)/Arnold",
    "Program Files/Peregrine Labs",
    "Peregrine Labs",
    "Program Files/Chaos Group",
    "ProgramData/Redshift",
    "ProgramData/Autodesk",
)


def _sorted_dir(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda p: p.name.lower())
    except OSError:
        return []


def _walk_files(base: str | Path, patterns: Iterable[str]) -> Iterator[str]:
    """Files below ``base`` whose names match any pattern, case-insensitively."""
    lowered = [p.lower() for p in patterns]
    for root, dirs, files in os.walk(base):
        dirs.sort(key=str.lower)
        for name in sorted(files, key=str.lower):
            if any(fnmatch.fnmatchcase(name.lower(), p) for p in lowered):
                yield (Path(root) / name).as_posix()


def _first_existing(candidates: Iterable[str]) -> str | None:
    return next((c for c in candidates if os.path.exists(c)), None)


def scan_common_install_paths(host: HostEnvironment) -> list[str]:
    """Directories in the usual install locations that look like Maya installations."""
    if host.platform is Platform.MAC:
        return list(_MAC_INSTALL_PATHS)
    if host.platform is Platform.LINUX:
        return list(_LINUX_INSTALL_PATHS)

    paths = []
    for drive in host.drives:
        for base in (
            f"{drive}Program Files/Autodesk",
            f"{drive}Program Files (x86)/Autodesk",
            f"{drive}Autodesk",
        ):
            base_dir = Path(base)
            if not base_dir.is_dir():
                continue
            for entry in _sorted_dir(base_dir):
                if entry.is_dir() and entry.name.lower().startswith("maya"):
                    paths.append(entry.absolute().as_posix())
    return paths


def is_valid_maya_install(path: str, platform: Platform) -> bool:
    """Whether the Maya executable exists inside ``path``."""
    return os.path.exists(executable_path(path, platform))


def brute_force_search_plugin(
    host: HostEnvironment, plugin_file_name: str, maya_version: str
) -> list[str]:
    """Search the usual vendor folders of every drive for a plug-in file.

    Hits inside Arnold's own plug-in folders and hits whose path names the
    Maya version come first. Only Windows hosts are searched.
    """
    if host.platform is not Platform.WINDOWS:
        return []

    found: list[str] = []
    is_arnold = "mtoa" in plugin_file_name.lower()
    version = maya_version.lower()
    for drive in host.drives:
        for base in (f"{drive}{rest}" for rest in _PLUGIN_SEARCH_BASES):
            if not Path(base).is_dir():
                continue
            if is_arnold:
                for arnold_dir in (
                    f"{base}/maya{maya_version}/plug-ins",
                    f"{base}/mtoadeploy/{maya_version}/plug-ins",
                    f"{base}/plug-ins",
                    f"{base}/bin/plug-ins",
                ):
                    directory = Path(arnold_dir)
                    if not directory.is_dir():
                        continue
                    for entry in _sorted_dir(directory):
                        if entry.is_file() and entry.name.lower() in ("mtoa.mll", "mtoa.dll"):
                            found.insert(0, entry.absolute().as_posix())
            for hit in _walk_files(base, (plugin_file_name,)):
                if version in hit.lower():
                    found.insert(0, hit)
                else:
                    found.append(hit)

    results = list(dict.fromkeys(found))
    logger.debug("brute-force search for %s found %d files", plugin_file_name, len(results))
    return results


def brute_force_search_maya(host: HostEnvironment) -> list[str]:
    """Search every drive for bin/maya.exe inside a versioned Maya directory."""
    if host.platform is not Platform.WINDOWS:
        return []

    paths = []
    for drive in host.drives:
        for base in (f"{drive}Program Files", f"{drive}Program Files (x86)", drive):
            if not Path(base).is_dir():
                continue
            for exe in _walk_files(base, ("maya.exe",)):
                bin_dir = Path(exe).parent
                if bin_dir.name.lower() != "bin":
                    continue
                install = bin_dir.parent.absolute().as_posix()
                if _MAYA_INSTALL_RE.search(install):
                    paths.append(install)
                else:
                    logger.debug("skipping unversioned install: %s", install)
    return list(dict.fromkeys(paths))


def _arnold_module_dirs(
    host: HostEnvironment, plugin_path: str, maya_version: str
) -> list[str]:
    home = host.home.as_posix()
    if host.platform is Platform.WINDOWS:
        plugin_dir = Path(plugin_path).absolute().parent
        parent = plugin_dir.parent
        grandparent = parent.parent
        return [
            f"{home}/Documents/maya/{maya_version}/modules",
            f"{home}/Documents/maya/modules",
            "C:/ProgramData/Autodesk/ApplicationPlugins",
            f"C:/Program Files/Common Files/Autodesk Shared/Modules/maya/{maya_version}",
            "C:/Program Files/Common Files/Autodesk Shared/Modules/maya",
            parent.as_posix(),
            f"{grandparent.as_posix()}/modules",
            f"{grandparent.as_posix()}/Contents",
            f"{grandparent.as_posix()}/Contents/modules",
        ]
    if host.platform is Platform.MAC:
        return [
            f"{home}/Library/Preferences/Autodesk/maya/{maya_version}/modules",
            f"/Applications/Autodesk/maya{maya_version}/modules",
        ]
    return [f"{home}/maya/{maya_version}/modules", "/usr/autodesk/modules/maya"]


def _arnold(
    host: HostEnvironment, label: str, plugin_path: str, maya_version: str
) -> RendererInfo:
    version = extract_arnold_version(
        plugin_path, maya_version, _arnold_module_dirs(host, plugin_path, maya_version)
    )
    logger.debug("found Arnold (%s) at %s, version %s", label, plugin_path, version)
    return RendererInfo(
        name=f"Arnold ({label})", version=version, plugin_path=plugin_path, is_loaded=True
    )


def _builtin_arnold_paths(maya_path: str, platform: Platform) -> list[str]:
    if platform is Platform.WINDOWS:
        return [
            f"{maya_path}/{folder}/mtoa{ext}"
            for folder in ("bin/plug-ins", "plug-ins", "bin/plug-ins/arnold")
            for ext in (".mll", ".dll")
        ]
    if platform is Platform.MAC:
        return [
            f"{maya_path}/Maya.app/Contents/plug-ins/mtoa.bundle",
            f"{maya_path}/plug-ins/mtoa.bundle",
            f"{maya_path}/Maya.app/Contents/plug-ins/arnold/mtoa.bundle",
        ]
    return [f"{maya_path}/plug-ins/mtoa.so", f"{maya_path}/plug-ins/arnold/mtoa.so"]


def _independent_arnold_paths(host: HostEnvironment, version: str) -> list[str]:
    if host.platform is Platform.WINDOWS:
        folders = (
            f"Program Files/Autodesk/Arnold/maya{version}/plug-ins",
            f"Program Files (x86)/Autodesk/Arnold/maya{version}/plug-ins",
            f"solidangle/mtoadeploy/{version}/plug-ins",
            f"Program Files/solidangle/mtoadeploy/{version}/plug-ins",
            f"Arnold/maya{version}/plug-ins",
        )
        return [
            f"{drive}{folder}/mtoa{ext}"
            for drive in host.drives
            for folder in folders
            for ext in (".mll", ".dll")
        ]
    if host.platform is Platform.MAC:
        return [
            f"/Applications/Autodesk/Arnold/maya{version}/plug-ins/mtoa.bundle",
            f"/opt/solidangle/mtoa/{version}/plug-ins/mtoa.bundle",
            f"/usr/local/arnold/maya{version}/plug-ins/mtoa.bundle",
        ]
    return [
        f"/opt/autodesk/arnold/maya{version}/plug-ins/mtoa.so",
        f"/opt/solidangle/mtoa/{version}/plug-ins/mtoa.so",
        f"/usr/local/arnold/maya{version}/plug-ins/mtoa.so",
    ]


def _environment_arnold_paths(host: HostEnvironment, version: str) -> list[str]:
    if host.platform is not Platform.WINDOWS:
        return []
    paths = []
    module_path = host.environ.get("MAYA_MODULE_PATH", "")
    for entry in module_path.split(";") if module_path else ():
        lowered = entry.lower()
        if "arnold" in lowered or "mtoa" in lowered:
            paths += [
                f"{entry}/mtoa.mll",
                f"{entry}/mtoa.dll",
                f"{entry}/plug-ins/mtoa.mll",
                f"{entry}/plug-ins/mtoa.dll",
            ]
    arnold_root = host.environ.get("ARNOLD_ROOT", "")
    if arnold_root:
        paths += [
            f"{arnold_root}/maya{version}/plug-ins/mtoa.mll",
            f"{arnold_root}/maya{version}/plug-ins/mtoa.dll",
        ]
    return paths


def _user_module_dirs(host: HostEnvironment, version: str) -> list[Path]:
    home = host.home
    if host.platform is Platform.WINDOWS:
        return [
            home / "Documents" / "maya" / version / "modules",
            home / "My Documents" / "maya" / version / "modules",
        ]
    if host.platform is Platform.MAC:
        return [home / "Library" / "Preferences" / "Autodesk" / "maya" / version / "modules"]
    return [home / "maya" / version / "modules"]


def _module_file_arnold_path(host: HostEnvironment, version: str) -> str | None:
    for module_dir in _user_module_dirs(host, version):
        if not module_dir.is_dir():
            continue
        for mod_file in _sorted_dir(module_dir):
            if not mod_file.is_file() or mod_file.suffix.lower() != ".mod":
                continue
            try:
                content = mod_file.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            match = _MODULE_ROOT_RE.search(content)
            if not match:
                continue
            root = match.group(1).strip()
            found = _first_existing(
                (
                    f"{root}/plug-ins/mtoa.mll",
                    f"{root}/plug-ins/mtoa.dll",
                    f"{root}/mtoa.mll",
                    f"{root}/mtoa.dll",
                )
            )
            if found:
                return found
    return None


def detect_arnold(host: HostEnvironment, maya_path: str) -> RendererInfo | None:
    """Find the Arnold plug-in for a Maya installation, or None.

    Looks in Maya's own folders, standalone Arnold installs on each drive,
    ARNOLD_ROOT and MAYA_MODULE_PATH, the user's module files and finally
    a brute-force search of the drives.
    """
    version = extract_version_from_path(maya_path)

    found = _first_existing(_builtin_arnold_paths(maya_path, host.platform))
    if found:
        return _arnold(host, "Maya 内置", found, version)

    found = _first_existing(_independent_arnold_paths(host, version))
    if found:
        return _arnold(host, "独立安装", found, version)

    found = _first_existing(_environment_arnold_paths(host, version))
    if found:
        return _arnold(host, "环境变量", found, version)

    found = _module_file_arnold_path(host, version)
    if found:
        return _arnold(host, "模块文件", found, version)

    hits = brute_force_search_plugin(host, "mtoa.mll", version) or brute_force_search_plugin(
        host, "mtoa.dll", version
    )
    if hits:
        return _arnold(host, "暴力搜索", hits[0], version)

    logger.debug("no Arnold plug-in found for %s", maya_path)
    return None


def _plugin_in_maya(
    maya_path: str, platform: Platform, base_name: str, display_name: str
) -> RendererInfo | None:
    if platform is Platform.WINDOWS:
        candidates = [
            f"{maya_path}/{folder}/{base_name}{ext}"
            for folder in ("bin/plug-ins", "plug-ins")
            for ext in (".mll", ".dll")
        ]
    elif platform is Platform.MAC:
        candidates = [
            f"{maya_path}/Maya.app/Contents/plug-ins/{base_name}.bundle",
            f"{maya_path}/plug-ins/{base_name}.bundle",
        ]
    else:
        candidates = [f"{maya_path}/plug-ins/{base_name}.so"]
    found = _first_existing(candidates)
    if found is None:
        return None
    return RendererInfo(name=display_name, version=UNKNOWN, plugin_path=found, is_loaded=True)


def detect_vray(maya_path: str, platform: Platform) -> RendererInfo | None:
    """The V-Ray plug-in inside a Maya installation, or None."""
    return _plugin_in_maya(maya_path, platform, "vrayformaya", "V-Ray")


def detect_redshift(maya_path: str, platform: Platform) -> RendererInfo | None:
    """The Redshift plug-in inside a Maya installation, or None."""
    return _plugin_in_maya(maya_path, platform, "redshift4maya", "Redshift")