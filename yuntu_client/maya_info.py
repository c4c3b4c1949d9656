"""Data types shared by the Maya detection modules."""

from __future__ import annotations

import os
import string
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Platform(Enum):
    """Operating systems on which Maya is looked for."""

    WINDOWS = "windows"
    MAC = "mac"
    LINUX = "linux"


@dataclass
class RendererInfo:
    """A renderer plug-in found for a Maya installation."""

    name: str = ""
    version: str = ""
    plugin_path: str = ""
    is_loaded: bool = False


@dataclass
class MayaSoftwareInfo:
    """What is known about one Maya installation."""

    name: str = ""
    version: str = ""
    full_version: str = ""
    install_path: str = ""
    executable_path: str = ""
    renderers: list[str] = field(default_factory=list)
    plugins: list[str] = field(default_factory=list)
    is_valid: bool = False


@dataclass(frozen=True)
class HostEnvironment:
    """The machine being searched: platform, home directory, drives and environment."""

    platform: Platform
    home: Path
    drives: tuple[str, ...] = ()
    environ: Mapping[str, str] = field(default_factory=dict)


_EXTENSIONS = {
    Platform.WINDOWS: (".mll", ".dll", ".py"),
    Platform.MAC: (".bundle", ".py"),
    Platform.LINUX: (".so", ".py"),
}


def current_platform() -> Platform:
    """Return the platform this interpreter runs on."""
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.MAC
    return Platform.LINUX


def _windows_drives() -> tuple[str, ...]:
    return tuple(
        f"{letter}:/"
        for letter in string.ascii_uppercase
        if os.path.exists(f"{letter}:/")
    )


def current_host() -> HostEnvironment:
    """Describe the machine this interpreter runs on."""
    platform = current_platform()
    drives = _windows_drives() if platform is Platform.WINDOWS else ("/",)
    return HostEnvironment(
        platform=platform,
        home=Path.home(),
        drives=drives,
        environ=dict(os.environ),
    )


def plugin_extensions(platform: Platform) -> tuple[str, ...]:
    """File extensions a Maya plug-in may carry on the given platform."""
    return _EXTENSIONS[platform]


def plugin_globs(platform: Platform) -> tuple[str, ...]:
    """Glob patterns matching Maya plug-in files on the given platform."""
    return tuple(f"*{ext}" for ext in _EXTENSIONS[platform])


def executable_path(install_path: str, platform: Platform) -> str:
    """Path of the Maya executable inside an installation directory."""
    if platform is Platform.WINDOWS:
        return f"{install_path}/bin/maya.exe"
    if platform is Platform.MAC:
        return f"{install_path}/Maya.app/Contents/bin/maya"
    return f"{install_path}/bin/maya"