"""Work out which Arnold (MtoA) version is installed alongside Maya."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

MTOA_HEADER = "include/mtoa/utils/Version.h"
ARNOLD_HEADER = "include/arnold/ai_version.h"

_MTOA_HEADER_PATTERNS = (
    re.compile(r"#define\s+MTOA_ARCH_VERSION_NUM\s+(\d+)"),
    re.compile(r"#define\s+MTOA_MAJOR_VERSION_NUM\s+(\d+)"),
    re.compile(r"#define\s+MTOA_MINOR_VERSION_NUM\s+(\d+)"),
    re.compile(r'#define\s+MTOA_FIX_VERSION\s+"([^"]+)"'),
)
_ARNOLD_HEADER_PATTERNS = (
    re.compile(r"#define\s+AI_VERSION_ARCH_NUM\s+(\d+)"),
    re.compile(r"#define\s+AI_VERSION_MAJOR_NUM\s+(\d+)"),
    re.compile(r"#define\s+AI_VERSION_MINOR_NUM\s+(\d+)"),
    re.compile(r'#define\s+AI_VERSION_FIX\s+"([^"]+)"'),
)

_PLUGIN_PATH_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"mtoa[_-]?(\d+\.\d+\.\d+\.\d+)",
        r"mtoa[_-]?(\d+\.\d+\.\d+)",
        r"arnold[/_-](\d+\.\d+\.\d+\.\d+)",
        r"arnold[/_-](\d+\.\d+\.\d+)",
    )
)

_MODULE_PATH_RE = re.compile(r"\+\s+mtoa\s+\w+\s+(.+)")

_MODULE_PATH_VERSION_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"maya(\d{4})",
        r"arnold[/_-](\d+\.\d+\.\d+\.\d+)",
        r"arnold[/_-](\d+\.\d+\.\d+)",
        r"mtoa[/_-](\d+\.\d+\.\d+\.\d+)",
        r"mtoa[/_-](\d+\.\d+\.\d+)",
    )
)

_MODULE_TEXT_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\+[^\n]*?mtoa\s+(\d+\.\d+\.\d+\.\d+)",
        r"\+[^\n]*?mtoa\s+(\d+\.\d+\.\d+)",
        r"\[r\]\s*mtoa\s+(\d+\.\d+\.\d+\.\d+)",
        r"\[r\]\s*mtoa\s+(\d+\.\d+\.\d+)",
        r"VERSION\s*[=:]\s*(\d+\.\d+\.\d+\.\d+)",
        r"VERSION\s*[=:]\s*(\d+\.\d+\.\d+)",
        r"mtoa.*?version[:\s]+(\d+\.\d+\.\d+\.\d+)",
        r"mtoa.*?version[:\s]+(\d+\.\d+\.\d+)",
        r"MtoA\s+(\d+\.\d+\.\d+\.\d+)",
        r"MtoA\s+(\d+\.\d+\.\d+)",
        r"Arnold\s+Core\s+(\d+\.\d+\.\d+\.\d+)",
        r"Arnold\s+Core\s+(\d+\.\d+\.\d+)",
    )
)

# Arnold release usually shipped with each Maya release; a last-resort guess.
_MAYA_ARNOLD_VERSIONS = {
    "2025": "5.4.x",
    "2024": "5.3.x",
    "2023": "5.2.x",
    "2022": "4.2.x",
    "2020": "4.0.x",
    "2019": "3.3.x",
    "2018": "3.1.x",
    "2017": "2.0.x",
    "2016": "1.4.x",
}


def _read_text(path: str | Path) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def _parse_header(text: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    arch, major, minor, fix = (
        (m.group(1) if (m := p.search(text)) else "") for p in patterns
    )
    if not (arch and major and minor):
        return None
    version = f"{arch}.{major}.{minor}"
    return f"{version}.{fix}" if fix else version


def parse_mtoa_header(text: str) -> str | None:
    """Version defined in the text of an MtoA Version.h, or None if incomplete."""
    return _parse_header(text, _MTOA_HEADER_PATTERNS)


def parse_arnold_header(text: str) -> str | None:
    """Version defined in the text of an Arnold ai_version.h, or None if incomplete."""
    return _parse_header(text, _ARNOLD_HEADER_PATTERNS)


def extract_version_from_mtoa_header(path: str | Path) -> str:
    """Version from an MtoA Version.h file; "Unknown" if unreadable or incomplete."""
    text = _read_text(path)
    if text is None:
        logger.debug("cannot open header: %s", path)
        return UNKNOWN
    return parse_mtoa_header(text) or UNKNOWN


def extract_version_from_arnold_header(path: str | Path) -> str:
    """Version from an Arnold ai_version.h file; "Unknown" if unreadable or incomplete."""
    text = _read_text(path)
    if text is None:
        logger.debug("cannot open header: %s", path)
        return UNKNOWN
    return parse_arnold_header(text) or UNKNOWN


def _version_from_header_file(path: str | Path) -> str:
    lowered = Path(path).as_posix().lower()
    if lowered.endswith(MTOA_HEADER.lower()):
        return extract_version_from_mtoa_header(path)
    if lowered.endswith(ARNOLD_HEADER.lower()):
        return extract_version_from_arnold_header(path)
    return UNKNOWN


def extract_version_from_mtoa_mod(path: str | Path) -> str:
    """Follow the Arnold directory named in an mtoa.mod file to its version headers."""
    content = _read_text(path)
    if content is None:
        logger.debug("cannot open module file: %s", path)
        return UNKNOWN
    match = _MODULE_PATH_RE.search(content)
    if not match:
        return UNKNOWN
    arnold_path = match.group(1).strip()
    mtoa_header = Path(f"{arnold_path}/{MTOA_HEADER}")
    if mtoa_header.exists():
        version = extract_version_from_mtoa_header(mtoa_header)
        if version != UNKNOWN:
            return version
    arnold_header = Path(f"{arnold_path}/{ARNOLD_HEADER}")
    if arnold_header.exists():
        version = extract_version_from_arnold_header(arnold_header)
        if version != UNKNOWN:
            return version
    return UNKNOWN


def search_arnold_version_files(plugin_path: str | Path) -> list[str]:
    """Version headers found in the plug-in's directory, its parent and grandparent."""
    plugin_dir = Path(plugin_path).absolute().parent
    search_dirs = [plugin_dir]
    parent = plugin_dir.parent
    if parent != plugin_dir and parent.exists():
        search_dirs.append(parent)
        grandparent = parent.parent
        if grandparent != parent and grandparent.exists():
            search_dirs.append(grandparent)

    found = (
        str(directory / header)
        for directory in search_dirs
        if directory.is_dir()
        for header in (MTOA_HEADER, ARNOLD_HEADER)
        if (directory / header).exists()
    )
    return list(dict.fromkeys(found))


def version_from_plugin_path(plugin_path: str) -> str | None:
    """Version written into a plug-in path such as ".../Arnold-5.3.0.1/...", or None."""
    for pattern in _PLUGIN_PATH_PATTERNS:
        match = pattern.search(plugin_path)
        if match:
            return match.group(1)
    return None


def version_from_module_text(content: str) -> str | None:
    """Version declared in the text of an Arnold module file, or None."""
    for pattern in _MODULE_TEXT_PATTERNS:
        match = pattern.search(content)
        if match:
            return match.group(1)
    return None


def estimate_arnold_version(maya_version: str) -> str | None:
    """Arnold series usually bundled with a Maya release, or None if not known."""
    return _MAYA_ARNOLD_VERSIONS.get(maya_version)


def _module_files(module_dir: Path) -> list[Path]:
    return sorted(
        p for p in module_dir.rglob("*") if p.is_file() and p.suffix.lower() == ".mod"
    )


def _version_from_module_file(content: str) -> str | None:
    match = _MODULE_PATH_RE.search(content)
    if match:
        arnold_path = match.group(1).strip()
        for pattern in _MODULE_PATH_VERSION_PATTERNS:
            found = pattern.search(arnold_path)
            if found:
                return found.group(1)
        if "arnold" in arnold_path.lower():
            for header in search_arnold_version_files(f"{arnold_path}/plug-ins/mtoa.mll"):
                version = _version_from_header_file(header)
                if version != UNKNOWN:
                    return version
    return version_from_module_text(content)


def extract_arnold_version(
    plugin_path: str,
    maya_version: str,
    module_dirs: Iterable[str | Path] = (),
) -> str:
    """Best guess at the Arnold version of a plug-in; "Unknown" when nothing fits.

    Tries, in order: the plug-in path, version headers near the plug-in,
    Arnold module files in the given directories, and the Maya release.
    """
    version = version_from_plugin_path(plugin_path)
    if version:
        return version

    for header in search_arnold_version_files(plugin_path):
        version = _version_from_header_file(header)
        if version != UNKNOWN:
            return version

    for module_dir in map(Path, module_dirs):
        if not module_dir.is_dir():
            continue
        for mod_file in _module_files(module_dir):
            lowered = str(mod_file).lower()
            if "mtoa" not in lowered and "arnold" not in lowered:
                continue
            content = _read_text(mod_file)
            if content is None:
                continue
            version = _version_from_module_file(content)
            if version:
                return version

    estimated = estimate_arnold_version(maya_version)
    if estimated:
        logger.debug("Arnold version for Maya %s estimated as %s", maya_version, estimated)
        return estimated
    return UNKNOWN