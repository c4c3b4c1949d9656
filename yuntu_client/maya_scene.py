"""Read Maya scene files and pull out version, renderer and asset references."""

from __future__ import annotations

import re
from pathlib import Path

ASCII_LINE_LIMIT = 10000
BINARY_HEADER_LIMIT = 1024

_PATH_VERSION_RE = re.compile(r"Maya\s?(\d{4})", re.IGNORECASE)
_SCENE_VERSION_RE = re.compile(r"Maya\s+(\d{4})")
_ASSET_PATTERNS = (
    re.compile(r'fileTextureName.*?"([^"]+)"'),
    re.compile(r'iesProfile.*?"([^"]+)"'),
    re.compile(r'cacheFile.*?"([^"]+)"'),
)
_RENDERER_MARKERS = (
    (("mtoa", "aistandard"), "Arnold"),
    (("vray",), "V-Ray"),
    (("redshift",), "Redshift"),
    (("renderman",), "RenderMan"),
)
DEFAULT_RENDERER = "Maya Software"


def extract_version_from_path(path: str) -> str:
    """Four-digit Maya version named in a path ("Maya2024", "Maya 2024"), or ""."""
    match = _PATH_VERSION_RE.search(path)
    return match.group(1) if match else ""


def read_ascii_scene(path: str | Path, max_lines: int = ASCII_LINE_LIMIT) -> str:
    """Return the first lines of an ASCII scene, each ending in a newline; "" if unreadable."""
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            lines = []
            for line in handle:
                if len(lines) >= max_lines:
                    break
                lines.append(line.rstrip("\r\n") + "\n")
    except OSError:
        return ""
    return "".join(lines)


def read_binary_scene(path: str | Path, max_bytes: int = BINARY_HEADER_LIMIT) -> str:
    """Return the header of a binary scene decoded as Latin-1; "" if unreadable."""
    try:
        with open(path, "rb") as handle:
            header = handle.read(max_bytes)
    except OSError:
        return ""
    return header.decode("latin-1")


def _suffix(path: str | Path) -> str:
    return Path(path).suffix.lower().lstrip(".")


def read_scene(path: str | Path) -> str | None:
    """Text of a .ma or .mb scene; None when the file is neither."""
    suffix = _suffix(path)
    if suffix == "ma":
        return read_ascii_scene(path)
    if suffix == "mb":
        return read_binary_scene(path)
    return None


def extract_maya_version_from_scene(path: str | Path) -> str:
    """Maya version written in the scene header, or "" if none is found."""
    content = read_scene(path)
    if content is None:
        return ""
    match = _SCENE_VERSION_RE.search(content)
    return match.group(1) if match else ""


def extract_renderer_from_scene(path: str | Path) -> str:
    """Renderer the scene appears to use; "" for files that are not scenes."""
    content = read_scene(path)
    if content is None:
        return ""
    lowered = content.lower()
    for markers, renderer in _RENDERER_MARKERS:
        if any(marker in lowered for marker in markers):
            return renderer
    return DEFAULT_RENDERER


def scan_scene_assets(path: str | Path) -> list[str]:
    """Texture, IES and cache file paths referenced by a scene, without duplicates."""
    if _suffix(path) == "ma":
        content = read_ascii_scene(path)
    else:
        content = read_binary_scene(path)
    found = (
        match.group(1)
        for pattern in _ASSET_PATTERNS
        for match in pattern.finditer(content)
        if match.group(1)
    )
    return list(dict.fromkeys(found))


def detect_missing_assets(path: str | Path) -> list[str]:
    """Referenced assets that exist neither as given nor relative to the scene."""
    scene_dir = Path(path).resolve().parent
    return [
        asset
        for asset in scan_scene_assets(path)
        if not Path(asset).exists() and not (scene_dir / asset).exists()
    ]