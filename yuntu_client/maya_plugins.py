"""Find Maya plug-ins through preference files, Maya.env, modules and directories."""

from __future__ import annotations

import fnmatch
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

from yuntu_client.maya_info import Platform, RendererInfo, plugin_globs
from yuntu_client.maya_versions import UNKNOWN, extract_arnold_version

logger = logging.getLogger(__name__)

_AUTOLOAD_NAME_RE = re.compile(r'autoLoadPlugin\([^,]*,\s*"([^"]+)"')
_PLUGIN_INFO_RE = re.compile(r'pluginInfo.*?-pluginPath\s+"([^"]+)".*?"([^"]+)"')
_AUTOLOAD_FULL_RE = re.compile(
    r'autoLoadPlugin\(\s*"([^"]*)"\s*,\s*"([^"]+)"\s*,\s*"([^"]+)"\s*\)'
)

_PREFS_RENDERER_MARKERS = ("mtoa", "vray", "redshift", "arnold")
_SCAN_MARKERS = ("mtoa", "vray", "redshift", "arnold", "yeti", "miarmy")
_ARNOLD_MARKERS = ("mtoa", "arnold")

_FORMATTED_NAMES = (
    ("mtoa", "Arnold (mtoa)"),
    ("vray", "V-Ray"),
    ("redshift", "Redshift"),
    ("miarmy", "Miarmy (群集动画)"),
    ("yeti", "Yeti (毛发系统)"),
    ("xgen", "XGen (毛发)"),
    ("bifrost", "Bifrost (流体)"),
    ("mash", "MASH (运动图形)"),
)

_ENVIRONMENT_PATH_VARS = (
    "MAYA_PLUG_IN_PATH",
    "MAYA_MODULE_PATH",
    "MAYA_SCRIPT_PATH",
    "MAYA_PRESET_PATH",
    "MAYA_SHELF_PATH",
)


def _contains_any(name: str, markers: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in markers)


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def parse_plugin_prefs(content: str) -> dict[str, str]:
    """Map plug-in name to plug-in directory from the text of pluginPrefs.mel.

    Plug-ins registered through autoLoadPlugin carry no directory and map to "";
    pluginInfo -pluginPath entries give one and take precedence.
    """
    plugins: dict[str, str] = {}
    for match in _AUTOLOAD_NAME_RE.finditer(content):
        plugins.setdefault(match.group(1), "")
    for match in _PLUGIN_INFO_RE.finditer(content):
        plugins[match.group(2)] = match.group(1)
    return plugins


def _prefs_candidates(maya_version: str, home: Path) -> list[Path]:
    return [
        home / "Documents" / "maya" / maya_version / "prefs" / "pluginPrefs.mel",
        home / "My Documents" / "maya" / maya_version / "prefs" / "pluginPrefs.mel",
    ]


def read_plugin_prefs(maya_version: str, home: str | Path) -> dict[str, str]:
    """Registered plug-ins from the user's pluginPrefs.mel; empty if there is none."""
    for candidate in _prefs_candidates(maya_version, Path(home)):
        if candidate.exists():
            content = _read_text(candidate)
            if content is None:
                logger.debug("cannot open %s", candidate)
                return {}
            return parse_plugin_prefs(content)
    logger.debug("no pluginPrefs.mel found for Maya %s", maya_version)
    return {}


def parse_autoload_plugins(content: str) -> list[tuple[str, str, str]]:
    """(path, name, display name) of every autoLoadPlugin call in pluginPrefs.mel text."""
    return [
        (m.group(1), m.group(2), m.group(3)) for m in _AUTOLOAD_FULL_RE.finditer(content)
    ]


def read_plugins_from_prefs(
    maya_version: str,
    home: str | Path,
    maya_root: str | Path | None = None,
) -> list[RendererInfo]:
    """Renderer plug-ins auto-loaded according to pluginPrefs.mel.

    A plug-in listed without a directory is looked for as <name>.mll in the
    plug-ins directory of the Maya installation at ``maya_root``.
    """
    prefs = Path(home) / "Documents" / "maya" / maya_version / "prefs" / "pluginPrefs.mel"
    content = _read_text(prefs)
    if content is None:
        logger.debug("cannot open %s", prefs)
        return []
    root = (
        Path(maya_root)
        if maya_root is not None
        else Path(f"C:/Program Files/Autodesk/Maya{maya_version}")
    )

    renderers = []
    for plugin_path, name, display_name in parse_autoload_plugins(content):
        if not _contains_any(name, _PREFS_RENDERER_MARKERS):
            continue
        renderer = RendererInfo(
            name=display_name, version=UNKNOWN, plugin_path=plugin_path, is_loaded=True
        )
        if not plugin_path:
            candidate = root / "plug-ins" / f"{name}.mll"
            if candidate.exists():
                renderer.plugin_path = str(candidate)
        renderers.append(renderer)
    return renderers


def read_maya_env_paths(maya_version: str, home: str | Path) -> list[str]:
    """Existing directories listed in PATH-like settings of the user's Maya.env."""
    env_file = Path(home) / "Documents" / "maya" / maya_version / "Maya.env"
    content = _read_text(env_file)
    if content is None:
        return []

    paths = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("//"):
            continue
        if "PATH" not in line:
            continue
        parts = line.split("=")
        if len(parts) < 2:
            continue
        for entry in parts[1].strip().split(";"):
            clean = entry.strip()
            if clean and Path(clean).is_dir():
                paths.append(clean)
    return paths


def _sorted_entries(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda p: p.name.lower())
    except OSError:
        return []


def _module_root(mod_file: Path, search_path: Path, last_part: str) -> str:
    mod_dir = mod_file.absolute().parent
    if last_part in ("../", ".."):
        return mod_dir.parent.as_posix()
    if last_part.startswith("./"):
        return f"{mod_dir.as_posix()}/{last_part[2:]}"
    if Path(last_part).is_dir():
        return last_part
    relative = f"{search_path.as_posix()}/{last_part}"
    if Path(relative).is_dir():
        return relative
    return ""


def _paths_from_module_file(mod_file: Path, search_path: Path) -> list[str]:
    content = _read_text(mod_file)
    if content is None:
        return []
    paths = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or not line.startswith("+"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        module_path = _module_root(mod_file, search_path, parts[-1])
        if not module_path or not Path(module_path).is_dir():
            continue
        for sub in ("/plug-ins", "/bin/plug-ins", ""):
            candidate = module_path + sub
            if Path(candidate).is_dir():
                paths.append(candidate)
        paths.append(module_path)
    return paths


def read_module_paths(module_dirs: Iterable[str | Path]) -> list[str]:
    """Plug-in directories declared by module files found under the given directories.

    Each sub-directory of a module directory is searched, along with its
    Contents and Contents/modules folders, for .mod and .xml files whose
    "+" lines name a module root.
    """
    paths: list[str] = []
    for module_dir in dict.fromkeys(Path(d) for d in module_dirs):
        if not module_dir.is_dir():
            continue
        for subdir in _sorted_entries(module_dir):
            if not subdir.is_dir():
                continue
            for search_path in (subdir, subdir / "Contents", subdir / "Contents" / "modules"):
                if not search_path.is_dir():
                    continue
                for mod_file in _sorted_entries(search_path):
                    if mod_file.is_file() and mod_file.suffix.lower() in (".mod", ".xml"):
                        paths.extend(_paths_from_module_file(mod_file, search_path))
    return paths


def plugin_paths_from_environment(
    environ: Mapping[str, str], platform: Platform
) -> list[str]:
    """Existing directories named by Maya's path variables and MAYA_LOCATION."""
    separator = ";" if platform is Platform.WINDOWS else ":"
    paths = []
    for var in _ENVIRONMENT_PATH_VARS:
        value = environ.get(var, "")
        for entry in value.split(separator) if value else ():
            clean = entry.strip()
            if clean and Path(clean).is_dir():
                paths.append(clean)
    location = environ.get("MAYA_LOCATION", "")
    if location:
        plugins = f"{location}/plug-ins"
        if Path(plugins).is_dir():
            paths.append(plugins)
    return list(dict.fromkeys(paths))


def format_plugin_name(name: str) -> str:
    """Readable name for well-known plug-ins; other names are returned unchanged."""
    lowered = name.lower()
    for marker, formatted in _FORMATTED_NAMES:
        if marker in lowered:
            return formatted
    return name


def _matches_any(file_name: str, patterns: Iterable[str]) -> bool:
    lowered = file_name.lower()
    return any(fnmatch.fnmatchcase(lowered, pattern.lower()) for pattern in patterns)


def scan_all_plugin_directories(
    maya_version: str,
    directories: Iterable[str | Path],
    platform: Platform,
) -> list[RendererInfo]:
    """Renderer-related plug-in files in the given directories, none marked loaded.

    Arnold plug-ins have their version worked out; the others stay "Unknown".
    """
    patterns = plugin_globs(platform)
    renderers = []
    for directory in dict.fromkeys(str(d) for d in directories):
        folder = Path(directory)
        if not folder.is_dir():
            continue
        for entry in _sorted_entries(folder):
            if not entry.is_file() or not _matches_any(entry.name, patterns):
                continue
            base_name = entry.name.split(".")[0]
            if not _contains_any(base_name, _SCAN_MARKERS):
                continue
            plugin_path = str(entry.absolute())
            version = UNKNOWN
            if _contains_any(base_name, _ARNOLD_MARKERS):
                version = extract_arnold_version(plugin_path, maya_version)
            renderers.append(
                RendererInfo(
                    name=base_name,
                    version=version,
                    plugin_path=plugin_path,
                    is_loaded=False,
                )
            )
    return renderers