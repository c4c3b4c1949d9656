# yuntu-client

Client-side services for a cloud render farm. The package finds local
Autodesk Maya installations together with their renderers and plug-ins,
reads Maya scene files to learn what they need, and uploads log files to an
OSS object-storage bucket.

## Installation

```
pip install yuntu-client
```

Python 3.10 or newer is required. The only runtime dependency is `httpx`.

## Command line

```
yuntu-maya-detect
```

Scans the machine for Maya installations and prints them as JSON. Candidates
come from the Windows registry (on Windows), the usual install directories
(`Program Files/Autodesk`, `Program Files (x86)/Autodesk` and `Autodesk` on
every drive on Windows; a fixed list of `/Applications/Autodesk/...`,
`/usr/autodesk/...` and `/opt/autodesk/...` paths on macOS and Linux). A
candidate counts only if its Maya executable exists and a four-digit version
can be read from its path. When nothing is found this way on Windows, every
drive is searched for `bin/maya.exe` inside a `Maya<year>` directory. Each
installation is reported with its version, executable, renderers and
plug-ins.

```
yuntu-maya-detect --scene shots/sh010/lighting.ma
```

Prints, as JSON, the scene's Maya version, its renderer, the asset paths it
references and the assets that cannot be found.

## Using the library

### Whole-machine detection

```python
from yuntu_client.maya_detector import MayaDetector
from yuntu_client.maya_info import current_host

detector = MayaDetector(current_host(), None)
for maya in detector.detect_all_maya_versions():
    print(maya.version, maya.install_path)
    print("  renderers:", maya.renderers)
    print("  plug-ins:", maya.plugins)
```

`on_progress`, the second argument, may be a callable taking a percentage
and a message; it is called as the scan proceeds. Both arguments are
optional: without a host, `current_host()` is used.

- `MayaDetector.detect_maya_at_path(install_path)` describes one install
  directory as a `MayaSoftwareInfo`.
- `MayaDetector.detect_renderers(info)` returns `RendererInfo` records.
- `MayaDetector.detect_plugins(info)` returns plug-in names tagged with how
  they were found: `[已加载]`, `[暴力搜索找到]`, `[已注册，但文件未找到]` or
  `[扫描发现]`.
- `MayaDetector.get_all_maya_plugins(version)` collects renderer plug-ins
  from `pluginPrefs.mel` and the known plug-in directories.

`yuntu_client.maya_info.HostEnvironment` describes the machine being
searched (platform, home directory, drives, environment), so a detector can
be pointed at a prepared directory tree instead of the real system.

### Finding installations and renderers

`yuntu_client.maya_search` holds the lower-level searches:
`scan_common_install_paths`, `is_valid_maya_install`,
`brute_force_search_maya`, `brute_force_search_plugin`, `detect_arnold`,
`detect_vray` and `detect_redshift`. The brute-force searches only run on
Windows hosts and return an empty list elsewhere.

### Scene inspection

```python
from yuntu_client.maya_scene import (
    detect_missing_assets,
    extract_maya_version_from_scene,
    extract_renderer_from_scene,
    scan_scene_assets,
)

scene = "shots/sh010/lighting.ma"
print(extract_maya_version_from_scene(scene))   # e.g. "2024"
print(extract_renderer_from_scene(scene))       # e.g. "Arnold"
print(scan_scene_assets(scene))                 # textures, IES profiles, caches
print(detect_missing_assets(scene))             # assets that cannot be found
```

ASCII scenes (`.ma`) are read up to their first 10,000 lines; of binary
scenes (`.mb`) only the first 1,024 bytes are inspected. The renderer is
"Arnold", "V-Ray", "Redshift" or "RenderMan" when the scene mentions it,
"Maya Software" otherwise, and an empty string for files that are not
scenes. An asset counts as missing when it exists neither as written nor
relative to the scene's directory.

### Arnold version lookup

`yuntu_client.maya_versions.extract_arnold_version` works out the Arnold for
Maya version of a plug-in file from its path, from the `Version.h` and
`ai_version.h` headers in the plug-in's directory or the two above it, or
from `.mod` module files in directories you pass. If none of these give an
answer, `estimate_arnold_version` supplies the series that usually ships
with the Maya release (for example `"5.3.x"` for 2024), and failing that the
result is `"Unknown"`. The header parsers `parse_mtoa_header` and
`parse_arnold_header` work on text directly.

### Plug-in configuration

`yuntu_client.maya_plugins` reads Maya's own configuration:
`pluginPrefs.mel` (`parse_plugin_prefs`, `read_plugin_prefs`,
`parse_autoload_plugins`, `read_plugins_from_prefs`), `Maya.env`
(`read_maya_env_paths`), module files (`read_module_paths`) and the Maya
path environment variables (`plugin_paths_from_environment`).
`scan_all_plugin_directories` lists renderer-related plug-in files in given
directories, and `format_plugin_name` gives readable names for well-known
plug-ins.

### Uploading logs

`yuntu_client.log_uploader.LogUploader` takes an `OssConfig` and, optionally,
an `httpx.Client` (it creates and closes its own otherwise, and can be used
as a context manager). Each log file is sent with a signed `PUT` request to
`logs/<YYYY-MM-DD>/<file name>` in the configured bucket:

```python
from yuntu_client.log_uploader import LogUploader, OssConfig

config = OssConfig(
    access_key="placeholder",
    secret_key="secret",
    bucket="example-bucket",
    endpoint="oss.example.com",
)

with LogUploader(config) as uploader:
    for result in uploader.upload_all_logs(["logs/client.log"]):
        print(result.file_path, result.success, result.error)
```

Failures are not raised: each file yields an `UploadResult` with `success`
set to `False` and an `error` message (missing file, unreadable file,
incomplete configuration, or the HTTP error). `generate_oss_signature`
builds the request signature on its own, and `object_name_for` gives the
object name a file will be stored under.

## What this package does not do

It has no graphical interface, does not log in to a render service, submit
or track render jobs, or upload scene files. It never starts Maya: plug-in
information comes only from files, directories, environment variables and,
on Windows, the registry.

## Running the tests

```
pip install "yuntu-client[test]"
pytest
```