import base64
from datetime import date
from email.utils import parsedate_to_datetime

import httpx
import pytest

from yuntu_client.log_uploader import (
    LogUploader,
    OssConfig,
    UploadResult,
    generate_oss_signature,
    object_name_for,
)

CONFIG = OssConfig(
    access_key="placeholder",
    secret_key="secret",
    bucket="bucket",
    endpoint="oss.example.com",
)


def _uploader(status=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, text="body")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return LogUploader(CONFIG, client)


def test_signature_is_sha1_sized_base64():
    sig = generate_oss_signature("secret", "PUT", "", "text/plain", "d", "", "/b/o")
    assert len(base64.b64decode(sig)) == 20


def test_signature_deterministic_and_sensitive():
    args = ("secret", "PUT", "", "text/plain", "d", "", "/b/o")
    assert generate_oss_signature(*args) == generate_oss_signature(*args)
    other = ("secret", "PUT", "", "text/plain", "d", "", "/b/other")
    assert generate_oss_signature(*args) != generate_oss_signature(*other)


def test_object_name_for():
    assert object_name_for("/var/log/app.log", date(2024, 1, 2)) == "logs/2024-01-02/app.log"


def test_upload_success(tmp_path):
    log = tmp_path / "app.log"
    log.write_bytes(b"hello log")
    seen = []
    result = _uploader(seen=seen).upload_log(log)

    assert result.success is True
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "PUT"
    assert request.content == b"hello log"
    assert request.headers["Content-Type"] == "text/plain"
    object_name = request.url.path.lstrip("/")
    assert object_name.startswith("logs/") and object_name.endswith("/app.log")
    assert request.url.host == "bucket.oss.example.com"
    assert result.url == str(request.url)

    request_date = request.headers["Date"]
    assert request_date.endswith("GMT")
    assert parsedate_to_datetime(request_date).year >= 2024
    expected = generate_oss_signature(
        "secret", "PUT", "", "text/plain", request_date, "", f"/bucket/{object_name}"
    )
    assert request.headers["Authorization"] == f"OSS placeholder:{expected}"


def test_upload_http_error(tmp_path):
    log = tmp_path / "app.log"
    log.write_text("x")
    result = _uploader(status=403).upload_log(log)
    assert result.success is False
    assert "403" in result.error


def test_missing_file(tmp_path):
    seen = []
    result = _uploader(seen=seen).upload_log(tmp_path / "nope.log")
    assert result == UploadResult(str(tmp_path / "nope.log"), False, error="文件不存在")
    assert seen == []


def test_unreadable_file(tmp_path):
    result = _uploader().upload_log(tmp_path)
    assert result.success is False
    assert result.error == "无法打开文件"


def test_incomplete_config(tmp_path):
    log = tmp_path / "app.log"
    log.write_text("x")
    seen = []
    client = httpx.Client(transport=httpx.MockTransport(lambda r: seen.append(r)))
    config = OssConfig(access_key="placeholder", secret_key="secret", bucket="", endpoint="e")
    result = LogUploader(config, client).upload_log(log)
    assert result.error == "OSS 配置不完整"
    assert seen == []


def test_upload_all_empty():
    assert _uploader().upload_all_logs([]) == []


def test_upload_all_keeps_order(tmp_path):
    first = tmp_path / "a.log"
    first.write_text("a")
    missing = tmp_path / "b.log"
    with _uploader() as uploader:
        results = uploader.upload_all_logs([first, missing])
    assert [r.file_path for r in results] == [str(first), str(missing)]
    assert [r.success for r in results] == [True, False]


@pytest.mark.parametrize("field", ["access_key", "bucket", "endpoint"])
def test_config_completeness(field):
    values = {"access_key": "placeholder", "secret_key": "secret", "bucket": "b", "endpoint": "e"}
    assert OssConfig(**values).is_complete is True
    values[field] = ""
    assert OssConfig(**values).is_complete is False