"""Upload local log files straight to an OSS bucket."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from email.utils import formatdate
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/plain"


@dataclass(frozen=True)
class OssConfig:
    """Credentials and location of the OSS bucket."""

    access_key: str
    secret_key: str
    bucket: str
    endpoint: str

    @property
    def is_complete(self) -> bool:
        return bool(self.access_key and self.bucket and self.endpoint)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of uploading one log file."""

    file_path: str
    success: bool
    url: str | None = None
    error: str | None = None


def generate_oss_signature(
    secret_key: str,
    verb: str,
    content_md5: str,
    content_type: str,
    date: str,
    oss_headers: str,
    resource: str,
) -> str:
    """Base64 HMAC-SHA1 signature of an OSS request."""
    string_to_sign = (
        f"{verb}\n{content_md5}\n{content_type}\n{date}\n{oss_headers}{resource}"
    )
    digest = hmac.new(
        secret_key.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def object_name_for(file_path: str | Path, today: date) -> str:
    """OSS object name for a log file: logs/YYYY-MM-DD/<file name>."""
    return f"logs/{today:%Y-%m-%d}/{Path(file_path).name}"


class LogUploader:
    """Puts log files into OSS, one request per file."""

    def __init__(self, config: OssConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=30.0)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> LogUploader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def upload_log(self, log_file_path: str | Path) -> UploadResult:
        """Upload one log file and report how it went."""
        path = Path(log_file_path)
        if not path.exists():
            logger.warning("log file does not exist: %s", path)
            return UploadResult(str(log_file_path), False, error="文件不存在")
        object_name = object_name_for(path, date.today())
        logger.info("uploading log %s -> %s", path.name, object_name)
        return self._upload_to_oss(str(log_file_path), path, object_name)

    def upload_all_logs(self, log_file_paths: Iterable[str | Path]) -> list[UploadResult]:
        """Upload every given log file, in order; returns one result per file."""
        paths = list(log_file_paths)
        if not paths:
            logger.info("no log files to upload")
            return []
        logger.info("uploading %d log files", len(paths))
        return [self.upload_log(p) for p in paths]

    def _upload_to_oss(self, label: str, path: Path, object_name: str) -> UploadResult:
        try:
            data = path.read_bytes()
        except OSError:
            logger.warning("cannot open file: %s", path)
            return UploadResult(label, False, error="无法打开文件")

        config = self._config
        if not config.is_complete:
            logger.warning("OSS configuration incomplete")
            return UploadResult(label, False, error="OSS 配置不完整")

        url = f"https://{config.bucket}.{config.endpoint}/{object_name}"
        request_date = formatdate(usegmt=True)
        resource = f"/{config.bucket}/{object_name}"
        signature = generate_oss_signature(
            config.secret_key, "PUT", "", CONTENT_TYPE, request_date, "", resource
        )
        headers = {
            "Content-Type": CONTENT_TYPE,
            "Date": request_date,
            "Authorization": f"OSS {config.access_key}:{signature}",
        }

        try:
            response = self._client.put(url, content=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "log upload failed: %s, error: %s, response: %s",
                label, exc, exc.response.text,
            )
            return UploadResult(label, False, url=url, error=str(exc))
        except httpx.HTTPError as exc:
            logger.error("log upload failed: %s, error: %s", label, exc)
            return UploadResult(label, False, url=url, error=str(exc))

        logger.info("log uploaded: %s", label)
        return UploadResult(label, True, url=url)