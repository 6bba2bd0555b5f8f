"""Store generated forms: local directory (dev) or an S3-compatible bucket."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .generator import content_hash

HASH_METADATA_KEY = "content-sha256"
CONTENT_TYPE = "text/html; charset=utf-8"
CACHE_CONTROL = "max-age=3600"
DEFAULT_FORMS_DIR = "static/forms"


class DeployError(Exception):
    """Upload or delete against the storage target failed."""


@dataclass
class DeployResult:
    url: str
    storage_url: str
    environment: str
    content_hash: str
    unchanged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "storage_url": self.storage_url,
            "environment": self.environment,
            "content_hash": self.content_hash,
            "unchanged": self.unchanged,
        }


def _deploy_target() -> str:
    return os.environ.get("DEPLOY_TARGET", "local").strip().lower() or "local"


def _environment() -> str:
    return "prod" if os.environ.get("APP_ENV", "local").strip().lower() == "production" else "staging"


def _forms_dir() -> Path:
    return Path(os.environ.get("STATIC_FORMS_DIR", DEFAULT_FORMS_DIR))


def _public_base_url() -> str:
    return os.environ.get("PUBLIC_BASE_URL", "").rstrip("/")


def _bucket_name() -> str:
    bucket = os.environ.get("FORMS_BUCKET_NAME")
    if not bucket:
        raise ValueError("FORMS_BUCKET_NAME must be set when DEPLOY_TARGET=s3")
    return bucket


def _region() -> str:
    return os.environ.get("AWS_REGION", "ap-northeast-1")


def _client():
    endpoint = os.environ.get("S3_ENDPOINT_URL")
    kwargs = {"region_name": _region()}
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    return boto3.client("s3", config=Config(retries={"mode": "standard", "max_attempts": 3}), **kwargs)


def object_key(store_id: str, form_id: str) -> str:
    return f"{_environment()}/forms/{store_id}/{form_id}/config/current.html"


def _bucket_url(bucket: str, key: str) -> str:
    endpoint = os.environ.get("S3_ENDPOINT_URL")
    if endpoint:
        return f"{endpoint.rstrip('/')}/{bucket}/{key}"
    return f"https://{bucket}.s3.{_region()}.amazonaws.com/{key}"


def _stored_hash(client, bucket: str, key: str) -> str | None:
    try:
        head = client.head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code in ("404", "NoSuchKey", "NotFound"):
            return None
        raise
    return (head.get("Metadata") or {}).get(HASH_METADATA_KEY)


def _local_path(store_id: str, form_id: str) -> Path:
    for part in (store_id, form_id):
        if not part or part in (".", "..") or "/" in part or "\\" in part:
            raise ValueError(f"invalid path segment {part!r}")
    return _forms_dir() / store_id / f"{form_id}.html"


def _deploy_local(store_id: str, form_id: str, html: str, digest: str) -> DeployResult:
    path = _local_path(store_id, form_id)
    unchanged = path.exists() and content_hash(path.read_text(encoding="utf-8")) == digest
    if not unchanged:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding="utf-8")
        except OSError as e:
            raise DeployError(f"could not write {path}: {e}") from e
    base = _public_base_url()
    url = f"{base}/{store_id}/{form_id}.html" if base else path.resolve().as_uri()
    print(f"[deployer.deploy_form] local store={store_id} form={form_id} unchanged={unchanged} path={path}", file=sys.stderr)
    return DeployResult(url=url, storage_url=str(path), environment="local", content_hash=digest, unchanged=unchanged)


def _deploy_s3(store_id: str, form_id: str, html: str, digest: str) -> DeployResult:
    bucket = _bucket_name()
    key = object_key(store_id, form_id)
    client = _client()
    try:
        unchanged = _stored_hash(client, bucket, key) == digest
        if not unchanged:
            client.put_object(
                Bucket=bucket,
                Key=key,
                Body=html.encode("utf-8"),
                ContentType=CONTENT_TYPE,
                CacheControl=CACHE_CONTROL,
                Metadata={HASH_METADATA_KEY: digest},
            )
    except (ClientError, BotoCoreError) as e:
        raise DeployError(f"upload to s3://{bucket}/{key} failed: {e}") from e

    storage_url = _bucket_url(bucket, key)
    base = _public_base_url()
    url = f"{base}/{key}" if base else storage_url
    print(f"[deployer.deploy_form] s3 store={store_id} form={form_id} unchanged={unchanged} key={key}", file=sys.stderr)
    return DeployResult(url=url, storage_url=storage_url, environment=_environment(), content_hash=digest, unchanged=unchanged)


def deploy_form(store_id: str, form_id: str, html: str) -> DeployResult:
    """
    Publish one generated form. Re-deploying identical content skips the write and
    reports unchanged=True. Raises DeployError on storage failures and ValueError when
    the s3 target is selected without a bucket configured.
    """
    digest = content_hash(html)
    if _deploy_target() == "s3":
        return _deploy_s3(store_id, form_id, html, digest)
    return _deploy_local(store_id, form_id, html, digest)


def delete_form(store_id: str, form_id: str) -> bool:
    """Remove a published form. Returns False if nothing was stored (local target only)."""
    if _deploy_target() == "s3":
        bucket = _bucket_name()
        key = object_key(store_id, form_id)
        try:
            _client().delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise DeployError(f"delete of s3://{bucket}/{key} failed: {e}") from e
        print(f"[deployer.delete_form] s3 store={store_id} form={form_id} key={key}", file=sys.stderr)
        return True

    path = _local_path(store_id, form_id)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as e:
        raise DeployError(f"could not delete {path}: {e}") from e
    print(f"[deployer.delete_form] local store={store_id} form={form_id} path={path}", file=sys.stderr)
    return True
