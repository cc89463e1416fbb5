"""
Object storage access for uploaded import files.

Files live in one S3-compatible bucket (Supabase Storage's S3 API, AWS S3,
MinIO, B2) under ``<org_id>/<file name>`` keys; the key is what an import job
stores as ``file_path``.
"""
import logging
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bulk_import.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    pass


class StorageUploadError(StorageError):
    pass


class StorageDownloadError(StorageError):
    """The source file of an import could not be fetched; fatal for the job."""
    pass


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "Unknown")
    return type(exc).__name__


def get_storage_client():
    """
    Build a boto3 S3 client for the import bucket.

    Raises:
        ValueError: when credentials or the bucket name are not configured
        StorageConnectionError: when boto3 cannot build the client
    """
    missing = [
        name for name, value in (
            ("STORAGE_ACCESS_KEY_ID", settings.storage_access_key_id),
            ("STORAGE_SECRET_ACCESS_KEY", settings.storage_secret_access_key),
            ("STORAGE_BUCKET_NAME", settings.storage_bucket_name),
        )
        if not value
    ]
    if missing:
        raise ValueError(f"Storage configuration is incomplete. Please set {', '.join(missing)}.")

    client_kwargs: Dict[str, Any] = {
        "aws_access_key_id": settings.storage_access_key_id,
        "aws_secret_access_key": settings.storage_secret_access_key,
        "config": Config(
            signature_version="s3v4",
            retries={"max_attempts": settings.storage_max_retries, "mode": "standard"},
        ),
    }
    # Empty endpoint means AWS itself
    if settings.storage_endpoint_url:
        client_kwargs["endpoint_url"] = settings.storage_endpoint_url
    if settings.storage_region:
        client_kwargs["region_name"] = settings.storage_region

    try:
        return boto3.client("s3", **client_kwargs)
    except (BotoCoreError, ValueError) as exc:
        logger.error("Failed to create storage client: %s", exc)
        raise StorageConnectionError(f"Failed to connect to storage: {exc}") from exc


def upload_file(file_content: bytes, file_name: str, folder: str = "uploads") -> Dict[str, Any]:
    """
    Store a CSV under ``<folder>/<file_name>``.

    Returns:
        ``{"file_name", "file_path", "size"}``; ``file_path`` is the value to
        put on the import job.
    """
    file_path = f"{folder}/{file_name}"
    try:
        get_storage_client().put_object(
            Bucket=settings.storage_bucket_name,
            Key=file_path,
            Body=file_content,
            ContentType="text/csv",
        )
    except (ClientError, BotoCoreError, StorageConnectionError) as exc:
        logger.error("Upload of %s failed (%s): %s", file_path, _error_code(exc), exc)
        raise StorageUploadError(f"Upload failed: {exc}") from exc

    logger.info("Uploaded %s (%d bytes)", file_path, len(file_content))
    return {
        "file_name": file_name,
        "file_path": file_path,
        "size": len(file_content),
    }


def download_file(file_path: str) -> bytes:
    """Fetch an uploaded file's bytes; raises StorageDownloadError on any failure."""
    try:
        response = get_storage_client().get_object(
            Bucket=settings.storage_bucket_name,
            Key=file_path,
        )
        return response["Body"].read()
    except ClientError as exc:
        if _error_code(exc) in ("NoSuchKey", "404"):
            raise StorageDownloadError(f"Failed to download file: file not found: {file_path}") from exc
        logger.error("Download of %s failed (%s): %s", file_path, _error_code(exc), exc)
        raise StorageDownloadError(f"Failed to download file: {exc}") from exc
    except (BotoCoreError, StorageConnectionError, ValueError) as exc:
        logger.error("Download of %s failed: %s", file_path, exc)
        raise StorageDownloadError(f"Failed to download file: {exc}") from exc


def delete_file(file_path: str) -> bool:
    """
    Remove an uploaded file once its import finished.

    Returns:
        True if the object was deleted. Failures are logged and reported as
        False, never raised.
    """
    try:
        get_storage_client().delete_object(
            Bucket=settings.storage_bucket_name,
            Key=file_path,
        )
    except Exception as exc:
        logger.error("Error deleting %s from storage (%s): %s", file_path, _error_code(exc), exc)
        return False
    return True
