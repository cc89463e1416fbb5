import io
import uuid

import pytest
from botocore.exceptions import ClientError

from bulk_import.core.config import settings
from bulk_import.integrations import storage
from bulk_import.integrations.storage import (
    StorageDownloadError,
    delete_file,
    download_file,
    upload_file,
)


class FakeS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def delete_object(self, Bucket, Key):
        if Key.startswith("locked/"):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")
        self.objects.pop((Bucket, Key), None)


@pytest.fixture
def fake_client(monkeypatch):
    client = FakeS3Client()
    monkeypatch.setattr(storage, "get_storage_client", lambda: client)
    return client


def test_upload_download_delete(fake_client):
    result = upload_file(b"first_name\nAlice\n", "contacts.csv", folder="org-1")

    assert result == {"file_name": "contacts.csv", "file_path": "org-1/contacts.csv", "size": 17}
    assert download_file("org-1/contacts.csv") == b"first_name\nAlice\n"
    assert delete_file("org-1/contacts.csv") is True
    assert fake_client.objects == {}


def test_missing_object_raises_download_error(fake_client):
    with pytest.raises(StorageDownloadError, match="Failed to download file"):
        download_file("org-1/missing.csv")


def test_delete_failure_returns_false(fake_client):
    assert delete_file("locked/contacts.csv") is False


def test_incomplete_configuration(monkeypatch):
    monkeypatch.setattr(settings, "storage_access_key_id", "")
    with pytest.raises(ValueError, match="Storage configuration is incomplete"):
        storage.get_storage_client()


@pytest.mark.integration
def test_storage_upload_and_download_roundtrip():
    """
    Perform a simple upload/download cycle against S3-compatible storage.

    This test skips automatically if storage credentials are not configured in the environment.
    """
    if not all(
        [
            settings.storage_access_key_id,
            settings.storage_secret_access_key,
            settings.storage_bucket_name,
        ]
    ):
        pytest.skip("Storage credentials not configured; skipping live storage test")

    data = b"first_name,email\nAlice,a@x.com\n"
    unique_name = f"test-{uuid.uuid4().hex}.csv"

    upload_result = upload_file(data, unique_name, folder="tests")
    file_path = upload_result["file_path"]

    try:
        assert download_file(file_path) == data
    finally:
        delete_file(file_path)
