import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from application.ports.storage import PermanentStorageError, TransientStorageError
from domain.upload import CompletedPart, UploadSession
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TransientError,
)
from infrastructure.external.storage.config import StorageConfig
from infrastructure.external.storage.providers.s3 import S3Provider


class FakeS3Client:
    """Stands in for a boto3 S3 client; records keyword arguments."""

    def __init__(self, location="https://media.s3.amazonaws.com/media/a.png", error=None):
        self.calls = []
        self.location = location
        self.error = error

    def _record(self, name, kwargs):
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error

    def create_multipart_upload(self, **kwargs):
        self._record("create_multipart_upload", kwargs)
        return {"Bucket": kwargs["Bucket"], "Key": kwargs["Key"], "UploadId": "up-1"}

    def upload_part(self, **kwargs):
        self._record("upload_part", kwargs)
        return {"ETag": f'"etag-{kwargs["PartNumber"]}"'}

    def complete_multipart_upload(self, **kwargs):
        self._record("complete_multipart_upload", kwargs)
        return {"Location": self.location} if self.location else {}

    def abort_multipart_upload(self, **kwargs):
        self._record("abort_multipart_upload", kwargs)
        return {}


def _client_error(code, operation="UploadPart"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _provider(client, **overrides):
    return S3Provider(client, StorageConfig(type="s3", bucket="media", region="eu-west-1", **overrides))


@pytest.mark.asyncio
async def test_multipart_calls_reach_client():
    client = FakeS3Client()
    adapter = StorageProviderPortAdapter(_provider(client))

    session = await adapter.initiate_upload("media", "media/a.png", "image/png")
    etag = await adapter.upload_part(session, 1, b"abc")
    location = await adapter.complete_upload(session, [CompletedPart(1, etag)])

    assert session.upload_id == "up-1"
    assert etag == '"etag-1"'
    assert location == "https://media.s3.amazonaws.com/media/a.png"
    assert client.calls == [
        ("create_multipart_upload", {"Bucket": "media", "Key": "media/a.png", "ContentType": "image/png"}),
        (
            "upload_part",
            {
                "Bucket": "media",
                "Key": "media/a.png",
                "UploadId": "up-1",
                "PartNumber": 1,
                "ContentLength": 3,
                "Body": b"abc",
            },
        ),
        (
            "complete_multipart_upload",
            {
                "Bucket": "media",
                "Key": "media/a.png",
                "UploadId": "up-1",
                "MultipartUpload": {"Parts": [{"PartNumber": 1, "ETag": '"etag-1"'}]},
            },
        ),
    ]


@pytest.mark.asyncio
async def test_abort_sends_upload_id():
    client = FakeS3Client()
    adapter = StorageProviderPortAdapter(_provider(client))

    await adapter.abort_upload(UploadSession(bucket="media", key="media/a.png", upload_id="up-9"))

    assert client.calls == [
        ("abort_multipart_upload", {"Bucket": "media", "Key": "media/a.png", "UploadId": "up-9"}),
    ]


@pytest.mark.asyncio
async def test_location_falls_back_to_public_url():
    provider = _provider(FakeS3Client(location=None), public_base_url="https://cdn.example.com")
    location = await provider.multipart_upload_complete("up-1", "media/a.png", [])
    assert location == "https://cdn.example.com/media/a.png"


@pytest.mark.asyncio
async def test_location_falls_back_to_s3_uri():
    provider = _provider(FakeS3Client(location=None))
    location = await provider.multipart_upload_complete("up-1", "media/a.png", [])
    assert location == "s3://media/media/a.png"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,expected",
    [
        (_client_error("AccessDenied"), PermissionDeniedError),
        (_client_error("NoSuchUpload"), NotFoundError),
        (_client_error("SlowDown"), TransientError),
        (_client_error("InternalError"), TransientError),
        (_client_error("EntityTooSmall"), StorageError),
        (NoCredentialsError(), PermissionDeniedError),
        (EndpointConnectionError(endpoint_url="https://s3.example.com"), TransientError),
    ],
)
async def test_client_errors_mapped(error, expected):
    provider = _provider(FakeS3Client(error=error))
    with pytest.raises(expected):
        await provider.multipart_upload_part("media/a.png", "up-1", 1, b"x")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code,expected",
    [
        ("AccessDenied", PermanentStorageError),
        ("NoSuchUpload", PermanentStorageError),
        ("SlowDown", TransientStorageError),
        ("EntityTooSmall", TransientStorageError),
    ],
)
async def test_adapter_classifies_errors(code, expected):
    adapter = StorageProviderPortAdapter(_provider(FakeS3Client(error=_client_error(code))))
    session = UploadSession(bucket="media", key="media/a.png", upload_id="up-1")

    with pytest.raises(expected) as exc_info:
        await adapter.upload_part(session, 1, b"x")
    assert exc_info.value.operation == "upload_part"


class _FailingProvider:
    bucket = "media"

    def __init__(self, error):
        self.error = error

    async def multipart_upload_start(self, key, content_type=None, *, bucket=None):
        raise self.error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,expected",
    [
        (ConfigurationError("bucket missing"), PermanentStorageError),
        (PermissionDeniedError("denied"), PermanentStorageError),
        (NotFoundError("no bucket"), PermanentStorageError),
        (TransientError("timeout"), TransientStorageError),
        (StorageError("odd"), TransientStorageError),
        (OSError("disk"), TransientStorageError),
    ],
)
async def test_provider_errors_classified_for_retry(error, expected):
    adapter = StorageProviderPortAdapter(_FailingProvider(error))

    with pytest.raises(expected) as exc_info:
        await adapter.initiate_upload("media", "media/a.png", "image/png")
    assert exc_info.value.operation == "initiate"
    assert exc_info.value.__cause__ is error
