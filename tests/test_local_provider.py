import pytest

from application.ports.storage import PermanentStorageError
from application.services.upload_service import UploadOrchestrator
from domain.upload import UploadRequest, UploadSession
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import NotFoundError, StorageError
from infrastructure.external.storage.config import StorageConfig
from infrastructure.external.storage.providers.local import LocalProvider


@pytest.fixture
def provider(tmp_path):
    return LocalProvider(StorageConfig(type="local", bucket="local", local_base_path=str(tmp_path)))


@pytest.mark.asyncio
async def test_multipart_roundtrip_writes_concatenated_object(provider, tmp_path):
    upload = await provider.multipart_upload_start("media/a.bin", "image/png")
    e1 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"hello ")
    e2 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 2, b"world")

    location = await provider.multipart_upload_complete(
        upload.upload_id,
        "media/a.bin",
        [{"PartNumber": 1, "ETag": e1}, {"PartNumber": 2, "ETag": e2}],
    )

    assert (tmp_path / "media" / "a.bin").read_bytes() == b"hello world"
    assert location == str(tmp_path / "media" / "a.bin")
    assert not any((tmp_path / ".uploads").iterdir())


@pytest.mark.asyncio
async def test_public_base_url_used_as_location(tmp_path):
    provider = LocalProvider(
        StorageConfig(local_base_path=str(tmp_path), public_base_url="https://cdn.example.com/")
    )
    upload = await provider.multipart_upload_start("media/a.bin")
    etag = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"x")

    location = await provider.multipart_upload_complete(
        upload.upload_id, "media/a.bin", [{"PartNumber": 1, "ETag": etag}]
    )

    assert location == "https://cdn.example.com/media/a.bin"


@pytest.mark.asyncio
async def test_abort_discards_staged_parts(provider, tmp_path):
    upload = await provider.multipart_upload_start("media/a.bin")
    await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"data")

    await provider.multipart_upload_abort(upload.upload_id, "media/a.bin")

    assert not (tmp_path / ".uploads" / upload.upload_id).exists()
    assert not (tmp_path / "media" / "a.bin").exists()
    with pytest.raises(NotFoundError):
        await provider.multipart_upload_part("media/a.bin", upload.upload_id, 2, b"late")


@pytest.mark.asyncio
async def test_complete_rejects_out_of_order_parts(provider):
    upload = await provider.multipart_upload_start("media/a.bin")
    e1 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"a")
    e2 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 2, b"b")

    with pytest.raises(StorageError):
        await provider.multipart_upload_complete(
            upload.upload_id,
            "media/a.bin",
            [{"PartNumber": 2, "ETag": e2}, {"PartNumber": 1, "ETag": e1}],
        )


@pytest.mark.asyncio
async def test_complete_rejects_etag_mismatch(provider):
    upload = await provider.multipart_upload_start("media/a.bin")
    await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"a")

    with pytest.raises(StorageError):
        await provider.multipart_upload_complete(
            upload.upload_id, "media/a.bin", [{"PartNumber": 1, "ETag": "bogus"}]
        )


@pytest.mark.asyncio
async def test_rejected_completion_leaves_no_object(provider, tmp_path):
    upload = await provider.multipart_upload_start("media/a.bin")
    e1 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"AAAA")
    await provider.multipart_upload_part("media/a.bin", upload.upload_id, 2, b"BBBB")

    with pytest.raises(StorageError):
        await provider.multipart_upload_complete(
            upload.upload_id,
            "media/a.bin",
            [{"PartNumber": 1, "ETag": e1}, {"PartNumber": 2, "ETag": "bogus"}],
        )

    assert not (tmp_path / "media" / "a.bin").exists()


@pytest.mark.asyncio
async def test_missing_part_leaves_no_object_and_upload_can_be_aborted(provider, tmp_path):
    upload = await provider.multipart_upload_start("media/a.bin")
    e1 = await provider.multipart_upload_part("media/a.bin", upload.upload_id, 1, b"AAAA")

    with pytest.raises(StorageError):
        await provider.multipart_upload_complete(
            upload.upload_id,
            "media/a.bin",
            [{"PartNumber": 1, "ETag": e1}, {"PartNumber": 2, "ETag": e1}],
        )
    assert not (tmp_path / "media" / "a.bin").exists()

    await provider.multipart_upload_abort(upload.upload_id, "media/a.bin")
    assert not (tmp_path / ".uploads" / upload.upload_id).exists()


@pytest.mark.asyncio
async def test_traversal_keys_rejected(provider):
    with pytest.raises(StorageError):
        await provider.multipart_upload_start("../outside.bin")
    with pytest.raises(StorageError):
        await provider.multipart_upload_start(".uploads/x")


@pytest.mark.asyncio
async def test_unknown_upload_maps_to_permanent_error(provider):
    adapter = StorageProviderPortAdapter(provider)
    session = UploadSession(bucket="local", key="media/a.bin", upload_id="deadbeef")

    with pytest.raises(PermanentStorageError) as exc_info:
        await adapter.upload_part(session, 1, b"x")
    assert exc_info.value.retryable is False
    assert exc_info.value.operation == "upload_part"


@pytest.mark.asyncio
async def test_orchestrator_stores_file_through_local_backend(provider, tmp_path):
    orchestrator = UploadOrchestrator(
        StorageProviderPortAdapter(provider),
        bucket="local",
        max_part_size=4,
        content_type_sniffer=lambda data: "image/png",
        clock=lambda: "2024-01-02T03:04:05Z",
    )

    outcome = await orchestrator.upload_file(UploadRequest.from_bytes("a.png", b"0123456789", "image/png"))

    assert outcome.ok
    stored = tmp_path / "media" / "2024-01-02T03:04:05Z-a.png"
    assert outcome.location == str(stored)
    assert stored.read_bytes() == b"0123456789"
