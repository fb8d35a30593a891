"""
Tests for media attachments and the single-primary rule.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError

from barter.api.routes import media as media_routes
from barter.core.exceptions import ConflictError, InvalidOperationError
from barter.services import media_service, storage

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


async def upload(client: AsyncClient, item_id: int, account, name: str = "photo.jpg", primary: bool = False):
    return await client.post(
        f"/api/v1/media/items/{item_id}",
        files={"file": (name, JPEG, "image/jpeg")},
        data={"is_primary": "true" if primary else "false"},
        headers=account.headers,
    )


async def primaries(client: AsyncClient, item_id: int, account) -> list[int]:
    media = (await client.get(f"/api/v1/media/items/{item_id}", headers=account.headers)).json()
    return [m["id"] for m in media if m["is_primary"]]


@pytest.mark.asyncio
async def test_first_upload_becomes_primary(client: AsyncClient, owner, approved_item):
    response = await upload(client, approved_item, owner)
    assert response.status_code == 201
    data = response.json()
    assert data["is_primary"] is True
    assert data["media_type"] == "Image"
    assert data["file_size"] == len(JPEG)
    assert data["file_path"].startswith(f"/uploads/{approved_item}/")

    stored = storage.upload_root() / data["file_path"].removeprefix("/uploads/")
    assert stored.read_bytes() == JPEG


@pytest.mark.asyncio
async def test_later_uploads_are_not_primary(client: AsyncClient, owner, approved_item):
    first = (await upload(client, approved_item, owner)).json()
    second = (await upload(client, approved_item, owner, name="clip.mp4")).json()

    assert second["is_primary"] is False
    assert second["media_type"] == "Video"
    assert await primaries(client, approved_item, owner) == [first["id"]]


@pytest.mark.asyncio
async def test_explicit_primary_replaces_old_one(client: AsyncClient, owner, approved_item):
    await upload(client, approved_item, owner)
    second = (await upload(client, approved_item, owner, name="better.png", primary=True)).json()

    assert second["is_primary"] is True
    assert await primaries(client, approved_item, owner) == [second["id"]]

    # Primary is listed first
    media = (await client.get(f"/api/v1/media/items/{approved_item}")).json()
    assert media[0]["id"] == second["id"]
    assert len(media) == 2


@pytest.mark.asyncio
async def test_item_response_includes_media(client: AsyncClient, owner, approved_item):
    await upload(client, approved_item, owner)
    item = (await client.get(f"/api/v1/items/{approved_item}")).json()
    assert len(item["media"]) == 1


@pytest.mark.asyncio
async def test_reject_unsupported_extension(client: AsyncClient, owner, approved_item):
    response = await upload(client, approved_item, owner, name="notes.txt")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid file type"


@pytest.mark.asyncio
async def test_reject_empty_file(client: AsyncClient, owner, approved_item):
    response = await client.post(
        f"/api/v1/media/items/{approved_item}",
        files={"file": ("empty.jpg", b"", "image/jpeg")},
        headers=owner.headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stranger_cannot_upload(client: AsyncClient, stranger, approved_item):
    response = await upload(client, approved_item, stranger)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_upload_to_missing_item(client: AsyncClient, owner):
    response = await upload(client, 9999, owner)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deleting_primary_promotes_oldest(client: AsyncClient, owner, approved_item):
    first = (await upload(client, approved_item, owner, name="a.jpg")).json()
    second = (await upload(client, approved_item, owner, name="b.jpg")).json()
    await upload(client, approved_item, owner, name="c.jpg")

    response = await client.delete(f"/api/v1/media/{first['id']}", headers=owner.headers)
    assert response.status_code == 204
    assert await primaries(client, approved_item, owner) == [second["id"]]

    stored = storage.upload_root() / first["file_path"].removeprefix("/uploads/")
    assert not stored.exists()


@pytest.mark.asyncio
async def test_deleting_secondary_keeps_primary(client: AsyncClient, owner, approved_item):
    first = (await upload(client, approved_item, owner)).json()
    second = (await upload(client, approved_item, owner)).json()

    await client.delete(f"/api/v1/media/{second['id']}", headers=owner.headers)
    assert await primaries(client, approved_item, owner) == [first["id"]]


@pytest.mark.asyncio
async def test_stranger_cannot_delete_media(client: AsyncClient, owner, stranger, approved_item):
    media = (await upload(client, approved_item, owner)).json()
    response = await client.delete(f"/api/v1/media/{media['id']}", headers=stranger.headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_pending_item_media_hidden_from_public(client: AsyncClient, owner, pending_item):
    await upload(client, pending_item, owner)
    assert (await client.get(f"/api/v1/media/items/{pending_item}")).status_code == 403
    assert len((await client.get(f"/api/v1/media/items/{pending_item}", headers=owner.headers)).json()) == 1


@pytest.mark.asyncio
async def test_oversized_upload_is_refused(client: AsyncClient, monkeypatch, owner, approved_item):
    monkeypatch.setattr(media_routes.settings, "MAX_UPLOAD_SIZE", 16)

    response = await upload(client, approved_item, owner)
    assert response.status_code == 400
    assert response.json()["detail"] == "File is too large"

    media = await client.get(f"/api/v1/media/items/{approved_item}", headers=owner.headers)
    assert media.json() == []


@pytest.mark.asyncio
async def test_service_refuses_oversized_content(db_session, monkeypatch, owner, approved_item):
    monkeypatch.setattr(media_service.settings, "MAX_UPLOAD_SIZE", 16)

    with pytest.raises(InvalidOperationError):
        await media_service.upload_media(
            db_session, approved_item, owner.actor,
            file_name="a.jpg", content_type="image/jpeg", content=JPEG,
        )


def failing_attach(monkeypatch, message: str) -> list:
    calls = []

    async def attach(*args, **kwargs):
        calls.append(1)
        raise IntegrityError("INSERT INTO media", {}, Exception(message))

    monkeypatch.setattr(media_service, "_attach", attach)
    return calls


def saved_paths(monkeypatch) -> list[str]:
    paths = []
    save_file = storage.save_file

    async def spy(*args, **kwargs):
        path = await save_file(*args, **kwargs)
        paths.append(path)
        return path

    monkeypatch.setattr(storage, "save_file", spy)
    return paths


@pytest.mark.asyncio
async def test_unrelated_integrity_error_is_not_retried(db_session, monkeypatch, owner, approved_item):
    calls = failing_attach(monkeypatch, "FOREIGN KEY constraint failed")
    paths = saved_paths(monkeypatch)

    with pytest.raises(IntegrityError):
        await media_service.upload_media(
            db_session, approved_item, owner.actor,
            file_name="a.jpg", content_type="image/jpeg", content=JPEG,
        )

    assert len(calls) == 1
    assert not (storage.upload_root() / paths[0].removeprefix("/uploads/")).exists()


@pytest.mark.asyncio
async def test_primary_race_is_retried_then_reported(db_session, monkeypatch, owner, approved_item):
    calls = failing_attach(monkeypatch, "UNIQUE constraint failed: media.item_id")
    paths = saved_paths(monkeypatch)

    with pytest.raises(ConflictError):
        await media_service.upload_media(
            db_session, approved_item, owner.actor,
            file_name="a.jpg", content_type="image/jpeg", content=JPEG,
        )

    assert len(calls) == media_service.MAX_RETRY_ATTEMPTS
    assert not (storage.upload_root() / paths[0].removeprefix("/uploads/")).exists()
