import io
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from photowalk.config import settings
from photowalk.database import async_session
from photowalk.dependencies import get_photo_upload_gateway, get_walk_repository
from photowalk.main import app
from photowalk.services.photo_upload import PhotoUploadGateway, StoredImage
from photowalk.services.walk_repository import WalkRepository

FAKE_JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 100


class FakeStore:
    async def store(self, data: bytes, content_type: str, name: str) -> StoredImage:
        return StoredImage(image_url=f"https://img.test/{name}.jpg", public_id=name)


def _broken_session_factory():
    raise RuntimeError("database down")


def _walk_payload(photo_ids=None, **overrides):
    photo_ids = photo_ids or [f"p-{uuid.uuid4()}"]
    payload = {
        "startLat": "35.6580992",
        "startLng": "139.7016358",
        "endLat": 35.6896067,
        "endLng": 139.7005713,
        "missions": [
            {"id": "m1", "name": "古い建物", "description": "", "count": 3, "targetCount": 3, "completed": True},
            {"id": "m2", "name": "緑のあるもの", "description": "", "count": 1, "targetCount": 3, "completed": False},
        ],
        "photos": [
            {"id": pid, "missionName": "古い建物", "lat": "35.66", "lng": 139.70, "timestamp": "2026-10-18T09:10:00Z"}
            for pid in photo_ids
        ],
        "routes": [
            {"lat": 35.658, "lng": 139.701, "timestamp": "2026-10-18T09:00:00Z"},
            {"lat": "35.660", "lng": "139.702"},
        ],
        "distance": "1523.4",
        "steps": "2100",
    }
    payload.update(overrides)
    return payload


async def _upload(client, photo_id, walk_id=None):
    data = {"photoId": photo_id}
    if walk_id:
        data["walkId"] = walk_id
    response = await client.post(
        "/api/v1/photos",
        files={"file": ("test.jpg", io.BytesIO(FAKE_JPEG), "image/jpeg")},
        data=data,
    )
    assert response.status_code == 200
    return response.json()["imageUrl"]


def _use_fake_store():
    gateway = PhotoUploadGateway(settings, FakeStore(), async_session)
    app.dependency_overrides[get_photo_upload_gateway] = lambda: gateway


@pytest.mark.asyncio
async def test_create_walk_parses_string_numbers():
    photo_id = f"p-{uuid.uuid4()}"
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/walks", json=_walk_payload([photo_id]))

    assert response.status_code == 200
    walk = response.json()["walk"]
    assert walk["startLat"] == pytest.approx(35.6580992)
    assert walk["distance"] == pytest.approx(1523.4)
    assert walk["steps"] == 2100
    assert walk["missions"][0]["name"] == "古い建物"
    assert walk["photos"][0]["id"] == photo_id
    assert walk["photos"][0]["missionType"] == "mission"
    assert walk["photos"][0]["lat"] == pytest.approx(35.66)
    assert [r["lat"] for r in walk["routes"]] == pytest.approx([35.658, 35.660])


@pytest.mark.asyncio
async def test_create_walk_empty_distance_and_steps_are_null():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/api/v1/walks", json=_walk_payload(distance=None, steps="0", routes=None)
        )

    walk = response.json()["walk"]
    assert walk["distance"] is None
    assert walk["steps"] is None
    assert walk["routes"] == []


@pytest.mark.asyncio
async def test_create_walk_rejects_non_numeric_coordinate():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/walks", json=_walk_payload(startLat="north"))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_walks_newest_first_with_missions_restored():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        first = (await client.post("/api/v1/walks", json=_walk_payload())).json()["walk"]["id"]
        second = (await client.post("/api/v1/walks", json=_walk_payload())).json()["walk"]["id"]

        response = await client.get("/api/v1/walks")

    assert response.status_code == 200
    walks = response.json()["walks"]
    ids = [w["id"] for w in walks]
    assert ids.index(second) < ids.index(first)
    listed = walks[ids.index(first)]
    assert isinstance(listed["missions"], list)
    assert listed["missions"][1]["count"] == 1
    assert len(listed["routes"]) == 2


@pytest.mark.asyncio
async def test_save_failure_returns_synthetic_success():
    app.dependency_overrides[get_walk_repository] = lambda: WalkRepository(_broken_session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/walks", json=_walk_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["walk"]["id"]
    assert body["message"] == "散歩データを記録しました"


@pytest.mark.asyncio
async def test_list_failure_returns_empty_with_message():
    app.dependency_overrides[get_walk_repository] = lambda: WalkRepository(_broken_session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/walks")

    assert response.status_code == 200
    body = response.json()
    assert body["walks"] == []
    assert body["message"] == "データベース接続エラーのため履歴を表示できません"


@pytest.mark.asyncio
async def test_upload_before_walk_is_linked_on_save():
    _use_fake_store()
    photo_id = f"p-{uuid.uuid4()}"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        image_url = await _upload(client, photo_id)
        response = await client.post("/api/v1/walks", json=_walk_payload([photo_id]))

    assert response.json()["walk"]["photos"][0]["imageUrl"] == image_url


@pytest.mark.asyncio
async def test_upload_after_walk_updates_photo_record():
    _use_fake_store()
    photo_id = f"p-{uuid.uuid4()}"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        walk_id = (await client.post("/api/v1/walks", json=_walk_payload([photo_id]))).json()["walk"]["id"]
        image_url = await _upload(client, photo_id)
        walks = (await client.get("/api/v1/walks")).json()["walks"]
        images = (await client.get("/api/v1/photos", params={"walkId": walk_id})).json()["images"]

    walk = next(w for w in walks if w["id"] == walk_id)
    assert walk["photos"][0]["imageUrl"] == image_url
    assert [img["photoId"] for img in walk["uploadedImages"]] == [photo_id]
    # the side-table entry picked up the walk id from the photo record
    assert [img["photoId"] for img in images] == [photo_id]


@pytest.mark.asyncio
async def test_uploads_tagged_with_walk_are_joined_on_read():
    _use_fake_store()
    extra_photo = f"p-{uuid.uuid4()}"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        walk_id = (await client.post("/api/v1/walks", json=_walk_payload())).json()["walk"]["id"]
        image_url = await _upload(client, extra_photo, walk_id=walk_id)
        walks = (await client.get("/api/v1/walks")).json()["walks"]

    walk = next(w for w in walks if w["id"] == walk_id)
    assert walk["photos"][0]["imageUrl"] is None
    assert [img["imageUrl"] for img in walk["uploadedImages"]] == [image_url]


@pytest.mark.asyncio
async def test_walks_sharing_a_client_photo_id_are_both_saved():
    _use_fake_store()
    # clients derive photo ids from the capture time in milliseconds
    photo_id = "1760780000000"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        first = (await client.post("/api/v1/walks", json=_walk_payload([photo_id]))).json()["walk"]
        second = (await client.post("/api/v1/walks", json=_walk_payload([photo_id, photo_id]))).json()["walk"]
        image_url = await _upload(client, photo_id, walk_id=second["id"])
        walks = (await client.get("/api/v1/walks")).json()["walks"]

    assert first.get("persisted") is not False
    assert second.get("persisted") is not False
    by_id = {w["id"]: w for w in walks}
    assert first["id"] in by_id and second["id"] in by_id
    assert [p["id"] for p in by_id[first["id"]]["photos"]] == [photo_id]
    assert [p["id"] for p in by_id[second["id"]]["photos"]] == [photo_id, photo_id]
    # an upload naming its walk only touches that walk
    assert by_id[first["id"]]["photos"][0]["imageUrl"] is None
    assert by_id[second["id"]]["photos"][0]["imageUrl"] == image_url
    assert by_id[first["id"]]["uploadedImages"] == []


@pytest.mark.asyncio
async def test_upload_without_walk_id_links_newest_walk_missing_the_image():
    _use_fake_store()
    photo_id = f"p-{uuid.uuid4()}"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        older = (await client.post("/api/v1/walks", json=_walk_payload([photo_id]))).json()["walk"]["id"]
        newer = (await client.post("/api/v1/walks", json=_walk_payload([photo_id]))).json()["walk"]["id"]
        first_url = await _upload(client, photo_id)
        second_url = await _upload(client, photo_id)
        walks = (await client.get("/api/v1/walks")).json()["walks"]

    by_id = {w["id"]: w for w in walks}
    assert by_id[newer]["photos"][0]["imageUrl"] == first_url
    assert by_id[older]["photos"][0]["imageUrl"] == second_url
