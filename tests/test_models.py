import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlalchemy import select
from photowalk.database import Base
from photowalk.models.walk import Walk, Photo, WalkRoute
from photowalk.models.uploaded_image import UploadedImage


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


def _walk(walk_id: str) -> Walk:
    return Walk(
        id=walk_id, start_lat=35.658, start_lng=139.701, end_lat=35.689, end_lng=139.700,
        missions='[{"name": "古い建物"}]', start_time="2026-10-18T09:00:00+00:00",
        end_time="2026-10-18T10:00:00+00:00", created_at="2026-10-18T10:00:00+00:00",
    )


@pytest.mark.asyncio
async def test_create_walk_with_photos_and_routes(db_session):
    walk = _walk("w-001")
    walk.photos = [
        Photo(id="p-002", client_photo_id="1760780000002", walk_id="w-001", position=1, mission_name="緑のあるもの",
              lat=35.66, lng=139.70, timestamp="2026-10-18T09:20:00+00:00"),
        Photo(id="p-001", client_photo_id="1760780000001", walk_id="w-001", position=0, mission_name="古い建物",
              lat=35.65, lng=139.70, timestamp="2026-10-18T09:10:00+00:00"),
    ]
    walk.routes = [
        WalkRoute(id="r-001", walk_id="w-001", position=0, lat=35.658, lng=139.701,
                  timestamp="2026-10-18T09:00:00+00:00"),
    ]
    db_session.add(walk)
    await db_session.commit()
    db_session.expunge_all()

    result = await db_session.execute(
        select(Walk).where(Walk.id == "w-001").options(selectinload(Walk.photos), selectinload(Walk.routes))
    )
    stored = result.scalars().one()
    assert [p.id for p in stored.photos] == ["p-001", "p-002"]
    assert stored.photos[0].mission_type == "mission"
    assert stored.photos[0].image_url is None
    assert len(stored.routes) == 1
    assert stored.distance is None
    assert stored.steps is None


@pytest.mark.asyncio
async def test_create_uploaded_image_without_walk(db_session):
    image = UploadedImage(
        id="u-001", photo_id="p-orphan", image_url="https://img.test/p.jpg",
        public_id="photo-walk-map/p", timestamp="2026-10-18T09:30:00+00:00",
    )
    db_session.add(image)
    await db_session.commit()

    result = await db_session.get(UploadedImage, "u-001")
    assert result is not None
    assert result.walk_id is None
    assert result.image_url == "https://img.test/p.jpg"
    assert result.photo_id == "p-orphan"


@pytest.mark.asyncio
async def test_client_photo_id_may_repeat_across_walks(db_session):
    for walk_id in ("w-101", "w-102"):
        walk = _walk(walk_id)
        walk.photos = [
            Photo(id=f"{walk_id}-p", client_photo_id="1760780000000", walk_id=walk_id, position=0,
                  lat=35.65, lng=139.70, timestamp="2026-10-18T09:10:00+00:00"),
        ]
        db_session.add(walk)
    await db_session.commit()

    result = await db_session.execute(select(Photo).where(Photo.client_photo_id == "1760780000000"))
    assert sorted(p.walk_id for p in result.scalars().all()) == ["w-101", "w-102"]
