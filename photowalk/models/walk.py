from sqlalchemy import Column, String, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import relationship

from photowalk.database import Base


class Walk(Base):
    __tablename__ = "walks"

    id = Column(String, primary_key=True)
    start_lat = Column(Float, nullable=False)
    start_lng = Column(Float, nullable=False)
    end_lat = Column(Float, nullable=False)
    end_lng = Column(Float, nullable=False)
    missions = Column(Text, nullable=False, default="[]")  # JSON snapshot of the mission batch
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=True)
    distance = Column(Float, nullable=True)
    steps = Column(Integer, nullable=True)
    created_at = Column(String, nullable=False)

    photos = relationship(
        "Photo", back_populates="walk", cascade="all, delete-orphan", order_by="Photo.position"
    )
    routes = relationship(
        "WalkRoute", back_populates="walk", cascade="all, delete-orphan", order_by="WalkRoute.position"
    )


class Photo(Base):
    __tablename__ = "photos"

    id = Column(String, primary_key=True)
    # id chosen by the client, not unique across walks
    client_photo_id = Column(String, nullable=False, index=True)
    walk_id = Column(String, ForeignKey("walks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    mission_type = Column(String, nullable=False, default="mission")
    mission_name = Column(String, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    image_url = Column(String, nullable=True)
    timestamp = Column(String, nullable=False)

    walk = relationship("Walk", back_populates="photos")


class WalkRoute(Base):
    __tablename__ = "walk_routes"

    id = Column(String, primary_key=True)
    walk_id = Column(String, ForeignKey("walks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    timestamp = Column(String, nullable=False)

    walk = relationship("Walk", back_populates="routes")
