from sqlalchemy import Column, String

from photowalk.database import Base


class UploadedImage(Base):
    """Image URLs keyed by client photo id; the walk may not exist yet when a row is written."""

    __tablename__ = "uploaded_images"

    id = Column(String, primary_key=True)
    photo_id = Column(String, nullable=False, index=True)
    image_url = Column(String, nullable=False)
    public_id = Column(String, nullable=True)
    mission_name = Column(String, nullable=True)
    walk_id = Column(String, nullable=True, index=True)
    timestamp = Column(String, nullable=False)
