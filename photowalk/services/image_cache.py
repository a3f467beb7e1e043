"""Read-time join between walks and the uploaded-image side table."""
from typing import Iterable

from photowalk.models.uploaded_image import UploadedImage
from photowalk.schemas.walk import UploadedImageOut


def image_to_dict(img: UploadedImage) -> dict:
    return UploadedImageOut(
        photo_id=img.photo_id,
        image_url=img.image_url,
        public_id=img.public_id,
        mission_name=img.mission_name,
        walk_id=img.walk_id,
        timestamp=img.timestamp,
    ).to_json()


def images_for_walk(walk: dict, images: Iterable[UploadedImage]) -> list[UploadedImage]:
    """Entries tagged with this walk, or untagged entries for one of its photos."""
    photo_ids = {p["id"] for p in walk["photos"]}
    return [
        img for img in images
        if img.walk_id == walk["id"] or (not img.walk_id and img.photo_id in photo_ids)
    ]


def reconcile(walks: list[dict], images: Iterable[UploadedImage]) -> list[dict]:
    images = list(images)
    tagged = {(img.walk_id, img.photo_id): img for img in images if img.walk_id}
    untagged = {img.photo_id: img for img in images if not img.walk_id}
    for walk in walks:
        for photo in walk["photos"]:
            if photo["imageUrl"]:
                continue
            img = tagged.get((walk["id"], photo["id"])) or untagged.get(photo["id"])
            if img is not None:
                photo["imageUrl"] = img.image_url
        walk["uploadedImages"] = [image_to_dict(img) for img in images_for_walk(walk, images)]
    return walks
