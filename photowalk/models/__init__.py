from photowalk.models.walk import Walk, Photo, WalkRoute
from photowalk.models.uploaded_image import UploadedImage

__all__ = ["Walk", "Photo", "WalkRoute", "UploadedImage"]
