import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from photowalk.dependencies import get_photo_upload_gateway, get_walk_repository
from photowalk.services.image_cache import image_to_dict
from photowalk.services.photo_upload import PhotoUploadGateway, UploadItem
from photowalk.services.walk_repository import WalkRepository
from photowalk.utils.response import error_response, success_response
from photowalk.utils.result import InvalidInput, Ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["photos"])

NO_FILE_MESSAGE = "ファイルが見つかりません"


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(message, message=message))


@router.post("")
async def upload_photo(
    file: UploadFile | None = File(None),
    photo_id: str = Form("", alias="photoId"),
    walk_id: str | None = Form(None, alias="walkId"),
    mission_name: str | None = Form(None, alias="missionName"),
    gateway: PhotoUploadGateway = Depends(get_photo_upload_gateway),
):
    if file is None:
        return _failure(NO_FILE_MESSAGE, 400)

    item = UploadItem(
        data=await file.read(),
        content_type=file.content_type or "",
        photo_id=photo_id,
        walk_id=walk_id or None,
        mission_name=mission_name or None,
    )
    logger.info("Upload for photo %r: %s, %d bytes", photo_id, item.content_type, len(item.data))

    result = await gateway.upload(item)
    if isinstance(result, Ok):
        return success_response(
            message="写真をアップロードしました",
            imageUrl=result.value.image_url,
            publicId=result.value.public_id,
        )
    if isinstance(result, InvalidInput):
        return _failure(result.message, 400)
    return _failure(result.message, 500)


@router.put("")
async def upload_photos(
    files: list[UploadFile] | None = File(None),
    photo_ids: list[str] | None = Form(None, alias="photoIds"),
    gateway: PhotoUploadGateway = Depends(get_photo_upload_gateway),
):
    if not files:
        return _failure(NO_FILE_MESSAGE, 400)

    photo_ids = photo_ids or []
    items = []
    for index, upload in enumerate(files):
        items.append(UploadItem(
            data=await upload.read(),
            content_type=upload.content_type or "",
            photo_id=photo_ids[index] if index < len(photo_ids) else "",
        ))

    results = await gateway.upload_batch(items)
    succeeded = sum(1 for r in results if r["success"])
    return success_response(
        message=f"{succeeded}枚の写真をアップロードしました",
        results=results,
        successCount=succeeded,
    )


@router.get("")
async def list_uploaded_images(
    walk_id: str = Query(..., alias="walkId"),
    repository: WalkRepository = Depends(get_walk_repository),
):
    result = await repository.images_for_walk(walk_id)
    if isinstance(result, Ok):
        return success_response(images=[image_to_dict(img) for img in result.value])
    return success_response(images=[], message="画像情報の取得に失敗しました")
