"""
图片上传API
"""
import logging
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from mango_articles.schemas.common import ResponseModel
from mango_articles.services.upload_service import ImageUploader, UploadError, validate_upload
from mango_articles.utils.auth import CurrentUser, get_current_author

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["上传"])


def get_uploader(request: Request) -> ImageUploader:
    """获取启动时创建的上传客户端"""
    return request.app.state.uploader


@router.post("/upload", response_model=ResponseModel)
async def upload_image(
    file: UploadFile = File(None),
    uploader: ImageUploader = Depends(get_uploader),
    current_user: CurrentUser = Depends(get_current_author)
):
    """
    上传图片（jpeg/png/gif/webp，不超过5MB）
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="未提供文件")

    data = await file.read()
    try:
        validate_upload(file.content_type, len(data))
        result = await uploader.upload(data, file.filename or "image", file.content_type)
    except UploadError as e:
        if e.status_code >= 500:
            logger.error("Upload failed for user %s: %s (%s)", current_user.id, e.message, e.details)
            raise HTTPException(
                status_code=e.status_code,
                detail={"error": e.message, "details": e.details}
            )
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return ResponseModel(
        code=200,
        message="上传成功",
        data=result.to_dict()
    )
