import logging
import math
import os
from typing import Optional

from database import get_db
from dependencies import get_current_user, get_current_admin
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse
from models.feed_item_model import FeedItem
from models.user_model import User
from schemas.feed_schema import FeedItemResponse, FeedPage, FeedItemMessage, DownloadIssued, SecureDownloadInfo
from schemas.user_schema import MessageResponse
from services import download_tokens, file_storage
from services.exceptions import NotFound, NotFoundOnDisk, InsufficientQuota, InvalidOrExpired, IoFailure
from sqlalchemy.orm import Session
from starlette.responses import FileResponse
from utils.security import display_filename

logger = logging.getLogger(__name__)

router = APIRouter()

FILE_TYPES_ERROR = "Only ZIP files and images (JPG, PNG, WEBP, GIF) are allowed"


def _get_item_or_404(db: Session, item_id: int) -> FeedItem:
    item = db.query(FeedItem).filter(FeedItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return item


def _check_types(file: Optional[UploadFile], image: Optional[UploadFile]):
    if file is not None and file.content_type not in file_storage.ALLOWED_ARCHIVE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=FILE_TYPES_ERROR)
    if image is not None and image.content_type not in file_storage.ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=FILE_TYPES_ERROR)


def _save(upload: UploadFile, directory: str):
    try:
        return file_storage.save_upload(upload, directory)
    except file_storage.UploadTooLarge:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")


def _token_required(token: Optional[str]):
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Download token is required")


@router.get("/", response_model=FeedPage, summary="Paginated list of feed items")
def get_feed_items(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    total = db.query(FeedItem).count()
    items = db.query(FeedItem).order_by(FeedItem.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"items": items, "total_pages": math.ceil(total / limit), "current_page": page}


@router.get("/download", include_in_schema=False)
def download_without_id():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File ID is required")


@router.get("/download/{item_id}", response_model=DownloadIssued,
            summary="Issue a secure download token for a feed item",
            description="""
                            Deducts the file size from the user's download quota and returns a signed
                            token valid for a few minutes together with the URL that redeems it.
                            Quota is returned automatically if the token expires without being used.
                        """,
            responses={
                400: {"description": "File ID is required"},
                401: {"description": "Unauthorized. Please log in."},
                403: {"description": "Not enough download limit. Please purchase more storage."},
                404: {"description": "Item not found or file missing on the server"},
            })
def generate_download_link(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        issued = download_tokens.issue_download(db, user, item_id)
    except NotFoundOnDisk:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail="File not found on server. Please contact support.")
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    except InsufficientQuota:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Not enough download limit. Please purchase more storage.")

    return {
        "download_token": issued.token,
        "secure_download_url": issued.url,
        "remaining_quota": issued.remaining_quota,
    }


@router.get("/secure-download", response_model=SecureDownloadInfo,
            summary="Check a download token without downloading",
            responses={
                400: {"description": "Download token is required"},
                403: {"description": "Invalid or expired token"},
            })
def secure_file_download(token: Optional[str] = None, db: Session = Depends(get_db)):
    _token_required(token)
    try:
        payload = download_tokens.verify_download_token(token)
        download_tokens.get_redeemable_grant(db, payload)
    except InvalidOrExpired as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return {
        "file_name": display_filename(os.path.basename(payload["fileName"])),
        "file_size": payload["fileSize"],
        "download_url": download_tokens.start_download_url(token),
    }


@router.get("/start-download",
            summary="Stream the file a download token points at",
            responses={
                400: {"description": "Download token is required"},
                403: {"description": "Invalid or expired token"},
                404: {"description": "File not found on server"},
                200: {"description": "File content",
                      "content": {"application/octet-stream": {"example": "Binary content placeholder"}}},
            })
def start_download(token: Optional[str] = None, db: Session = Depends(get_db)):
    _token_required(token)
    try:
        payload = download_tokens.verify_download_token(token)
        path = file_storage.ensure_readable(file_storage.resolve_download(payload["fileName"]))
        download_tokens.redeem(db, payload)
    except InvalidOrExpired as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except NotFoundOnDisk:
        logger.error("Download token for missing file %s", payload.get("fileName"))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found on server")
    except IoFailure:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error streaming file")

    return FileResponse(
        path=path,
        filename=display_filename(os.path.basename(path)),
        media_type="application/octet-stream",
    )


@router.post("/create", response_model=FeedItemMessage, status_code=status.HTTP_201_CREATED,
             summary="Create a feed item from an uploaded file and thumbnail",
             responses={
                 400: {"description": "Both file and image are required, or a file type is not allowed"},
                 403: {"description": "Access Denied. Admins only."},
                 413: {"description": "Upload file is too large"},
                 200: {"description": "File already exists"},
             })
def create_feed(title: str = Form(...),
                description: str = Form(...),
                resolution: str = Form(...),
                duration: str = Form(...),
                file: Optional[UploadFile] = File(None),
                image: Optional[UploadFile] = File(None),
                admin: User = Depends(get_current_admin),
                db: Session = Depends(get_db)):
    if file is None or image is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Both file and image are required")
    _check_types(file, image)

    stored_name, size, file_hash = _save(file, file_storage.uploads_dir())
    stored_path = os.path.join(file_storage.uploads_dir(), stored_name)

    existing = db.query(FeedItem).filter(FeedItem.file_hash == file_hash).first()
    if existing:
        logger.warning("Upload duplicates feed item %s, discarding %s", existing.id, stored_name)
        file_storage.remove_file(stored_path)
        item = FeedItemResponse.model_validate(existing).model_dump(by_alias=True, mode="json")
        return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "File already exists", "item": item})

    try:
        image_name, _, _ = _save(image, file_storage.images_dir())
    except HTTPException:
        file_storage.remove_file(stored_path)
        raise

    item = FeedItem(
        title=title,
        description=description,
        image=file_storage.image_url_for(image_name),
        storage_key=file_storage.storage_key_for(stored_name),
        file_hash=file_hash,
        resolution=resolution,
        duration=duration,
        file_type=os.path.splitext(stored_name)[1],
        file_size_bytes=size,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Admin %s created feed item %s (%d bytes)", admin.id, item.id, size)

    return {"message": "Feed created successfully", "item": item}


@router.get("/{item_id}", response_model=FeedItemResponse, summary="Single feed item",
            responses={404: {"description": "Item not found"}})
def get_feed_item(item_id: int, db: Session = Depends(get_db)):
    return _get_item_or_404(db, item_id)


@router.put("/{item_id}", response_model=FeedItemMessage, summary="Update a feed item",
            responses={
                403: {"description": "Access Denied. Admins only."},
                404: {"description": "Item not found"},
                409: {"description": "Another item already stores this file"},
            })
def update_feed_item(item_id: int,
                     title: Optional[str] = Form(None),
                     description: Optional[str] = Form(None),
                     resolution: Optional[str] = Form(None),
                     duration: Optional[str] = Form(None),
                     file: Optional[UploadFile] = File(None),
                     image: Optional[UploadFile] = File(None),
                     admin: User = Depends(get_current_admin),
                     db: Session = Depends(get_db)):
    item = _get_item_or_404(db, item_id)
    _check_types(file, image)

    for field, value in (("title", title), ("description", description),
                         ("resolution", resolution), ("duration", duration)):
        if value is not None:
            setattr(item, field, value)

    obsolete = []
    if file is not None:
        stored_name, size, file_hash = _save(file, file_storage.uploads_dir())
        stored_path = os.path.join(file_storage.uploads_dir(), stored_name)
        duplicate = db.query(FeedItem).filter(FeedItem.file_hash == file_hash, FeedItem.id != item.id).first()
        if duplicate:
            file_storage.remove_file(stored_path)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="File already exists")
        obsolete.append(file_storage.stored_file_path(item.storage_key))
        item.storage_key = file_storage.storage_key_for(stored_name)
        item.file_hash = file_hash
        item.file_type = os.path.splitext(stored_name)[1]
        item.file_size_bytes = size

    if image is not None:
        try:
            image_name, _, _ = _save(image, file_storage.images_dir())
        except HTTPException:
            if file is not None:
                file_storage.remove_file(file_storage.stored_file_path(item.storage_key))
            raise
        obsolete.append(file_storage.stored_image_path(item.image))
        item.image = file_storage.image_url_for(image_name)

    db.commit()
    db.refresh(item)

    for path in obsolete:
        file_storage.remove_file(path)
    logger.info("Admin %s updated feed item %s", admin.id, item.id)

    return {"message": "Item updated successfully", "item": item}


@router.delete("/{item_id}", response_model=MessageResponse, summary="Delete a feed item and its files",
               responses={
                   403: {"description": "Access Denied. Admins only."},
                   404: {"description": "Item not found"},
               })
def delete_feed_item(item_id: int, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    item = _get_item_or_404(db, item_id)
    file_path = file_storage.stored_file_path(item.storage_key)
    image_path = file_storage.stored_image_path(item.image)

    db.delete(item)
    db.commit()

    file_storage.remove_file(file_path)
    file_storage.remove_file(image_path)
    logger.info("Admin %s deleted feed item %s", admin.id, item_id)

    return {"detail": "Item deleted successfully"}
