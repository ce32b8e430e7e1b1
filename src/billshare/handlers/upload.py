from __future__ import annotations

import asyncio
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile, status

from billshare.errors import ValidationError
from billshare.handlers.envelope import serialize_file, serialize_item, success
from billshare.handlers.schemas import CleanupRequest
from billshare.services.bills import BillService, get_global_service
from billshare.services.uploads import ReceiptStorage

upload_router = APIRouter(prefix="/upload", tags=["upload"])


def _storage(service: BillService) -> ReceiptStorage:
    if service.storage is None:
        raise RuntimeError("receipt storage is not configured")
    return service.storage


@upload_router.post("/receipt", status_code=status.HTTP_201_CREATED)
async def upload_receipt(
    receipt: Optional[UploadFile] = File(None),
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    if receipt is None:
        raise ValidationError("Please select a receipt image to upload.")
    storage = _storage(service)
    data = await receipt.read(storage.max_file_size + 1)
    stored = await asyncio.to_thread(storage.save, data, receipt.content_type, receipt.filename)
    return success(serialize_file(stored), message="Receipt uploaded and processed successfully")


@upload_router.get("/file/{file_id}")
async def get_file(file_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    stored = await asyncio.to_thread(_storage(service).info, file_id)
    return success(serialize_file(stored))


@upload_router.delete("/file/{file_id}")
async def delete_file(file_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    await asyncio.to_thread(_storage(service).delete, file_id)
    return success(message="File deleted successfully")


@upload_router.post("/receipt/{file_id}/scan")
async def scan_receipt(file_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    text, items = await service.scan_receipt(file_id)
    message = f"Found {len(items)} items." if items else "No items found, add them manually."
    return success({"text": text, "items": [serialize_item(item) for item in items]}, message=message)


@upload_router.post("/cleanup")
async def cleanup(
    request: Request,
    body: Optional[CleanupRequest] = Body(None),
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    days = request.app.state.settings.cleanup_max_age_days
    if body is not None and body.older_than_days is not None:
        days = body.older_than_days
    deleted = await asyncio.to_thread(_storage(service).cleanup_old_files, days)
    return success(
        message=f"Cleanup completed. Deleted {deleted} files older than {days} days.",
        deletedCount=deleted,
    )
