from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.deps import get_current_user, get_document_service, http_error
from config import settings
from integrations.supabase import AuthUser
from services.dashboard import documents_to_response
from services.documents import DocumentService
from services.errors import CashewError

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("")
async def list_documents(
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    try:
        rows = await documents.list_documents(user.id)
    except CashewError as e:
        raise http_error(e) from e
    return documents_to_response(rows)


@router.post("", status_code=201)
async def upload_document(
    name: str = Form(..., description="Display name, e.g. Government ID"),
    file: UploadFile = File(...),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    content = await file.read()
    try:
        path = await documents.upload(user.id, name, file.filename or "document", content, file.content_type)
    except CashewError as e:
        raise http_error(e) from e
    return {"path": path, "message": "Your file is now available in Documents."}


@router.get("/signed-url")
async def signed_url(
    path: str = Query(...),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    try:
        url = await documents.signed_url(user.id, path)
    except CashewError as e:
        raise http_error(e) from e
    return {"url": url, "expiresIn": settings.signed_url_ttl_seconds}
