from fastapi import APIRouter, Depends, File, UploadFile

from services.access import UserSession
from services.import_service import import_file
from ..deps import get_current_session
from ..schemas import ImportResultRead

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("/{kind}", response_model=ImportResultRead)
async def upload_import(
    kind: str,
    file: UploadFile = File(...),
    session: UserSession = Depends(get_current_session),
):
    """Импорт CSV/XLSX: ``location-tags``, ``tags``, ``service-types``, ``clients``, ``vendors``."""
    content = await file.read()
    return import_file(session, kind, file.filename or "", content)
