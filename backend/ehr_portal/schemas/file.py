from datetime import datetime
from ehr_portal.schemas.common import CamelModel


class StoredFile(CamelModel):
    file_name: str
    file_hash: str
    upload_date: datetime


class FileUploadResponse(CamelModel):
    success: bool = True
    file: StoredFile
