from pydantic import BaseModel
from datetime import datetime
from typing import List


class UploadedFileOut(BaseModel):
    id: int
    filename: str
    url: str
    mimetype: str
    size: int
    createdAt: datetime
    updatedAt: datetime


class UploadOut(BaseModel):
    message: str
    file: UploadedFileOut


class UploadListOut(BaseModel):
    message: str
    files: List[UploadedFileOut]
