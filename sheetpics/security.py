"""
Upload validation and request models for sheetpics
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, field_validator

from .config import MAX_UPLOAD_BYTES, MAX_UPLOAD_MB
from .errors import FileTooLarge, NoFileProvided, UnsupportedFileType

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx"}


class ProcessingRequest(BaseModel):
    """Validated processing options"""
    preview: bool = False
    name_mapping: Dict[str, str] = {}

    @field_validator("name_mapping", mode="before")
    @classmethod
    def parse_name_mapping(cls, v):
        if v is None or v == "":
            return {}
        if isinstance(v, (str, bytes)):
            try:
                v = json.loads(v)
            except ValueError:
                logger.warning("Ignoring malformed nameMapping payload")
                return {}
        if not isinstance(v, dict):
            logger.warning("Ignoring nameMapping that is not a JSON object")
            return {}
        # Flat string-to-string only
        return {k: val.strip() for k, val in v.items() if isinstance(k, str) and isinstance(val, str)}

    def effective_mapping(self) -> Dict[str, str]:
        """Renames only apply to full downloads"""
        return {} if self.preview else self.name_mapping


def validate_upload(filename: Optional[str], content: Optional[bytes]) -> bytes:
    """
    Validate an uploaded workbook

    Raises:
        NoFileProvided: If no file or an empty file was sent
        UnsupportedFileType: If the file is not .xlsx
        FileTooLarge: If the file exceeds MAX_UPLOAD_MB
    """
    if not filename:
        raise NoFileProvided()

    if Path(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileType()

    if not content:
        raise NoFileProvided("Uploaded file is empty")

    if len(content) > MAX_UPLOAD_BYTES:
        raise FileTooLarge(f"File {filename} is too large. Maximum size is {MAX_UPLOAD_MB}MB")

    return content
