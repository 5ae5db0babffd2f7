"""Input document and caller context models."""

import mimetypes
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# mimetypes has no entry for webp on some platforms
_EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".csv": "text/csv",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def guess_media_type(file_name: str) -> str:
    """Guess a media type from a file name, empty string if unknown."""
    suffix = Path(file_name).suffix.lower()
    if suffix in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or ""


class SourceDocument(BaseModel):
    """An immutable user-supplied file.

    ``media_type`` is kept as the raw declared string so that unsupported
    types can be reported by the validator instead of failing construction.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Original file name")
    media_type: str = Field(..., description="Declared MIME type")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")
    content: bytes = Field(default=b"", repr=False, exclude=True)

    @classmethod
    def from_bytes(
        cls,
        name: str,
        content: bytes,
        media_type: Optional[str] = None,
    ) -> "SourceDocument":
        return cls(
            name=name,
            media_type=media_type or guess_media_type(name),
            size_bytes=len(content),
            content=content,
        )

    @classmethod
    def from_path(cls, path: str | Path, media_type: Optional[str] = None) -> "SourceDocument":
        path = Path(path)
        return cls.from_bytes(path.name, path.read_bytes(), media_type)

    @property
    def identity(self) -> tuple[str, int]:
        """Duplicate-detection key."""
        return (self.name, self.size_bytes)


class AuthContext(BaseModel):
    """Caller identity threaded explicitly from intake to record creation."""

    model_config = ConfigDict(frozen=True)

    caller_id: str = Field(..., min_length=1, description="Authenticated user id")
    referral_code: Optional[str] = Field(
        None, description="Referral/invite code captured at the intake call site"
    )
