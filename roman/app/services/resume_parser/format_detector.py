"""
File type detection from leading signature bytes. Pure, never raises.
Anything that is not recognisably PDF/DOCX/DOC is handed on as an image.
"""
from roman.app.core.config import CONTENT_TYPES, FILE_EXTENSIONS
from roman.app.schemas.resume import FileType

PDF_MAGIC = b"%PDF"
OLE2_MAGIC = bytes([0xD0, 0xCF, 0x11, 0xE0, 0xA1, 0xB1, 0x1A, 0xE1])

# PK\x03\x04 (local file), PK\x05\x06 (empty archive), PK\x07\x08 (spanned)
_ZIP_THIRD = {0x03, 0x05, 0x07}
_ZIP_FOURTH = {0x04, 0x06, 0x08}

_OFFICE_MARKERS = (b"word/", b"xl/", b"ppt/")
_WORD_MARKERS = (
    b"word/document.xml",
    b"application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)


def _is_zip(data: bytes) -> bool:
    return (
        len(data) >= 4
        and data[0] == 0x50
        and data[1] == 0x4B
        and data[2] in _ZIP_THIRD
        and data[3] in _ZIP_FOURTH
    )


def detect_file_type(data: bytes) -> FileType:
    if len(data) >= 4 and data[:4] == PDF_MAGIC:
        return "pdf"

    if _is_zip(data):
        if any(m in data for m in _OFFICE_MARKERS) and any(m in data for m in _WORD_MARKERS):
            return "docx"

    if len(data) >= 8 and data[:8] == OLE2_MAGIC:
        return "doc"

    return "image"


def content_type_for(file_type: FileType) -> str:
    return CONTENT_TYPES.get(file_type, "application/octet-stream")


def extension_for(file_type: FileType) -> str:
    return FILE_EXTENSIONS.get(file_type, "bin")
