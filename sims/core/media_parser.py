"""Media Parser — classifies raw upload bytes as CSV, XLSX, or a zip archive.

Works purely on the in-memory buffer. Returns None for content it cannot
classify; callers treat that as the unsupported-file-type condition.
"""

import io
import logging
import mimetypes
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional, Union

logger = logging.getLogger(__name__)

CSV_MIMETYPE = "text/csv"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MIMETYPE = "application/zip"

ZIP_SIGNATURE = b"PK\x03\x04"
EMPTY_ZIP_SIGNATURE = b"PK\x05\x06"

CSV_DECLARED_TYPES = {CSV_MIMETYPE, "application/csv", "text/plain", "application/vnd.ms-excel"}


@dataclass
class MediaFile:
    """A single file held in memory."""
    file_name: str
    mimetype: str
    buffer: bytes

    @property
    def is_xlsx(self) -> bool:
        return self.mimetype == XLSX_MIMETYPE

    @property
    def is_csv(self) -> bool:
        return self.mimetype == CSV_MIMETYPE


@dataclass
class ArchiveFile:
    """A zip archive and the media files it contains."""
    file_name: str
    mimetype: str
    media_files: list[MediaFile] = field(default_factory=list)


ParsedMedia = Union[MediaFile, ArchiveFile]


def _is_zip(buffer: bytes) -> bool:
    return buffer.startswith(ZIP_SIGNATURE) or buffer.startswith(EMPTY_ZIP_SIGNATURE)


def _is_text(buffer: bytes) -> bool:
    """True if the buffer decodes as UTF-8 and carries no NUL bytes."""
    if b"\x00" in buffer:
        return False
    try:
        buffer.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _guess_mimetype(file_name: str) -> str:
    if file_name.lower().endswith(".csv"):
        return CSV_MIMETYPE
    if file_name.lower().endswith(".xlsx"):
        return XLSX_MIMETYPE
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or "application/octet-stream"


def _parse_zip(buffer: bytes, file_name: str) -> Optional[ParsedMedia]:
    try:
        with zipfile.ZipFile(io.BytesIO(buffer)) as zf:
            names = zf.namelist()
            if "xl/workbook.xml" in names:
                return MediaFile(file_name=file_name, mimetype=XLSX_MIMETYPE, buffer=buffer)

            members = []
            for info in zf.infolist():
                if info.is_dir():
                    continue
                member_name = PurePosixPath(info.filename).name
                members.append(MediaFile(
                    file_name=member_name,
                    mimetype=_guess_mimetype(member_name),
                    buffer=zf.read(info),
                ))
            return ArchiveFile(file_name=file_name, mimetype=ZIP_MIMETYPE, media_files=members)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as e:
        logger.warning(f"Unreadable zip content in '{file_name}': {e}")
        return None


def _declares_csv(declared: str, file_name: str) -> bool:
    if declared in CSV_DECLARED_TYPES:
        return True
    if PurePosixPath(file_name).suffix.lower() == ".csv":
        return True
    # Nothing declared and no name to go on
    return not declared and not file_name


def parse_media(
    buffer: bytes,
    mimetype: Optional[str] = None,
    file_name: str = "",
) -> Optional[ParsedMedia]:
    """Classify a raw buffer and wrap it as a MediaFile or ArchiveFile.

    The byte signature wins over the declared mimetype: an upload declared as
    CSV that is actually an XLSX workbook is treated as XLSX. UTF-8 text is
    only taken as CSV when declared as CSV, named ``*.csv``, or when neither a
    mimetype nor a name is given. Returns None for anything else.
    """
    if not buffer:
        return None

    if _is_zip(buffer):
        return _parse_zip(buffer, file_name)

    declared = (mimetype or "").split(";")[0].strip().lower()

    if _is_text(buffer) and _declares_csv(declared, file_name):
        return MediaFile(file_name=file_name, mimetype=CSV_MIMETYPE, buffer=buffer)

    logger.info(f"Unrecognized content for '{file_name}' (declared '{declared}')")
    return None
