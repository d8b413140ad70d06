"""
ZIP bundling for separate-mode output.
"""
import io
import logging
import zipfile
from pathlib import PurePath
from typing import Iterable

from ..data.models import GeneratedFile
from .text import sanitize_filename_part

logger = logging.getLogger(__name__)

ZIP_MEDIA_TYPE = "application/zip"


def bundle_files(files: Iterable[GeneratedFile]) -> bytes:
    """
    Packs generated workbooks into one in-memory ZIP archive.

    Duplicate filenames get a numeric suffix so no entry is overwritten.
    """
    buffer = io.BytesIO()
    used_names = set()

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for generated in files:
            name = generated.filename
            if name in used_names:
                stem, suffix = PurePath(name).stem, PurePath(name).suffix
                counter = 2
                while f"{stem}_{counter}{suffix}" in used_names:
                    counter += 1
                name = f"{stem}_{counter}{suffix}"
            used_names.add(name)
            logger.debug(f"Adding file to archive: {name} ({len(generated.buffer)} bytes)")
            archive.writestr(name, generated.buffer)

    data = buffer.getvalue()
    logger.info(f"Archive wrote {len(data)} bytes ({len(used_names)} files)")
    return data


def bundle_filename(company_name: str) -> str:
    return f"{sanitize_filename_part(company_name, fallback='Company')}_Linesheets.zip"
