# WORKFLOW: Read-side helpers over the source ZIP archive.
# Used by: Analyzer, scenario processors, assembler
# Functions:
# 1. open_source_archive() - Open a source package, raising InputNotFoundError if missing
# 2. read_entry() / load_document() - Exact-path entry access
# 3. basename() / extension() / has_prefix() - Entry name helpers
#
# The ZIP codec itself is the standard zipfile module; only listing, reading and
# writing entries is used.

import logging
import zipfile
from pathlib import Path
from typing import Optional

from core.exceptions import InputNotFoundError
from pipeline.xml_utils import parse_xml

logger = logging.getLogger(__name__)


def open_source_archive(path: str) -> zipfile.ZipFile:
    if not Path(path).is_file():
        logger.error(f"Source archive not found: {path}")
        raise InputNotFoundError(str(path))
    return zipfile.ZipFile(path, "r")


def read_entry(archive: zipfile.ZipFile, name: str) -> Optional[bytes]:
    """Read an entry by its exact path; None when absent."""
    try:
        info = archive.getinfo(name)
    except KeyError:
        return None
    return archive.read(info)


def load_document(archive: zipfile.ZipFile, name: str):
    """Parse an entry as XML; None when the entry is absent."""
    content = read_entry(archive, name)
    if content is None:
        return None
    return parse_xml(content)


def basename(name: str) -> str:
    return name.rsplit("/", 1)[-1]


def extension(name: str) -> str:
    base = basename(name)
    if "." not in base:
        return ""
    return "." + base.rsplit(".", 1)[-1].lower()


def has_prefix(name: str, prefix: str) -> bool:
    return name.lower().startswith(prefix.lower())


def is_directory(info: zipfile.ZipInfo) -> bool:
    return info.filename.endswith("/")
