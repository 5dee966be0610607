# WORKFLOW: Package manifest (manifest.xml) generation.
# Used by: Transformation service
# Functions:
# 1. content_type() - MIME type inferred from a file extension
# 2. manifest_names() - Names listed in the manifest (filtering, dedup, manifest.xml last)
# 3. build_manifest() - Serialized lvbb manifest document

import fnmatch
import logging
from typing import Iterable, List

from pipeline import namespaces as ns
from pipeline.archive import extension
from pipeline.xml_utils import new_root, serialize, sub

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".xml": "application/xml",
    ".gml": "application/gml+xml",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Information-object documents are delivered but not listed in withdrawal manifests
WITHDRAWAL_UNLISTED_PATTERN = "io-*.xml"


def content_type(name: str) -> str:
    return CONTENT_TYPES.get(extension(name), DEFAULT_CONTENT_TYPE)


def manifest_names(names: Iterable[str], withdrawal: bool = False) -> List[str]:
    seen = set()
    listed = []
    for name in names:
        key = name.lower()
        if key in seen or key == ns.MANIFEST_NAME:
            continue
        if withdrawal and fnmatch.fnmatchcase(name.lower(), WITHDRAWAL_UNLISTED_PATTERN):
            continue
        seen.add(key)
        listed.append(name)
    listed.append(ns.MANIFEST_NAME)
    return listed


def build_manifest(names: Iterable[str], withdrawal: bool = False) -> bytes:
    """
    Build the package manifest.

    Args:
        names: Output entry names in archive order
        withdrawal: Leave IO-*.xml documents out of the listing

    Returns:
        manifest.xml content, indented with three spaces and CRLF line endings
    """
    listed = manifest_names(names, withdrawal)

    root = new_root(ns.LVBB_NS, "manifest", nsmap={None: ns.LVBB_NS})
    for name in listed:
        entry = sub(root, ns.LVBB_NS, "bestand")
        sub(entry, ns.LVBB_NS, "bestandsnaam", name)
        sub(entry, ns.LVBB_NS, "contentType", content_type(name))

    logger.debug(f"Manifest lists {len(listed)} files")
    return serialize(root, standalone=True, indent="   ", crlf=True)
