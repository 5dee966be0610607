# WORKFLOW: Analysis of STOP source packages.
# Used by: Transformation service, API analyze endpoint, CLI
# Functions:
# 1. analyze_path() - Open a source ZIP from disk and analyse it
# 2. analyze_archive() - Analyse an already opened ZIP archive
# 3. _populate_regulation_metadata() - Work/expression ids, goal, authority code
# 4. _populate_information_objects() - Discover IO- folders and build their records
# 5. _populate_external_references() - Read ExtIoRef elements from Tekst.xml
# 6. resolve_references() - Map references onto information objects (two-tier lookup)
#
# Analysis flow: ZIP -> Regeling metadata -> IO folders -> ExtIoRefs -> Resolution merge -> ArchiveAnalysis
# Missing optional documents never raise; fields simply stay empty.

"""
Analysis of STOP source packages.
"""

import hashlib
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pipeline import namespaces as ns
from pipeline.archive import basename, extension, has_prefix, load_document, open_source_archive
from pipeline.models import ArchiveAnalysis, ExternalReference, InformationObjectRecord
from pipeline.xml_utils import first_value

logger = logging.getLogger(__name__)


@dataclass
class AnalysisBuilder:
    """Collects analysis results while traversing an archive."""

    work_id: Optional[str] = None
    expression_id: Optional[str] = None
    goal: Optional[str] = None
    authority_code: Optional[str] = None
    geo_payload_size: int = 0
    information_objects: List[InformationObjectRecord] = field(default_factory=list)
    external_references: List[ExternalReference] = field(default_factory=list)

    def finalize(self) -> ArchiveAnalysis:
        """Resolve cross-references and freeze the result."""
        resolution = resolve_references(self.information_objects, self.external_references)
        records = [
            record.model_copy(update={"external_ref_element_id": resolution[record.folder.lower()]})
            if record.folder.lower() in resolution else record
            for record in self.information_objects
        ]
        return ArchiveAnalysis(
            work_id=self.work_id,
            expression_id=self.expression_id,
            goal=self.goal,
            authority_code=self.authority_code,
            information_object_count=len(records),
            geo_payload_size=self.geo_payload_size,
            information_objects=records,
            external_references=list(self.external_references),
        )


def analyze_path(zip_path: str) -> ArchiveAnalysis:
    """
    Analyse a STOP source package on disk.

    Args:
        zip_path: Path to the source ZIP

    Returns:
        ArchiveAnalysis for the package

    Raises:
        InputNotFoundError: If the file does not exist
    """
    with open_source_archive(zip_path) as archive:
        return analyze_archive(archive)


def analyze_archive(archive: zipfile.ZipFile) -> ArchiveAnalysis:
    """
    Analyse an opened STOP source package.

    Args:
        archive: Source ZIP archive (read only, not modified)

    Returns:
        Immutable ArchiveAnalysis
    """
    builder = AnalysisBuilder()

    _populate_regulation_metadata(archive, builder)
    _populate_information_objects(archive, builder)
    _populate_external_references(archive, builder)

    analysis = builder.finalize()
    logger.info(
        f"Analysed package: work={analysis.work_id}, authority={analysis.authority_code}, "
        f"information objects={analysis.information_object_count}, "
        f"references={len(analysis.external_references)}"
    )
    return analysis


def parse_authority_code(maker: Optional[str]) -> Optional[str]:
    """
    Extract the authority code from a ``maker`` path.

    The last two segments are read as (authority type, authority code); the
    code is only returned for a recognised authority type.
    """
    if not maker:
        return None
    parts = [part.strip() for part in maker.split("/") if part.strip()]
    if len(parts) < 2:
        return None
    authority_type, code = parts[-2], parts[-1]
    if authority_type.lower() not in ns.AUTHORITY_TYPES:
        logger.debug(f"Ignoring maker with unknown authority type: {maker}")
        return None
    return code


def _populate_regulation_metadata(archive: zipfile.ZipFile, builder: AnalysisBuilder) -> None:
    identification = load_document(archive, ns.IDENTIFICATION_PATH)
    if identification is not None:
        builder.work_id = first_value(identification, ns.DATA_NS, "FRBRWork")
        builder.expression_id = first_value(identification, ns.DATA_NS, "FRBRExpression")

    snapshot = load_document(archive, ns.SNAPSHOT_PATH)
    if snapshot is not None:
        builder.goal = first_value(snapshot, ns.DATA_NS, "doel")

    metadata = load_document(archive, ns.METADATA_PATH)
    if metadata is not None:
        builder.authority_code = parse_authority_code(first_value(metadata, ns.DATA_NS, "maker"))


def discover_information_object_folders(archive: zipfile.ZipFile) -> List[str]:
    """Distinct IO- folder names, sorted case-insensitively."""
    seen: Dict[str, str] = {}
    for info in archive.infolist():
        if not has_prefix(info.filename, ns.INFORMATION_OBJECT_PREFIX):
            continue
        parts = [part for part in info.filename.split("/") if part]
        if parts:
            seen.setdefault(parts[0].lower(), parts[0])
    return sorted(seen.values(), key=str.upper)


def _populate_information_objects(archive: zipfile.ZipFile, builder: AnalysisBuilder) -> None:
    folders = discover_information_object_folders(archive)

    builder.geo_payload_size = sum(
        info.file_size
        for info in archive.infolist()
        if has_prefix(info.filename, ns.INFORMATION_OBJECT_PREFIX)
        and extension(info.filename) in ns.GEO_EXTENSIONS
    )

    for folder in folders:
        builder.information_objects.append(build_information_object(archive, folder))


def select_payload(archive: zipfile.ZipFile, folder: str) -> Optional[zipfile.ZipInfo]:
    """
    Pick the payload file of an information-object folder.

    Geographic data (.gml) is preferred over documents (.pdf); within one
    extension the first entry in archive order wins.
    """
    prefix = folder + "/"
    candidates = [
        info for info in archive.infolist()
        if has_prefix(info.filename, prefix) and not info.filename.endswith("/")
    ]
    for wanted in ns.PAYLOAD_EXTENSION_PRIORITY:
        for info in candidates:
            if extension(info.filename) == wanted:
                return info
    return None


def build_information_object(archive: zipfile.ZipFile, folder: str) -> InformationObjectRecord:
    prefix = folder + "/"

    work_id = None
    expression_id = None
    identification = load_document(archive, prefix + "Identificatie.xml")
    if identification is not None:
        work_id = first_value(identification, ns.DATA_NS, "FRBRWork")
        expression_id = first_value(identification, ns.DATA_NS, "FRBRExpression")

    title = None
    version_metadata = load_document(archive, prefix + "VersieMetadata.xml")
    if version_metadata is not None:
        title = first_value(version_metadata, ns.DATA_NS, "officieleTitel")

    payload_name = None
    payload_digest = None
    payload = select_payload(archive, folder)
    if payload is not None:
        payload_name = basename(payload.filename)
        payload_digest = hashlib.sha512(archive.read(payload)).hexdigest()

    return InformationObjectRecord(
        folder=folder,
        work_id=work_id,
        expression_id=expression_id,
        payload_name=payload_name,
        payload_digest=payload_digest,
        title=title,
    )


def _populate_external_references(archive: zipfile.ZipFile, builder: AnalysisBuilder) -> None:
    text = load_document(archive, ns.TEXT_PATH)
    if text is None:
        return

    for element in text.iter(f"{{{ns.TEKST_NS}}}ExtIoRef"):
        builder.external_references.append(
            ExternalReference(ref=element.get("ref") or "", element_id=element.get("eId"))
        )


def resolve_references(records: List[InformationObjectRecord],
                       references: List[ExternalReference]) -> Dict[str, str]:
    """
    Map external references onto information objects.

    A reference matches a record by expression id first and by work id
    second, both case-insensitively. When several records share a key the
    first one in processing order is used. When several references land on
    the same record the last one wins.

    Args:
        records: Information-object records in processing order
        references: References in document order

    Returns:
        Mapping of lowercased folder name to element id
    """
    by_expression: Dict[str, InformationObjectRecord] = {}
    by_work: Dict[str, InformationObjectRecord] = {}
    for record in records:
        if record.expression_id and record.expression_id.strip():
            by_expression.setdefault(record.expression_id.lower(), record)
        if record.work_id and record.work_id.strip():
            by_work.setdefault(record.work_id.lower(), record)

    resolution: Dict[str, str] = {}
    for reference in references:
        if not reference.ref.strip() or not (reference.element_id or "").strip():
            continue

        key = reference.ref.lower()
        record = by_expression.get(key) or by_work.get(key)
        if record is None:
            logger.debug(f"No information object matches reference {reference.ref}")
            continue

        folder_key = record.folder.lower()
        if folder_key in resolution and resolution[folder_key] != reference.element_id:
            logger.warning(
                f"Information object {record.folder} is referenced more than once; "
                f"{reference.element_id} replaces {resolution[folder_key]}"
            )
        resolution[folder_key] = reference.element_id

    return resolution
