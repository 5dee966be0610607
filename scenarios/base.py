# WORKFLOW: Rules shared by every scenario processor.
# Used by: Publication, withdrawal and hand-over processors
# Functions:
# 1. require_authority() - Fail fast when the analysis lacks an authority code
# 2. goal_identifier() - Derive the scenario's goal (doel) identifier
# 3. next_working_day() / next_monday() - Anchor dates for generated documents
# 4. consolidation_code() - Deterministic six-digit code for consolidated states
# 5. find_regulation_metadata() / build_decision_metadata() - Metadata block lookup and cloning
# 6. terminate_geo_document() - Insert/update the termination status of OW objects
# 7. build_order_document() - Submission-order (opdracht.xml) document
#
# Processor flow: Analysis -> Authority check -> Goal id + dates -> Metadata block -> Documents -> ScenarioResult

"""
Rules shared by every scenario processor.
"""

import hashlib
import logging
import zipfile
from datetime import date, timedelta
from typing import Iterable, List, Optional

from lxml import etree

from core.clock import Clock, system_clock
from core.config import Settings, settings
from core.exceptions import MissingRequiredIdentityError
from pipeline import namespaces as ns
from pipeline.archive import has_prefix, load_document
from pipeline.models import ArchiveAnalysis, GeneratedFile, Scenario, ScenarioResult
from pipeline.xml_utils import (
    child_elements, convert_to_namespace, find_first, iter_elements, local_name,
    new_root, parse_xml, qname, serialize, sub, text_of,
)

logger = logging.getLogger(__name__)

GOAL_TEMPLATES = {
    Scenario.PUBLICATION: "/join/id/proces/{authority}/{year}/Prog{program}PPD{year}{end_year}",
    Scenario.HANDOVER: "/join/id/proces/{authority}/{year}/Prog{program}PPD{year}{end_year}",
    Scenario.WITHDRAWAL: "/join/id/proces/{authority}/{year}/Intrekking{program}{year}",
}

PROGRAM_PREFIX = "Prg"


def require_authority(analysis: ArchiveAnalysis, scenario: Scenario) -> str:
    if not analysis.authority_code:
        logger.error(f"Cannot build {scenario.value} package: authority code missing")
        raise MissingRequiredIdentityError(scenario.value)
    return analysis.authority_code


def program_name(work_id: Optional[str], default: str = settings.default_program_name) -> str:
    """Program token from the last segment of a work id, ``Prg`` prefix stripped."""
    if not work_id:
        return default
    last = work_id.split("/")[-1]
    if last.lower().startswith(PROGRAM_PREFIX.lower()):
        return last[len(PROGRAM_PREFIX):]
    return default


def goal_identifier(scenario: Scenario, authority: str, work_id: Optional[str], year: int,
                    default_program: str = settings.default_program_name) -> str:
    """
    Derive the goal identifier threaded through a scenario's documents.

    Args:
        scenario: Scenario the identifier is generated for
        authority: Authority code (e.g. GM0001)
        work_id: FRBR work id of the regulation
        year: Current year

    Returns:
        Goal identifier, e.g. /join/id/proces/GM0001/2025/ProgClimatePPD20252029
    """
    return GOAL_TEMPLATES[scenario].format(
        authority=authority,
        year=year,
        end_year=year + 4,
        program=program_name(work_id, default_program),
    )


def next_working_day(today: date) -> date:
    candidate = today + timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


def next_monday(today: date) -> date:
    days = (7 - today.weekday()) % 7
    return today + timedelta(days=days or 7)


def consolidation_code(work_id: Optional[str]) -> str:
    """
    Deterministic six-digit code for a consolidated regulation.

    The first three bytes of the SHA-256 digest of the work id are read as a
    24-bit integer and reduced modulo one million.
    """
    if not work_id:
        return "000000"
    digest = hashlib.sha256(work_id.encode("utf-8")).digest()
    number = int.from_bytes(digest[:3], "big")
    return f"{number % 1_000_000:06d}"


def find_regulation_metadata(archive: zipfile.ZipFile):
    """
    The regulation's RegelingMetadata element.

    ``Regeling/Metadata.xml`` is tried first, then any entry ending in
    ``Metadata.xml`` whose path mentions the regulation folder.
    """
    candidates = [ns.METADATA_PATH] + [
        info.filename for info in archive.infolist()
        if info.filename.lower().endswith("metadata.xml") and "regeling" in info.filename.lower()
        and info.filename != ns.METADATA_PATH
    ]
    for path in candidates:
        root = load_document(archive, path)
        if root is None:
            continue
        # VersieMetadata.xml and similar documents carry no RegelingMetadata element
        metadata = find_first(root, ns.DATA_NS, "RegelingMetadata")
        if metadata is not None:
            logger.debug(f"Regulation metadata read from {path}")
            return metadata
    return None


def load_regulation_metadata(archive: zipfile.ZipFile) -> Optional[list]:
    """
    Children of the regulation's RegelingMetadata element.

    Returns:
        List of source elements, or None when no usable metadata document exists
    """
    metadata = find_regulation_metadata(archive)
    if metadata is None:
        return None
    return list(child_elements(metadata))


def fallback_metadata(authority: str, label: str) -> list:
    """Minimal metadata block used when the source carries none."""
    holder = new_root(ns.DATA_NS, "RegelingMetadata")
    organisation = f"/tooi/id/gemeente/{authority}"
    sub(holder, ns.DATA_NS, "officieleTitel", f"{authority} {label}")
    sub(holder, ns.DATA_NS, "eindverantwoordelijke", organisation)
    sub(holder, ns.DATA_NS, "maker", organisation)
    sub(holder, ns.DATA_NS, "soortBestuursorgaan", "/tooi/def/thes/kern/c_411b319c")
    subjects = sub(holder, ns.DATA_NS, "onderwerpen")
    sub(subjects, ns.DATA_NS, "onderwerp", "/tooi/def/concept/c_1c12723d")
    return list(child_elements(holder))


def build_decision_metadata(parent, elements: Iterable, dropped: Iterable[str] = ("soortRegeling",),
                            title_suffix: Optional[str] = None, attrib: Optional[dict] = None):
    """
    Append a BesluitMetadata block cloned from regulation metadata.

    Children are moved into the data namespace, the ``dropped`` elements are
    left out and ``soortProcedure`` is added when absent. With a
    ``title_suffix`` the official title and citation titles are suffixed.
    """
    block = sub(parent, ns.DATA_NS, "BesluitMetadata", attrib=attrib)
    dropped_names = {name.lower() for name in dropped}
    has_procedure = False

    for element in elements:
        name = local_name(element)
        if not name or name.lower() in dropped_names:
            continue
        clone = convert_to_namespace(element, ns.DATA_NS, block)
        clone.tail = None

        if name == "soortProcedure":
            has_procedure = True
        elif title_suffix and name == "officieleTitel":
            _set_text(clone, f"{text_of(clone).strip()} {title_suffix}")
        elif title_suffix and name == "heeftCiteertitelInformatie":
            for citation in [e for e in iter_elements(clone) if local_name(e) == "citeertitel"]:
                _set_text(citation, f"{text_of(citation).strip()} {title_suffix}")

    if not has_procedure:
        sub(block, ns.DATA_NS, "soortProcedure", ns.DEFAULT_PROCEDURE_TYPE)

    return block


def _set_text(element, value: str) -> None:
    for child in list(element):
        element.remove(child)
    element.text = value


def load_converted_root(archive: zipfile.ZipFile, path: str, namespace: str, parent=None):
    """Load a regulation document and clone its root into ``namespace``."""
    root = load_document(archive, path)
    if root is None:
        return None
    return convert_to_namespace(root, namespace, parent)


def is_geo_object_entry(name: str) -> bool:
    if not name.lower().endswith(".xml"):
        return False
    return has_prefix(name, ns.GEO_OBJECT_PREFIX) or ns.GEO_OBJECT_SEGMENT.lower() in name.lower()


def terminate_geo_document(content: bytes, path: str) -> Optional[bytes]:
    """
    Mark every OW object in a geo-object document as terminated.

    The status element is inserted as the first child of each object (or
    updated when present). Legal-text objects use the opobject namespace,
    all others the owobject namespace.

    Returns:
        New document bytes, or None when nothing had to change
    """
    root = parse_xml(content)
    path_is_legal_text = "regeltekst" in path.lower()
    modified = False

    for ow_object in [e for e in iter_elements(root) if local_name(e) == "owObject"]:
        target = next(child_elements(ow_object), None)
        if target is None:
            continue

        legal_text = path_is_legal_text or local_name(target).lower() == "regeltekst"
        status_ns = ns.OP_OBJECT_NS if legal_text else ns.OW_OBJECT_NS
        status_tag = qname(status_ns, "status")

        existing = next((c for c in child_elements(target) if c.tag == status_tag), None)
        if existing is not None:
            if text_of(existing) != ns.TERMINATION_STATUS:
                _set_text(existing, ns.TERMINATION_STATUS)
                modified = True
            continue

        nsmap = None
        if status_ns not in target.nsmap.values():
            nsmap = {"op" if legal_text else "ow": status_ns}
        status = etree.SubElement(target, status_tag, nsmap=nsmap)
        status.text = ns.TERMINATION_STATUS
        target.insert(0, status)
        if target.text is not None:
            status.tail = target.text
            # Leading text moves behind the status so the status stays first
            if target.text.strip():
                target.text = None
        modified = True

    if not modified:
        return None
    return serialize(root)


def build_order_document(root_name: str, delivery_id: str, publication: str,
                         announcement: date, party_id: str) -> bytes:
    """Submission order (opdracht.xml) for publication or validation."""
    root = new_root(ns.LVBB_NS, root_name, nsmap={None: ns.LVBB_NS})
    sub(root, ns.LVBB_NS, "idLevering", delivery_id)
    sub(root, ns.LVBB_NS, "idBevoegdGezag", party_id)
    sub(root, ns.LVBB_NS, "idAanleveraar", party_id)
    sub(root, ns.LVBB_NS, "publicatie", publication)
    sub(root, ns.LVBB_NS, "datumBekendmaking", announcement.isoformat())
    return serialize(root, standalone=True, indent="   ", crlf=True)


class ScenarioProcessor:
    """
    Base class for scenario processors.

    Subclasses build the scenario's documents in ``process``; the geo-object
    mutation pass defaults to no changes.
    """

    scenario: Scenario
    label: str = ""

    def __init__(self, clock: Optional[Clock] = None, config: Settings = settings):
        self.clock = clock or system_clock
        self.config = config

    def process(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                validation: bool = False) -> ScenarioResult:
        raise NotImplementedError

    def goal_id(self, analysis: ArchiveAnalysis) -> str:
        authority = require_authority(analysis, self.scenario)
        return goal_identifier(
            self.scenario, authority, analysis.work_id, self.clock.now().year,
            self.config.default_program_name,
        )

    def metadata_elements(self, archive: zipfile.ZipFile, authority: str) -> list:
        elements = load_regulation_metadata(archive)
        if elements is None:
            logger.info(f"No regulation metadata found; using fallback block for {authority}")
            return fallback_metadata(authority, self.label)
        return elements

    def geo_mutations(self, archive: zipfile.ZipFile) -> List[GeneratedFile]:
        return []

    def order_root_name(self, validation: bool) -> str:
        return "validatieOpdracht" if validation else "publicatieOpdracht"
