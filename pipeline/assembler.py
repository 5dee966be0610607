# WORKFLOW: Assembly of the output entry set from the source archive.
# Used by: Transformation service
# Functions:
# 1. AssemblyPolicy.for_scenario() - Per-scenario inclusion/rename rules
# 2. assemble() - Copy remaining source entries into the entry set (first writer wins)
# 3. target_name() - Decide the flattened output name of one source entry (or None to drop it)
# 4. build_geo_manifest() - Regenerate manifest-ow.xml over the geo-object files in the output
#
# Assembly flow: Generated entries claim names -> Source entries in archive order -> Policy -> Dedup -> manifest-ow.xml

"""
Assembly of the output entry set from the source archive.

Generated documents and modified files are added to the entry set before
``assemble`` runs, so a source entry whose output name is already taken
is skipped.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from lxml import etree

from pipeline import namespaces as ns
from pipeline.archive import basename, extension, has_prefix, is_directory
from pipeline.models import EntryKind, OutputEntrySet, Scenario
from pipeline.xml_utils import child_elements, iter_elements, local_name, new_root, parse_xml, serialize, sub

logger = logging.getLogger(__name__)

HANDOVER_RENAMES = {
    "divisieteksten.xml": "divisieaanduidingen.xml",
    "regelingsgebieden.xml": "regelingsgebied.xml",
    "regelingsgebied.xml": "owRegelingsgebied.xml",
    "gebieden.xml": "owGebied.xml",
    "gebiedengroepen.xml": "owGebiedengroep.xml",
    "regelteksten.xml": "owRegeltekst.xml",
    "regelsvooriedereen.xml": "owRegelVoorIedereen.xml",
    "ambtsgebieden.xml": "owAmbtsgebied.xml",
}

STRAY_DIVISIONS_NAME = "divisies.xml"

# Names that are always regenerated, never copied
REGENERATED_NAMES = frozenset({ns.GEO_MANIFEST_NAME.lower(), ns.MANIFEST_NAME.lower()})


@dataclass(frozen=True)
class AssemblyPolicy:
    """Inclusion and rename rules for copying source entries."""

    drop_information_objects: bool = False
    drop_regulation: bool = False
    skip_stray_divisions: bool = False
    renames: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_scenario(cls, scenario: Scenario) -> "AssemblyPolicy":
        scenario = Scenario(scenario)
        if scenario == Scenario.WITHDRAWAL:
            return cls(drop_information_objects=True, drop_regulation=True)
        if scenario == Scenario.HANDOVER:
            return cls(skip_stray_divisions=True, renames=HANDOVER_RENAMES)
        return cls()

    def rename(self, name: str) -> str:
        return self.renames.get(name.lower(), name)


def target_name(name: str, policy: AssemblyPolicy) -> Optional[Tuple[str, EntryKind]]:
    """
    Output name and kind for one source entry.

    Returns:
        (name, kind), or None when the entry is not copied
    """
    bare = basename(name)
    if not bare or bare.lower() == ns.PACKING_LIST_NAME:
        return None
    if bare.lower() in REGENERATED_NAMES:
        return None

    if has_prefix(name, ns.INFORMATION_OBJECT_PREFIX):
        if policy.drop_information_objects or bare.lower() in ns.INFORMATION_OBJECT_METADATA_NAMES:
            return None
        if extension(bare) not in ns.PAYLOAD_EXTENSION_PRIORITY + (".xml",):
            return None
        return bare, EntryKind.INFORMATION_OBJECT

    if has_prefix(name, ns.REGULATION_PREFIX):
        if policy.drop_regulation or extension(bare) not in ns.IMAGE_EXTENSIONS:
            return None
        return bare, EntryKind.REGULATION_IMAGE

    if has_prefix(name, ns.GEO_OBJECT_PREFIX):
        return policy.rename(bare), EntryKind.GEO_OBJECT

    if policy.skip_stray_divisions and bare.lower() == STRAY_DIVISIONS_NAME:
        return None

    if ns.GEO_OBJECT_SEGMENT.lower() in name.lower():
        return bare, EntryKind.GEO_OBJECT
    return bare, EntryKind.OTHER


def assemble(archive: zipfile.ZipFile, entries: OutputEntrySet, policy: AssemblyPolicy) -> OutputEntrySet:
    """
    Copy the remaining source entries into ``entries``.

    Args:
        archive: Source archive, read in archive order
        entries: Entry set already holding generated and modified files
        policy: Scenario inclusion/rename rules

    Returns:
        The same entry set, extended
    """
    copied = 0
    for info in archive.infolist():
        if is_directory(info):
            continue

        target = target_name(info.filename, policy)
        if target is None:
            logger.debug(f"Dropping source entry {info.filename}")
            continue

        name, kind = target
        if name in entries:
            logger.debug(f"Skipping {info.filename}: {name} already present")
            continue

        entries.add(name, archive.read(info), kind)
        copied += 1

    logger.info(f"Copied {copied} source entries; output now holds {len(entries)} entries")
    return entries


def object_types(content: bytes, name: str) -> List[str]:
    """Distinct local names of the objects wrapped by ``owObject`` elements, in document order."""
    try:
        root = parse_xml(content)
    except etree.XMLSyntaxError as e:
        logger.warning(f"Cannot read object types from {name}: {e}")
        return []

    found: List[str] = []
    for ow_object in [e for e in iter_elements(root) if local_name(e) == "owObject"]:
        for child in child_elements(ow_object):
            if local_name(child) not in found:
                found.append(local_name(child))
            break
    return found


def build_geo_manifest(entries: OutputEntrySet, goal_id: str, work_id: Optional[str]) -> Optional[bytes]:
    """
    Regenerate manifest-ow.xml for the geo-object files in ``entries``.

    Returns:
        Serialized manifest, or None when the output holds no geo-object files
    """
    geo_files = sorted(
        entry.name for entry in entries.of_kind(EntryKind.GEO_OBJECT)
        if entry.name.lower() != ns.GEO_MANIFEST_NAME and extension(entry.name) == ".xml"
    )
    if not geo_files:
        return None

    root = new_root(ns.MANIFEST_OW_NS, "Aanleveringen", nsmap={None: ns.MANIFEST_OW_NS})
    sub(root, ns.MANIFEST_OW_NS, "domein", "omgevingswet")
    delivery = sub(root, ns.MANIFEST_OW_NS, "Aanlevering")
    sub(delivery, ns.MANIFEST_OW_NS, "WorkIDRegeling", work_id or "")
    sub(delivery, ns.MANIFEST_OW_NS, "DoelID", goal_id)

    for name in geo_files:
        listed = sub(delivery, ns.MANIFEST_OW_NS, "Bestand")
        sub(listed, ns.MANIFEST_OW_NS, "naam", name)
        for object_type in object_types(entries.get(name).content, name):
            sub(listed, ns.MANIFEST_OW_NS, "objecttype", object_type)

    return serialize(root, standalone=True, indent="  ")
