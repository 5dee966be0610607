# WORKFLOW: Tests for output assembly and manifest-ow.xml regeneration.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Per-scenario inclusion rules and flattened names
# 2. Hand-over renames and stray divisies.xml
# 3. Case-insensitive first-writer-wins deduplication
# 4. manifest-ow.xml listing and object types

import zipfile

import pytest
from lxml import etree

from pipeline import namespaces as ns
from pipeline.assembler import AssemblyPolicy, assemble, build_geo_manifest, object_types, target_name
from pipeline.models import EntryKind, OutputEntrySet, Scenario
from tests.samples import GEBIEDEN, REGELTEKSTEN, WORK_ID

PUBLICATION = AssemblyPolicy.for_scenario(Scenario.PUBLICATION)
WITHDRAWAL = AssemblyPolicy.for_scenario(Scenario.WITHDRAWAL)
HANDOVER = AssemblyPolicy.for_scenario(Scenario.HANDOVER)


@pytest.mark.parametrize("name,expected", [
    ("pakbon.xml", None),
    ("Regeling/", None),
    ("OW-bestanden/manifest-ow.xml", None),
    ("manifest.xml", None),
    ("IO-gebied/Identificatie.xml", None),
    ("IO-gebied/VersieMetadata.xml", None),
    ("IO-gebied/gebied.gml", ("gebied.gml", EntryKind.INFORMATION_OBJECT)),
    ("IO-gebied/notitie.txt", None),
    ("Regeling/kaart.png", ("kaart.png", EntryKind.REGULATION_IMAGE)),
    ("Regeling/Tekst.xml", None),
    ("OW-bestanden/gebieden.xml", ("gebieden.xml", EntryKind.GEO_OBJECT)),
    ("extra/OW/locaties.xml", ("locaties.xml", EntryKind.GEO_OBJECT)),
    ("bijlagen/toelichting.pdf", ("toelichting.pdf", EntryKind.OTHER)),
    ("divisies.xml", ("divisies.xml", EntryKind.OTHER)),
])
def test_publication_target_names(name, expected):
    assert target_name(name, PUBLICATION) == expected


@pytest.mark.parametrize("name", ["IO-gebied/gebied.gml", "Regeling/kaart.png"])
def test_withdrawal_drops_information_objects_and_regulation(name):
    assert target_name(name, WITHDRAWAL) is None


@pytest.mark.parametrize("name,expected", [
    ("OW-bestanden/gebieden.xml", "owGebied.xml"),
    ("OW-bestanden/Regelteksten.xml", "owRegeltekst.xml"),
    ("OW-bestanden/regelingsgebieden.xml", "regelingsgebied.xml"),
    ("OW-bestanden/regelingsgebied.xml", "owRegelingsgebied.xml"),
    ("OW-bestanden/activiteiten.xml", "activiteiten.xml"),
])
def test_handover_renames(name, expected):
    assert target_name(name, HANDOVER) == (expected, EntryKind.GEO_OBJECT)


def test_handover_skips_stray_divisions():
    assert target_name("divisies.xml", HANDOVER) is None
    assert target_name("OW-bestanden/divisies.xml", HANDOVER) == ("divisies.xml", EntryKind.GEO_OBJECT)


def test_generated_entries_win_over_source(build_zip):
    path = build_zip({
        "OW-bestanden/gebieden.xml": GEBIEDEN,
        "extra/GEBIEDEN.XML": b"<later/>",
        "bijlagen/besluit.xml": b"<bron/>",
    })
    entries = OutputEntrySet()
    entries.add("besluit.xml", b"<gegenereerd/>", EntryKind.GENERATED)

    with zipfile.ZipFile(path) as archive:
        assemble(archive, entries, PUBLICATION)

    assert entries.names == ["besluit.xml", "gebieden.xml"]
    assert entries.get("BESLUIT.XML").content == b"<gegenereerd/>"
    assert entries.get("gebieden.xml").content == GEBIEDEN


def test_entry_set_first_writer_wins():
    entries = OutputEntrySet()

    assert entries.add("Besluit.xml", b"1", EntryKind.GENERATED)
    assert not entries.add("besluit.XML", b"2", EntryKind.OTHER)
    assert not entries.add("", b"3", EntryKind.OTHER)

    assert len(entries) == 1
    assert "BESLUIT.xml" in entries
    assert entries.of_kind(EntryKind.OTHER) == []


def test_entry_set_folds_case_per_character():
    entries = OutputEntrySet()

    assert entries.add("Straße.xml", b"1", EntryKind.OTHER)
    assert entries.add("STRASSE.xml", b"2", EntryKind.OTHER)

    assert entries.names == ["Straße.xml", "STRASSE.xml"]


def test_object_types():
    assert object_types(GEBIEDEN, "gebieden.xml") == ["Gebied"]
    assert object_types(REGELTEKSTEN, "regelteksten.xml") == ["Regeltekst"]
    assert object_types(b"<niet-af", "kapot.xml") == []


def test_geo_manifest_lists_geo_files():
    entries = OutputEntrySet()
    entries.add("regelteksten.xml", REGELTEKSTEN, EntryKind.GEO_OBJECT)
    entries.add("gebieden.xml", GEBIEDEN, EntryKind.GEO_OBJECT)
    entries.add("besluit.xml", b"<besluit/>", EntryKind.GENERATED)

    content = build_geo_manifest(entries, "/join/id/proces/GM0001/2025/Doel", WORK_ID)

    root = etree.fromstring(content)
    manifest_ns = ns.MANIFEST_OW_NS
    assert root.findtext(f"{{{manifest_ns}}}domein") == "omgevingswet"
    delivery = root.find(f"{{{manifest_ns}}}Aanlevering")
    assert delivery.findtext(f"{{{manifest_ns}}}WorkIDRegeling") == WORK_ID
    assert delivery.findtext(f"{{{manifest_ns}}}DoelID") == "/join/id/proces/GM0001/2025/Doel"

    listed = delivery.findall(f"{{{manifest_ns}}}Bestand")
    assert [item.findtext(f"{{{manifest_ns}}}naam") for item in listed] == ["gebieden.xml", "regelteksten.xml"]
    assert [item.findtext(f"{{{manifest_ns}}}objecttype") for item in listed] == ["Gebied", "Regeltekst"]
    assert b"standalone='yes'" in content


def test_geo_manifest_needs_geo_files():
    entries = OutputEntrySet()
    entries.add("besluit.xml", b"<besluit/>", EntryKind.GENERATED)

    assert build_geo_manifest(entries, "doel", WORK_ID) is None
