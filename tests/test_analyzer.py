# WORKFLOW: Tests for source package analysis.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Identifiers, goal and authority from the regulation documents
# 2. Information-object discovery, payload selection and digests
# 3. Cross-reference resolution (expression first, work second, last wins)
# 4. Missing documents and missing archives

import hashlib
import zipfile

import pytest

from core.exceptions import InputNotFoundError
from pipeline.analyzer import (
    analyze_archive, analyze_path, discover_information_object_folders, parse_authority_code,
    resolve_references, select_payload,
)
from pipeline.models import ExternalReference, InformationObjectRecord
from tests.samples import (
    EXPRESSION_ID, GML_PAYLOAD, IO_EXPRESSION_ID, IO_WORK_ID, REFERENCE_EID, WORK_ID,
)


def test_analyze_sample_package(source_zip):
    analysis = analyze_path(source_zip)

    assert analysis.work_id == WORK_ID
    assert analysis.expression_id == EXPRESSION_ID
    assert analysis.goal == "/join/id/proces/gm0001/2025/Bron"
    assert analysis.authority_code == "GM0001"
    assert analysis.information_object_count == 1
    assert analysis.geo_payload_size == len(GML_PAYLOAD)
    assert len(analysis.external_references) == 1


def test_information_object_record(source_zip):
    record = analyze_path(source_zip).information_objects[0]

    assert record.folder == "IO-gebied"
    assert record.work_id == IO_WORK_ID
    assert record.expression_id == IO_EXPRESSION_ID
    assert record.title == "Gebied"
    assert record.payload_name == "gebied.gml"
    assert record.payload_digest == hashlib.sha512(GML_PAYLOAD).hexdigest()
    assert record.external_ref_element_id == REFERENCE_EID


def test_missing_archive_raises(tmp_path):
    with pytest.raises(InputNotFoundError) as exc_info:
        analyze_path(str(tmp_path / "missing.zip"))
    assert exc_info.value.path.endswith("missing.zip")
    assert isinstance(exc_info.value, FileNotFoundError)


def test_empty_archive_degrades_to_defaults(build_zip):
    analysis = analyze_path(build_zip({"readme.txt": b"leeg"}))

    assert analysis.work_id is None
    assert analysis.authority_code is None
    assert analysis.information_object_count == 0
    assert analysis.information_objects == []
    assert analysis.external_references == []


def test_unqualified_documents_use_local_name_fallback(build_zip):
    path = build_zip({
        "Regeling/Identificatie.xml": b"<Identificatie><frbrwork> /akn/nl/act/x </frbrwork></Identificatie>",
    })
    assert analyze_path(path).work_id == "/akn/nl/act/x"


@pytest.mark.parametrize("maker,expected", [
    ("/tooi/id/gemeente/GM0001", "GM0001"),
    ("/tooi/id/provincie/pv26", "pv26"),
    ("/tooi/id/Waterschap/ws0155/", "ws0155"),
    ("/tooi/id/vereniging/X1", None),
    ("GM0001", None),
    (None, None),
])
def test_parse_authority_code(maker, expected):
    assert parse_authority_code(maker) == expected


def test_information_object_folders_are_deduplicated_and_sorted(build_zip):
    path = build_zip({
        "IO-b/x.gml": b"<x/>",
        "io-B/y.gml": b"<y/>",
        "IO-a/z.pdf": b"%PDF",
        "Regeling/IO-not.xml": b"<n/>",
    })
    with zipfile.ZipFile(path) as archive:
        assert discover_information_object_folders(archive) == ["IO-a", "IO-b"]


def test_geo_payload_preferred_over_document(build_zip):
    path = build_zip({
        "IO-kaart/kaart.pdf": b"%PDF",
        "IO-kaart/kaart.gml": b"<gml/>",
    })
    with zipfile.ZipFile(path) as archive:
        assert select_payload(archive, "IO-kaart").filename == "IO-kaart/kaart.gml"

        analysis = analyze_archive(archive)
    assert analysis.information_objects[0].payload_name == "kaart.gml"
    assert analysis.geo_payload_size == len(b"<gml/>")


def _record(folder, work=None, expression=None):
    return InformationObjectRecord(folder=folder, work_id=work, expression_id=expression)


def test_reference_matches_expression_id_case_insensitively():
    records = [_record("IO-a", "/w/a", "/w/a/nld@1")]
    references = [ExternalReference(ref="/W/A/NLD@1", element_id="ref_1")]

    assert resolve_references(records, references) == {"io-a": "ref_1"}


def test_expression_match_takes_priority_over_work_match():
    records = [
        _record("IO-a", work="/shared", expression="/a/nld@1"),
        _record("IO-b", work="/b", expression="/shared"),
    ]
    references = [ExternalReference(ref="/shared", element_id="ref_1")]

    assert resolve_references(records, references) == {"io-b": "ref_1"}


def test_reference_falls_back_to_work_id():
    records = [_record("IO-a", work="/w/a", expression="/w/a/nld@1")]
    references = [ExternalReference(ref="/w/a", element_id="ref_1")]

    assert resolve_references(records, references) == {"io-a": "ref_1"}


def test_unmatched_and_blank_references_change_nothing():
    records = [_record("IO-a", work="/w/a", expression="/w/a/nld@1")]
    references = [
        ExternalReference(ref="/other", element_id="ref_1"),
        ExternalReference(ref="", element_id="ref_2"),
        ExternalReference(ref="/w/a", element_id=None),
    ]

    assert resolve_references(records, references) == {}


def test_last_reference_to_a_record_wins():
    records = [_record("IO-a", work="/w/a", expression="/w/a/nld@1")]
    references = [
        ExternalReference(ref="/w/a/nld@1", element_id="ref_1"),
        ExternalReference(ref="/w/a", element_id="ref_2"),
    ]

    assert resolve_references(records, references) == {"io-a": "ref_2"}


def test_analysis_is_immutable(source_zip):
    analysis = analyze_path(source_zip)
    with pytest.raises(Exception):
        analysis.work_id = "changed"
