# WORKFLOW: End-to-end test suite for the STOP package transformation workflow.
# Used by: CI/CD pipelines, development testing, quality assurance
# Test scenarios:
# 1. Output archive content per scenario (names, order, manifests)
# 2. Determinism: same source and clock give byte-identical archives
# 3. Fatal errors leave no output behind
# 4. Default output naming and the transformation report
# 5. API endpoints (health, analyze, transform) and error mapping
# 6. CLI exit codes
#
# Testing flow: Sample package -> TransformationService / API -> Output ZIP -> Assert requirements

import zipfile
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from lxml import etree

from api.main import app
from api.routers import transform as transform_router
from core.config import settings
from core.exceptions import InputNotFoundError, MissingRequiredIdentityError
from pipeline import namespaces as ns
from pipeline.models import Scenario
from scripts import transform as transform_cli
from services.transformation_service import (
    TransformationService, default_output_path, report_path, write_archive, zip_timestamp,
)
from tests.samples import WORK_ID

PUBLICATION_FILES = [
    "IO-gebied.xml", "gebied.gml", "besluit.xml", "opdracht.xml", "kaart.png",
    "gebieden.xml", "regelteksten.xml", "manifest-ow.xml", "manifest.xml",
]
WITHDRAWAL_FILES = [
    "intrekkingsbesluit.xml", "opdracht.xml", "gebieden.xml", "regelteksten.xml",
    "manifest-ow.xml", "manifest.xml",
]
HANDOVER_FILES = [
    "proefversiebesluit.xml", "consolidaties.xml", "opdracht.xml", "kaart.png", "gebied.gml",
    "owGebied.xml", "owRegeltekst.xml", "manifest-ow.xml", "manifest.xml",
]


@pytest.fixture
def service(clock):
    return TransformationService(clock=clock)


def _manifest_names(archive: zipfile.ZipFile):
    root = etree.fromstring(archive.read(ns.MANIFEST_NAME))
    return [element.text for element in root.iter(f"{{{ns.LVBB_NS}}}bestandsnaam")]


class TestTransformationService:
    """Output archives built by the service for each scenario."""

    @pytest.mark.parametrize("scenario,expected", [
        (Scenario.PUBLICATION, PUBLICATION_FILES),
        (Scenario.WITHDRAWAL, WITHDRAWAL_FILES),
        (Scenario.HANDOVER, HANDOVER_FILES),
    ])
    def test_output_entries(self, service, source_zip, scenario, expected):
        result = service.transform(scenario, source_zip)

        with zipfile.ZipFile(result.output_path) as archive:
            names = archive.namelist()
            assert names == expected
            assert len({name.lower() for name in names}) == len(names)
            assert _manifest_names(archive) == names
        assert result.files == expected

    def test_entries_share_the_clock_timestamp(self, service, source_zip):
        result = service.transform(Scenario.PUBLICATION, source_zip)

        with zipfile.ZipFile(result.output_path) as archive:
            for info in archive.infolist():
                assert info.date_time == (2025, 3, 14, 10, 30, 0)
                assert info.compress_type == zipfile.ZIP_DEFLATED

    @pytest.mark.parametrize("scenario", [Scenario.PUBLICATION, Scenario.WITHDRAWAL, Scenario.HANDOVER])
    def test_output_is_deterministic(self, service, source_zip, tmp_path, scenario):
        first = service.transform(scenario, source_zip, output_path=str(tmp_path / "a.zip"))
        second = service.transform(scenario, source_zip, output_path=str(tmp_path / "b.zip"))

        assert Path(first.output_path).read_bytes() == Path(second.output_path).read_bytes()

    def test_withdrawal_output_terminates_geo_objects(self, service, source_zip):
        result = service.transform(Scenario.WITHDRAWAL, source_zip)

        with zipfile.ZipFile(result.output_path) as archive:
            areas = etree.fromstring(archive.read("gebieden.xml"))
            geo_manifest = etree.fromstring(archive.read("manifest-ow.xml"))

        statuses = [e.text for e in areas.iter(f"{{{ns.OW_OBJECT_NS}}}status")]
        assert statuses == [ns.TERMINATION_STATUS]
        assert geo_manifest.findtext(f".//{{{ns.MANIFEST_OW_NS}}}DoelID") == result.goal_id
        assert geo_manifest.findtext(f".//{{{ns.MANIFEST_OW_NS}}}WorkIDRegeling") == WORK_ID

    def test_withdrawal_manifest_leaves_out_information_object_documents(self, service, build_zip, source_entries):
        source_entries["bijlagen/IO-oud.xml"] = b"<oud/>"
        result = service.transform(Scenario.WITHDRAWAL, build_zip(source_entries))

        with zipfile.ZipFile(result.output_path) as archive:
            assert "IO-oud.xml" in archive.namelist()
            assert "IO-oud.xml" not in _manifest_names(archive)

    def test_missing_geo_files_skip_geo_manifest(self, service, build_zip, source_entries):
        for name in [name for name in source_entries if name.startswith("OW-bestanden/")]:
            source_entries.pop(name)

        result = service.transform(Scenario.PUBLICATION, build_zip(source_entries))
        assert "manifest-ow.xml" not in result.files

    def test_missing_authority_writes_nothing(self, service, build_zip, source_entries, tmp_path):
        source_entries.pop("Regeling/Metadata.xml")
        source = build_zip(source_entries)

        with pytest.raises(MissingRequiredIdentityError):
            service.transform(Scenario.PUBLICATION, source)

        assert sorted(path.name for path in tmp_path.iterdir()) == ["source.zip"]

    def test_missing_source_raises(self, service, tmp_path):
        with pytest.raises(InputNotFoundError):
            service.transform(Scenario.PUBLICATION, str(tmp_path / "missing.zip"))

    def test_default_output_and_report(self, service, source_zip, tmp_path):
        result = service.transform(Scenario.PUBLICATION, source_zip, validation=True)

        assert result.output_path == str(tmp_path.resolve() / "validatieOpdracht_initieel.zip")
        assert result.report_path == str(tmp_path.resolve() / "validatieOpdracht_initieel_rapport.txt")

        report = Path(result.report_path).read_text(encoding="utf-8")
        assert report.startswith("Rapport STOP Package Transformer\n")
        assert f"FRBR Work: {WORK_ID}" in report
        assert "Bevoegd gezag: GM0001" in report
        assert "Aantal informatieobjecten: 1" in report
        assert f"Doel-ID: {result.goal_id}" in report
        assert "- besluit.xml\n" in report


@pytest.mark.parametrize("scenario,validation,expected", [
    (Scenario.PUBLICATION, False, "publicatieOpdracht_initieel.zip"),
    (Scenario.WITHDRAWAL, False, "intrekkingOpdracht_initieel.zip"),
    (Scenario.WITHDRAWAL, True, "intrekkingValidatieOpdracht_initieel.zip"),
    (Scenario.HANDOVER, False, "doorleveringOpdracht_initieel.zip"),
])
def test_default_output_path(tmp_path, scenario, validation, expected):
    assert default_output_path(str(tmp_path / "bron.zip"), scenario, validation) == str(tmp_path.resolve() / expected)


def test_report_path():
    assert report_path("/tmp/uit/pakket.zip") == "/tmp/uit/pakket_rapport.txt"


def test_zip_timestamp_is_clamped_to_1980():
    assert zip_timestamp(datetime(1970, 1, 1)) == (1980, 1, 1, 0, 0, 0)


def test_failed_write_leaves_no_temporary_file(tmp_path, clock):
    class BrokenEntries:
        def __iter__(self):
            raise OSError("disk full")

        def __len__(self):
            return 0

    with pytest.raises(OSError):
        write_archive(BrokenEntries(), str(tmp_path / "uit.zip"), clock.now())

    assert list(tmp_path.iterdir()) == []


class TestApi:
    """Analysis and transformation endpoints."""

    def setup_method(self):
        self.client = TestClient(app)

    @pytest.fixture(autouse=True)
    def fixed_service(self, monkeypatch, clock, tmp_path):
        monkeypatch.setattr(transform_router, "get_service", lambda: TransformationService(clock=clock))
        monkeypatch.setattr(settings, "workspace_dir", str(tmp_path))

    def test_health_endpoint(self):
        response = self.client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_endpoint(self):
        response = self.client.get("/api/v1/readyz")

        assert response.status_code == 200
        assert response.json()["checks"] == {"xml_parser": True, "temp_storage": True}

    def test_analyze_endpoint(self, source_zip):
        response = self.client.post("/api/v1/analyze", json={"source_path": source_zip})

        assert response.status_code == 200
        data = response.json()
        assert data["work_id"] == WORK_ID
        assert data["authority_code"] == "GM0001"
        assert data["reference_count"] == 1
        assert data["information_objects"][0]["folder"] == "IO-gebied"

    def test_request_must_name_a_zip(self, tmp_path):
        response = self.client.post("/api/v1/analyze", json={"source_path": str(tmp_path / "bron.txt")})
        assert response.status_code == 422

    def test_transform_endpoint(self, source_zip):
        response = self.client.post(
            "/api/v1/transform", json={"source_path": source_zip, "scenario": "handover"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["scenario"] == "handover"
        assert data["files"] == HANDOVER_FILES
        assert Path(data["output_path"]).name == "doorleveringOpdracht_initieel.zip"

    def test_transform_missing_source(self, tmp_path):
        response = self.client.post(
            "/api/v1/transform", json={"source_path": str(tmp_path / "missing.zip"), "scenario": "publication"}
        )
        assert response.status_code == 404

    def test_transform_missing_authority(self, build_zip, source_entries):
        source_entries.pop("Regeling/Metadata.xml")

        response = self.client.post(
            "/api/v1/transform", json={"source_path": build_zip(source_entries), "scenario": "withdrawal"}
        )
        assert response.status_code == 422

    def test_unknown_scenario_is_rejected(self, source_zip):
        response = self.client.post("/api/v1/transform", json={"source_path": source_zip, "scenario": "merge"})
        assert response.status_code == 422

    def test_relative_source_is_read_from_workspace(self, source_zip):
        response = self.client.post("/api/v1/analyze", json={"source_path": "source.zip"})

        assert response.status_code == 200
        assert response.json()["work_id"] == WORK_ID

    def test_source_outside_workspace_is_forbidden(self, tmp_path):
        escaped = str(tmp_path / ".." / "elders.zip")

        assert self.client.post("/api/v1/analyze", json={"source_path": escaped}).status_code == 403
        response = self.client.post(
            "/api/v1/transform", json={"source_path": "../elders.zip", "scenario": "publication"}
        )
        assert response.status_code == 403

    def test_output_outside_workspace_is_forbidden(self, source_zip, tmp_path):
        escaped = tmp_path / ".." / "uit_elders.zip"

        response = self.client.post(
            "/api/v1/transform",
            json={"source_path": source_zip, "scenario": "publication", "output_path": str(escaped)},
        )

        assert response.status_code == 403
        assert not escaped.resolve().exists()
        assert sorted(path.name for path in tmp_path.iterdir()) == ["source.zip"]


class TestCli:
    """Exit codes of the command-line entry point."""

    def test_transform_succeeds(self, source_zip, tmp_path):
        output = str(tmp_path / "uit.zip")
        assert transform_cli.main(["transform", "publication", source_zip, "--output", output]) == 0
        assert Path(output).is_file()

    def test_missing_source(self, tmp_path):
        assert transform_cli.main(["analyze", str(tmp_path / "missing.zip")]) == 1

    def test_missing_authority(self, build_zip, source_entries):
        source_entries.pop("Regeling/Metadata.xml")
        assert transform_cli.main(["transform", "withdrawal", build_zip(source_entries)]) == 2
