# WORKFLOW: End-to-end transformation of a source package into a scenario package.
# Used by: API transform/analyze endpoints, CLI
# Functions:
# 1. TransformationService.analyze() - Analyse a source package on disk
# 2. TransformationService.build_entries() - Scenario documents + assembled source entries + manifests
# 3. TransformationService.transform() - Full run: build, write archive atomically, write report
# 4. write_archive() - Deterministic ZIP writer (temp file + os.replace)
# 5. default_output_path() / report_path() - Naming conventions next to the source package
#
# Service flow: Source ZIP -> Analyze -> Scenario processor -> Assemble -> manifest-ow.xml -> manifest.xml
#               -> Temp ZIP -> os.replace -> Report
# Fatal errors are raised before the output archive is moved into place.

"""
End-to-end transformation of a source package into a scenario package.
"""

import logging
import os
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from core.clock import Clock, system_clock
from core.config import Settings, settings
from pipeline import namespaces as ns
from pipeline.analyzer import analyze_archive
from pipeline.archive import open_source_archive
from pipeline.assembler import AssemblyPolicy, assemble, build_geo_manifest
from pipeline.manifest import build_manifest
from pipeline.models import (
    ArchiveAnalysis, EntryKind, OutputEntrySet, Scenario, ScenarioResult, TransformationResult,
)
from pipeline.report import write_report
from scenarios import get_processor

logger = logging.getLogger(__name__)

OUTPUT_NAMES = {
    (Scenario.PUBLICATION, False): "publicatieOpdracht_initieel.zip",
    (Scenario.PUBLICATION, True): "validatieOpdracht_initieel.zip",
    (Scenario.WITHDRAWAL, False): "intrekkingOpdracht_initieel.zip",
    (Scenario.WITHDRAWAL, True): "intrekkingValidatieOpdracht_initieel.zip",
    (Scenario.HANDOVER, False): "doorleveringOpdracht_initieel.zip",
    (Scenario.HANDOVER, True): "doorleveringValidatieOpdracht_initieel.zip",
}


def default_output_path(source_path: str, scenario: Scenario, validation: bool = False) -> str:
    directory = Path(source_path).resolve().parent
    return str(directory / OUTPUT_NAMES[(Scenario(scenario), validation)])


def report_path(output_path: str, suffix: str = settings.report_suffix) -> str:
    output = Path(output_path)
    return str(output.with_name(f"{output.stem}{suffix}.txt"))


def zip_timestamp(instant: datetime) -> Tuple[int, int, int, int, int, int]:
    # ZIP cannot store dates before 1980
    if instant.year < 1980:
        return (1980, 1, 1, 0, 0, 0)
    return (instant.year, instant.month, instant.day, instant.hour, instant.minute, instant.second)


def write_archive(entries: OutputEntrySet, output_path: str, instant: datetime,
                  compression_level: int = settings.zip_compression_level) -> str:
    """
    Write the entry set as a ZIP archive, atomically.

    The archive is written to a temporary file in the target directory and
    moved into place with ``os.replace``; the temporary file is removed when
    writing fails. Every entry gets the same timestamp so that equal input
    produces byte-identical archives.
    """
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.parent / f".tmp_{target.name}_{os.getpid()}"
    date_time = zip_timestamp(instant)

    try:
        with zipfile.ZipFile(tmp_path, "w") as archive:
            for entry in entries:
                info = zipfile.ZipInfo(entry.name, date_time=date_time)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, entry.content, compresslevel=compression_level)
        os.replace(tmp_path, target)
    except Exception as e:
        logger.error(f"Writing output archive {output_path} failed: {e}")
        if tmp_path.exists():
            tmp_path.unlink()
        raise

    logger.info(f"Wrote {len(entries)} entries to {output_path}")
    return str(target)


class TransformationService:
    """Runs analysis, scenario processing and assembly for one source package per call."""

    def __init__(self, clock: Optional[Clock] = None, config: Settings = settings):
        self.clock = clock or system_clock
        self.config = config

    def analyze(self, source_path: str) -> ArchiveAnalysis:
        with open_source_archive(source_path) as archive:
            return analyze_archive(archive)

    def build_entries(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis, scenario: Scenario,
                      validation: bool = False) -> Tuple[OutputEntrySet, ScenarioResult]:
        """
        Build the complete output entry set in memory.

        Args:
            archive: Opened source archive
            analysis: Analysis of ``archive``
            scenario: Scenario to build
            validation: Build a validation delivery instead of a publication

        Returns:
            (entry set including both manifests, scenario result)

        Raises:
            MissingRequiredIdentityError: If the analysis has no authority code
        """
        scenario = Scenario(scenario)
        processor = get_processor(scenario, clock=self.clock, config=self.config)
        result = processor.process(archive, analysis, validation=validation)

        entries = OutputEntrySet()
        entries.add_files(result.information_object_files, EntryKind.INFORMATION_OBJECT)
        entries.add_files(result.documents, EntryKind.GENERATED)
        entries.add_files(result.modified_files, EntryKind.GEO_OBJECT)

        assemble(archive, entries, AssemblyPolicy.for_scenario(scenario))

        geo_manifest = build_geo_manifest(entries, result.goal_id, analysis.work_id)
        if geo_manifest is not None:
            entries.add(ns.GEO_MANIFEST_NAME, geo_manifest, EntryKind.GENERATED)

        manifest = build_manifest(entries.names, withdrawal=scenario == Scenario.WITHDRAWAL)
        entries.add(ns.MANIFEST_NAME, manifest, EntryKind.MANIFEST)
        return entries, result

    def transform(self, scenario: Scenario, source_path: str, output_path: Optional[str] = None,
                  validation: bool = False) -> TransformationResult:
        """
        Transform a source package and write the output archive and report.

        Args:
            scenario: publication, withdrawal or handover
            source_path: Source ZIP on disk
            output_path: Target ZIP; defaults to the scenario's name next to the source
            validation: Build a validation delivery

        Returns:
            TransformationResult with output/report paths and the archive's file list

        Raises:
            InputNotFoundError: If the source archive does not exist
            MissingRequiredIdentityError: If the source carries no authority code
        """
        scenario = Scenario(scenario)
        output_path = output_path or default_output_path(source_path, scenario, validation)
        logger.info(f"Transforming {source_path} ({scenario.value}, validation={validation}) -> {output_path}")

        with open_source_archive(source_path) as archive:
            analysis = analyze_archive(archive)
            entries, result = self.build_entries(archive, analysis, scenario, validation)

        write_archive(entries, output_path, self.clock.now(), self.config.zip_compression_level)

        files = entries.names
        report = write_report(
            report_path(output_path, self.config.report_suffix), analysis, output_path, files, result.goal_id
        )
        return TransformationResult(
            output_path=output_path,
            report_path=report,
            files=files,
            goal_id=result.goal_id,
            scenario=scenario,
            validation=validation,
        )
