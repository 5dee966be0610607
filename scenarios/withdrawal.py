# WORKFLOW: Withdrawal (intrekking) packages that retract a published regulation.
# Used by: Transformation service (scenario "withdrawal")
# Functions:
# 1. WithdrawalProcessor.process() - Build intrekkingsbesluit.xml and opdracht.xml
# 2. withdrawal_work_id() - Decision work id derived from the regulation work id
# 3. WithdrawalProcessor.geo_mutations() - Terminate every OW object in the geo-object files
#
# Withdrawal flow: Analysis -> Goal id -> Metadata (titles suffixed) -> Decision -> Order -> Geo mutations

import logging
import re
import zipfile
from datetime import date
from typing import List

from pipeline import namespaces as ns
from pipeline.archive import basename
from pipeline.models import ArchiveAnalysis, GeneratedFile, Scenario, ScenarioResult
from pipeline.xml_utils import new_root, serialize, sub
from scenarios.base import (
    ScenarioProcessor, build_decision_metadata, build_order_document, fallback_metadata,
    is_geo_object_entry, load_regulation_metadata, next_working_day, require_authority,
    terminate_geo_document,
)

logger = logging.getLogger(__name__)

DECISION_NAME = "intrekkingsbesluit.xml"
TITLE_SUFFIX = "intrekking"

_ACT_PATTERN = re.compile(re.escape("/akn/nl/act"), re.IGNORECASE)
_WITHDRAWAL_PATTERN = re.compile(re.escape("/intrekking"), re.IGNORECASE)


def withdrawal_work_id(work_id: str) -> str:
    """``/akn/nl/act/...`` becomes ``/akn/nl/bill/...`` and ``/intrekking`` becomes ``_intrekking``."""
    work = _ACT_PATTERN.sub("/akn/nl/bill", work_id).rstrip("/")
    return _WITHDRAWAL_PATTERN.sub("_intrekking", work)


class WithdrawalProcessor(ScenarioProcessor):
    """Builds withdrawal deliveries and terminates the regulation's OW objects."""

    scenario = Scenario.WITHDRAWAL
    label = "intrekking"

    def process(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                validation: bool = False) -> ScenarioResult:
        authority = require_authority(analysis, self.scenario)
        goal_id = self.goal_id(analysis)

        now = self.clock.now()
        effective = next_working_day(self.clock.today())

        decision = self.build_decision_document(archive, analysis, authority, goal_id, effective)

        kind = "val" if validation else "pub"
        order = build_order_document(
            self.order_root_name(validation),
            f"OTST_{kind}_intr_{authority}_{now:%Y%m%d}_{now:%H%M%S}",
            DECISION_NAME,
            effective,
            self.config.delivery_party_id,
        )

        modified = self.geo_mutations(archive)
        logger.info(f"Built withdrawal documents for {authority}: goal={goal_id}, terminated files={len(modified)}")

        return ScenarioResult(
            scenario=self.scenario,
            documents=[
                GeneratedFile(name=DECISION_NAME, content=decision),
                GeneratedFile(name=ns.ORDER_NAME, content=order),
            ],
            modified_files=modified,
            goal_id=goal_id,
        )

    def build_decision_document(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                                authority: str, goal_id: str, effective: date) -> bytes:
        work = withdrawal_work_id(analysis.work_id or "")

        root = new_root(
            ns.AANLEVERING_NS, "AanleveringBesluit",
            nsmap={None: ns.AANLEVERING_NS, "data": ns.DATA_NS, "tekst": ns.TEKST_NS, "xsi": ns.XSI_NS},
            attrib={"schemaversie": "1.2.0"},
        )
        version = sub(root, ns.AANLEVERING_NS, "BesluitVersie")

        identification = sub(version, ns.DATA_NS, "ExpressionIdentificatie")
        sub(identification, ns.DATA_NS, "FRBRWork", work)
        sub(identification, ns.DATA_NS, "FRBRExpression", f"{work}/nld@{self.clock.today().isoformat()};1")
        sub(identification, ns.DATA_NS, "soortWork", "/join/id/stop/work_003")

        # Titles are only suffixed when they come from the source metadata
        elements = load_regulation_metadata(archive)
        if elements is None:
            logger.info(f"No regulation metadata found; using fallback block for {authority}")
            build_decision_metadata(version, fallback_metadata(authority, self.label),
                                    attrib={"schemaversie": "1.3.0"})
        else:
            build_decision_metadata(version, elements, title_suffix=TITLE_SUFFIX,
                                    attrib={"schemaversie": "1.3.0"})

        procedure = sub(version, ns.DATA_NS, "Procedureverloop")
        sub(procedure, ns.DATA_NS, "bekendOp", effective.isoformat())
        steps = sub(procedure, ns.DATA_NS, "procedurestappen")
        step = sub(steps, ns.DATA_NS, "Procedurestap")
        sub(step, ns.DATA_NS, "soortStap", "/join/id/stop/procedure/stap_003")
        sub(step, ns.DATA_NS, "voltooidOp", effective.isoformat())

        consolidation = sub(version, ns.DATA_NS, "ConsolidatieInformatie")
        withdrawals = sub(consolidation, ns.DATA_NS, "Intrekkingen")
        withdrawal = sub(withdrawals, ns.DATA_NS, "Intrekking")
        goals = sub(withdrawal, ns.DATA_NS, "doelen")
        sub(goals, ns.DATA_NS, "doel", goal_id)
        sub(withdrawal, ns.DATA_NS, "instrument", analysis.work_id or "")
        sub(withdrawal, ns.DATA_NS, "eId", "art_I")
        timestamps = sub(consolidation, ns.DATA_NS, "Tijdstempels")
        timestamp = sub(timestamps, ns.DATA_NS, "Tijdstempel")
        sub(timestamp, ns.DATA_NS, "doel", goal_id)
        sub(timestamp, ns.DATA_NS, "soortTijdstempel", "juridischWerkendVanaf")
        sub(timestamp, ns.DATA_NS, "datum", effective.isoformat())
        sub(timestamp, ns.DATA_NS, "eId", "art_I")

        compact = sub(version, ns.TEKST_NS, "BesluitCompact")
        heading = sub(compact, ns.TEKST_NS, "RegelingOpschrift", attrib={"eId": "longTitle", "wId": "__longTitle"})
        sub(heading, ns.TEKST_NS, "Al", f"Intrekkingsbesluit voor {analysis.work_id or ''}")
        body = sub(compact, ns.TEKST_NS, "Lichaam", attrib={"eId": "body", "wId": "body"})
        article = sub(body, ns.TEKST_NS, "Artikel", attrib={"eId": "art_I", "wId": "__art_I"})
        article_heading = sub(article, ns.TEKST_NS, "Kop")
        sub(article_heading, ns.TEKST_NS, "Label", "Artikel")
        sub(article_heading, ns.TEKST_NS, "Nummer", "I")
        content = sub(article, ns.TEKST_NS, "Inhoud")
        sub(content, ns.TEKST_NS, "Al", f"De regeling treedt uit werking per {effective.isoformat()}")

        return serialize(root, standalone=False, indent="   ", crlf=True)

    def geo_mutations(self, archive: zipfile.ZipFile) -> List[GeneratedFile]:
        """
        Terminated copies of the archive's geo-object documents.

        Only documents that actually changed are returned, named by their
        bare file name. ``manifest-ow.xml`` is skipped; it is regenerated
        during assembly.
        """
        modified = []
        for info in archive.infolist():
            name = info.filename
            if not is_geo_object_entry(name) or "manifest-ow" in name.lower():
                continue

            content = terminate_geo_document(archive.read(info), name)
            if content is None:
                logger.debug(f"No OW objects to terminate in {name}")
                continue
            modified.append(GeneratedFile(name=basename(name), content=content))
        return modified
