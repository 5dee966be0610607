# WORKFLOW: Hand-over (doorlevering) packages for a downstream authority.
# Used by: Transformation service (scenario "handover")
# Functions:
# 1. HandoverProcessor.process() - Build proefversiebesluit.xml, consolidaties.xml and opdracht.xml
# 2. work_type() - soortWork derived from the FRBR work id
# 3. consolidated_identifiers() - CVDR work/expression ids of the consolidated state
#
# Hand-over flow: Analysis -> Goal id -> Next Monday -> Trial-version decision -> Consolidations -> Order

"""
Hand-over (doorlevering) packages for a downstream authority.

Hand-over regenerates the regulation documents instead of copying them:
the regulation text and version metadata are embedded in both the
trial-version decision and the consolidation document.
"""

import logging
import re
import zipfile
from datetime import date, timedelta
from typing import Optional, Tuple

from pipeline import namespaces as ns
from pipeline.models import ArchiveAnalysis, GeneratedFile, Scenario, ScenarioResult
from pipeline.xml_utils import child_elements, convert_to_namespace, new_root, serialize, sub
from scenarios.base import (
    ScenarioProcessor, build_decision_metadata, build_order_document, consolidation_code,
    find_regulation_metadata, load_converted_root, next_monday, require_authority,
)

logger = logging.getLogger(__name__)

DECISION_NAME = "proefversiebesluit.xml"
CONSOLIDATIONS_NAME = "consolidaties.xml"

CONSOLIDATION_WORK_TYPE = "/join/id/stop/work_006"

_ACT_PATTERN = re.compile(re.escape("/akn/nl/act"), re.IGNORECASE)


def work_type(work_id: str) -> str:
    lowered = work_id.lower()
    if "/bill/" in lowered:
        return "/join/id/stop/work_003"
    if "/act/" in lowered:
        return "/join/id/stop/work_019"
    return "/join/id/stop/work_003"


def consolidated_identifiers(work_id: Optional[str], year: int, monday: date) -> Tuple[str, str]:
    work = f"/akn/nl/act/gemeente/{year}/CVDR{consolidation_code(work_id)}"
    return work, f"{work}/nld@{monday.isoformat()}"


def _add_expression_identification(parent, namespace: str, work: str, expression: str,
                                   kind: Optional[str] = None):
    identification = sub(parent, namespace, "ExpressionIdentificatie")
    sub(identification, namespace, "FRBRWork", work)
    sub(identification, namespace, "FRBRExpression", expression)
    sub(identification, namespace, "soortWork", kind or work_type(work))
    return identification


class HandoverProcessor(ScenarioProcessor):
    """Builds hand-over deliveries."""

    scenario = Scenario.HANDOVER
    label = "doorlevering"

    def process(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                validation: bool = False) -> ScenarioResult:
        authority = require_authority(analysis, self.scenario)
        goal_id = self.goal_id(analysis)

        now = self.clock.now()
        monday = next_monday(self.clock.today())
        consolidated_work, consolidated_expression = consolidated_identifiers(analysis.work_id, now.year, monday)

        decision = self.build_trial_decision(archive, analysis, authority, goal_id, monday)
        consolidations = self.build_consolidations(
            archive, analysis, goal_id, monday, consolidated_work, consolidated_expression
        )

        kind = "val" if validation else "pub"
        order = build_order_document(
            self.order_root_name(validation),
            f"OTST_{kind}_door_{authority}_{now:%Y%m%d}_{now:%H%M%S}",
            DECISION_NAME,
            monday,
            self.config.delivery_party_id,
        )

        logger.info(
            f"Built hand-over documents for {authority}: goal={goal_id}, consolidation={consolidated_work}"
        )
        return ScenarioResult(
            scenario=self.scenario,
            documents=[
                GeneratedFile(name=DECISION_NAME, content=decision),
                GeneratedFile(name=CONSOLIDATIONS_NAME, content=consolidations),
                GeneratedFile(name=ns.ORDER_NAME, content=order),
            ],
            goal_id=goal_id,
            consolidation_work_id=consolidated_work,
        )

    def build_trial_decision(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                             authority: str, goal_id: str, monday: date) -> bytes:
        work = _ACT_PATTERN.sub("/akn/nl/bill", analysis.work_id or "").rstrip("/")
        expression = _ACT_PATTERN.sub("/akn/nl/bill", analysis.expression_id or "")
        announced = monday.isoformat()

        root = new_root(
            ns.UITLEVERING_NS, "UitleveringProefversieBesluit",
            nsmap={"lvbbu": ns.UITLEVERING_NS, "data": ns.DATA_NS, "tekst": ns.TEKST_NS,
                   "consolidatie": ns.CONSOLIDATIE_NS},
            attrib={"schemaversie": "1.2.0"},
        )
        _add_expression_identification(root, ns.DATA_NS, work, expression)

        procedure = sub(root, ns.DATA_NS, "Procedureverloop")
        sub(procedure, ns.DATA_NS, "bekendOp", announced)
        sub(procedure, ns.DATA_NS, "ontvangenOp", announced)
        steps = sub(procedure, ns.DATA_NS, "procedurestappen")
        earlier = (self.clock.today() - timedelta(days=10)).isoformat()
        for step_type, completed in (("stap_002", earlier), ("stap_003", earlier), ("stap_004", announced)):
            step = sub(steps, ns.DATA_NS, "Procedurestap")
            sub(step, ns.DATA_NS, "soortStap", f"/join/id/stop/procedure/{step_type}")
            sub(step, ns.DATA_NS, "voltooidOp", completed)

        build_decision_metadata(root, self.metadata_elements(archive, authority))

        trials = sub(root, ns.UITLEVERING_NS, "Proefversies")
        sub(trials, ns.CONSOLIDATIE_NS, "bekendOp", announced)
        sub(trials, ns.CONSOLIDATIE_NS, "ontvangenOp", announced)
        trial = sub(trials, ns.UITLEVERING_NS, "Proefversie")
        realised = sub(trial, ns.CONSOLIDATIE_NS, "gerealiseerdeDoelen")
        sub(realised, ns.CONSOLIDATIE_NS, "doel", goal_id)
        sub(trial, ns.CONSOLIDATIE_NS, "instrumentVersie", expression)

        _add_regulation_version(root, archive, analysis.work_id or "", expression)

        metadata = _regulation_metadata_root(archive)
        if metadata is not None:
            annotation = sub(root, ns.UITLEVERING_NS, "AnnotatieBijProefversie")
            _add_expression_identification(
                annotation, ns.DATA_NS, analysis.work_id or "", analysis.expression_id or ""
            )
            convert_to_namespace(metadata, ns.DATA_NS, annotation)

        return serialize(root, standalone=False, indent="  ")

    def build_consolidations(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis, goal_id: str,
                             monday: date, consolidated_work: str, consolidated_expression: str) -> bytes:
        work = analysis.work_id or ""
        expression = analysis.expression_id or ""
        announced = monday.isoformat()

        root = new_root(
            ns.UITLEVERING_NS, "Consolidaties",
            nsmap={"lvbbu": ns.UITLEVERING_NS, "data": ns.DATA_NS, "tekst": ns.TEKST_NS,
                   "consolidatie": ns.CONSOLIDATIE_NS},
            attrib={"schemaversie": "1.2.0"},
        )
        consolidation = sub(root, ns.UITLEVERING_NS, "Consolidatie")

        identification = sub(consolidation, ns.CONSOLIDATIE_NS, "ConsolidatieIdentificatie")
        sub(identification, ns.CONSOLIDATIE_NS, "FRBRWork", consolidated_work)
        sub(identification, ns.CONSOLIDATIE_NS, "soortWork", CONSOLIDATION_WORK_TYPE)
        source = sub(identification, ns.CONSOLIDATIE_NS, "isConsolidatieVan")
        source_work = sub(source, ns.CONSOLIDATIE_NS, "WorkIdentificatie")
        sub(source_work, ns.CONSOLIDATIE_NS, "FRBRWork", work)
        sub(source_work, ns.CONSOLIDATIE_NS, "soortWork", work_type(work))

        states = sub(consolidation, ns.CONSOLIDATIE_NS, "Toestanden")
        sub(states, ns.CONSOLIDATIE_NS, "bekendOp", announced)
        sub(states, ns.CONSOLIDATIE_NS, "ontvangenOp", announced)
        state = sub(states, ns.CONSOLIDATIE_NS, "BekendeToestand")
        sub(state, ns.CONSOLIDATIE_NS, "FRBRExpression", consolidated_expression)
        realised = sub(state, ns.CONSOLIDATIE_NS, "gerealiseerdeDoelen")
        sub(realised, ns.CONSOLIDATIE_NS, "doel", goal_id)
        validity = sub(state, ns.CONSOLIDATIE_NS, "geldigheid")
        period = sub(validity, ns.CONSOLIDATIE_NS, "Geldigheidsperiode")
        for name in ("juridischWerkendOp", "geldigOp"):
            holder = sub(period, ns.CONSOLIDATIE_NS, name)
            span = sub(holder, ns.CONSOLIDATIE_NS, "Periode")
            sub(span, ns.CONSOLIDATIE_NS, "vanaf", announced)
        sub(state, ns.CONSOLIDATIE_NS, "instrumentVersie", expression)

        _add_regulation_version(consolidation, archive, work, expression)

        metadata = _regulation_metadata_root(archive)
        if metadata is not None:
            annotation = sub(consolidation, ns.UITLEVERING_NS, "AnnotatieBijToestand")
            _add_expression_identification(
                annotation, ns.DATA_NS, consolidated_work, consolidated_expression, CONSOLIDATION_WORK_TYPE
            )
            convert_to_namespace(metadata, ns.DATA_NS, annotation)

        return serialize(root, standalone=False, indent="  ")


def _add_regulation_version(parent, archive: zipfile.ZipFile, work: str, expression: str) -> None:
    version = sub(parent, ns.UITLEVERING_NS, "RegelingVersie", attrib={"schemaversie": "1.2.0"})
    _add_expression_identification(version, ns.DATA_NS, work, expression)

    if load_converted_root(archive, ns.VERSION_METADATA_PATH, ns.DATA_NS, version) is None:
        metadata = sub(version, ns.DATA_NS, "RegelingVersieMetadata")
        sub(metadata, ns.DATA_NS, "versienummer", "1")

    if load_converted_root(archive, ns.TEXT_PATH, ns.TEKST_NS, version) is None:
        sub(version, ns.TEKST_NS, "RegelingVrijetekst")


def _regulation_metadata_root(archive: zipfile.ZipFile):
    metadata = find_regulation_metadata(archive)
    if metadata is None or not list(child_elements(metadata)):
        return None
    return metadata
