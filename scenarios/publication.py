# WORKFLOW: Publication and validation packages for a new regulation version.
# Used by: Transformation service (scenario "publication")
# Functions:
# 1. PublicationProcessor.process() - Build besluit.xml, opdracht.xml and per-IO documents
# 2. build_decision_document() - AanleveringBesluit with metadata, consolidation info and compact text
# 3. build_information_object_files() - IO-<folder>.xml plus its (wrapped) payload files
# 4. wrap_geo_payload() - Wrap bare GML in GeoInformatieObjectVaststelling
#
# Publication flow: Analysis -> Goal id -> IO documents -> besluit.xml -> opdracht.xml -> ScenarioResult

"""
Publication and validation packages for a new regulation version.

The generated decision (besluit.xml) carries the regulation text as an
annex, the consolidation information for the regulation and every
referenced information object, and a copy of the regulation's own
metadata documents.
"""

import copy
import hashlib
import logging
import zipfile
from datetime import date, datetime
from typing import List

from pipeline import namespaces as ns
from pipeline.archive import basename, extension, has_prefix
from pipeline.models import ArchiveAnalysis, GeneratedFile, InformationObjectRecord, Scenario, ScenarioResult
from pipeline.xml_utils import (
    child_elements, local_name, namespace_of, new_root,
    parse_xml, qname, serialize, sub,
)
from scenarios.base import (
    ScenarioProcessor, build_decision_metadata, build_order_document,
    load_converted_root, next_working_day, require_authority,
)

logger = logging.getLogger(__name__)

DECISION_NAME = "besluit.xml"

DECISION_WORK_TYPE = "/join/id/stop/work_003"
INFORMATION_OBJECT_WORK_TYPE = "/join/id/stop/work_010"
PUBLICATION_STEP = "/join/id/stop/procedure/stap_003"

# Regulation documents copied into RegelingVersieInformatie, in this order
REGULATION_VERSION_DOCUMENTS = (
    ns.IDENTIFICATION_PATH,
    ns.VERSION_METADATA_PATH,
    ns.METADATA_PATH,
    ns.SNAPSHOT_PATH,
)

COPIED_PAYLOAD_EXTENSIONS = ns.DOCUMENT_EXTENSIONS + ns.IMAGE_EXTENSIONS


class PublicationProcessor(ScenarioProcessor):
    """Builds publication (or validation) deliveries."""

    scenario = Scenario.PUBLICATION
    label = "publicatie"

    def process(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                validation: bool = False) -> ScenarioResult:
        authority = require_authority(analysis, self.scenario)
        goal_id = self.goal_id(analysis)

        now = self.clock.now()
        today = self.clock.today()
        effective = next_working_day(today)

        information_object_files: List[GeneratedFile] = []
        for record in analysis.information_objects:
            information_object_files.extend(
                build_information_object_files(archive, analysis, record, today)
            )

        decision = self.build_decision_document(archive, analysis, authority, goal_id, now, effective)

        kind = "val" if validation else "pub"
        order = build_order_document(
            self.order_root_name(validation),
            f"OTST_{kind}_{authority}_{now:%Y%m%d}_{now:%H%M%S}",
            DECISION_NAME,
            effective,
            self.config.delivery_party_id,
        )

        logger.info(
            f"Built {'validation' if validation else 'publication'} documents for {authority}: "
            f"goal={goal_id}, information object files={len(information_object_files)}"
        )
        return ScenarioResult(
            scenario=self.scenario,
            documents=[
                GeneratedFile(name=DECISION_NAME, content=decision),
                GeneratedFile(name=ns.ORDER_NAME, content=order),
            ],
            information_object_files=information_object_files,
            goal_id=goal_id,
        )

    def build_decision_document(self, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                                authority: str, goal_id: str, now: datetime, effective: date) -> bytes:
        root = new_root(
            ns.AANLEVERING_NS, "AanleveringBesluit",
            nsmap={None: ns.AANLEVERING_NS, "data": ns.DATA_NS, "tekst": ns.TEKST_NS, "xsi": ns.XSI_NS},
            attrib={"schemaversie": "1.2.0", qname(ns.XSI_NS, "schemaLocation"): ns.AANLEVERING_SCHEMA_LOCATION},
        )
        version = sub(root, ns.AANLEVERING_NS, "BesluitVersie")

        work = f"/akn/nl/bill/{authority}/{now.year}/OTSTgegenereerd{now:%Y%m%d%H%M%S}"
        identification = sub(version, ns.DATA_NS, "ExpressionIdentificatie")
        sub(identification, ns.DATA_NS, "FRBRWork", work)
        sub(identification, ns.DATA_NS, "FRBRExpression", f"{work}/nld@{now:%Y%m%d};1")
        sub(identification, ns.DATA_NS, "soortWork", DECISION_WORK_TYPE)

        self._add_metadata(version, archive, analysis, authority)
        _add_procedure(version, effective)
        _add_consolidation(version, analysis, goal_id, effective)
        self._add_compact_text(version, archive, analysis, authority, effective)
        _add_regulation_version(root, archive)

        return serialize(root, standalone=False)

    def _add_metadata(self, parent, archive: zipfile.ZipFile, analysis: ArchiveAnalysis, authority: str) -> None:
        block = build_decision_metadata(
            parent,
            self.metadata_elements(archive, authority),
            dropped=("soortRegeling", "overheidsdomeinen"),
        )

        expressions = [
            record.expression_id for record in analysis.information_objects if record.expression_id
        ]
        if expressions:
            refs = sub(block, ns.DATA_NS, "informatieobjectRefs")
            for expression in expressions:
                sub(refs, ns.DATA_NS, "informatieobjectRef", expression)

        present = {local_name(child) for child in child_elements(block)}
        organisation = f"/tooi/id/gemeente/{authority}"
        for name in ("maker", "eindverantwoordelijke"):
            if name not in present:
                sub(block, ns.DATA_NS, name, organisation)

    def _add_compact_text(self, parent, archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                          authority: str, effective: date) -> None:
        compact = sub(parent, ns.TEKST_NS, "BesluitCompact")

        heading = sub(compact, ns.TEKST_NS, "RegelingOpschrift", attrib={"eId": "longTitle", "wId": "longTitle"})
        sub(heading, ns.TEKST_NS, "Al", "Officiele titel van de aanlevering")
        preamble = sub(compact, ns.TEKST_NS, "Aanhef", attrib={"eId": "formula_1", "wId": "formula_1"})
        sub(preamble, ns.TEKST_NS, "Al", "Aanhef van het besluit")

        body = sub(compact, ns.TEKST_NS, "Lichaam", attrib={"eId": "body", "wId": "body"})
        amendment = sub(body, ns.TEKST_NS, "WijzigArtikel",
                        attrib={"eId": "art_besluit1", "wId": f"{authority}__art_besluit1"})
        _add_article_heading(amendment, "I")
        what = sub(amendment, ns.TEKST_NS, "Wat", "Wijzigingen zoals opgenomen in ")
        reference = sub(what, ns.TEKST_NS, "IntRef", "Bijlage A", attrib={"ref": "cmp_besluit"})
        reference.tail = " worden vastgesteld."

        article = sub(body, ns.TEKST_NS, "Artikel",
                      attrib={"eId": "art_besluit2", "wId": f"{authority}__art_besluit2"})
        _add_article_heading(article, "II")
        content = sub(article, ns.TEKST_NS, "Inhoud")
        sub(content, ns.TEKST_NS, "Al", f"Dit besluit treedt in werking per {effective.isoformat()}")

        closing = sub(compact, ns.TEKST_NS, "Sluiting", attrib={"eId": "formula_2", "wId": "formula_2"})
        sub(closing, ns.TEKST_NS, "Al", "Sluiting van het besluit")
        signature = sub(closing, ns.TEKST_NS, "Ondertekening")
        sub(signature, ns.TEKST_NS, "Al", "Ondertekening van het besluit")

        annex = sub(compact, ns.TEKST_NS, "WijzigBijlage",
                    attrib={"eId": "cmp_besluit", "wId": f"{authority}__cmp_besluit"})
        annex_heading = sub(annex, ns.TEKST_NS, "Kop")
        sub(annex_heading, ns.TEKST_NS, "Label", "Bijlage")
        sub(annex_heading, ns.TEKST_NS, "Nummer", "A")
        sub(annex_heading, ns.TEKST_NS, "Opschrift", "Bijlage bij artikel I")

        text = load_converted_root(archive, ns.TEXT_PATH, ns.TEKST_NS, annex)
        if text is not None:
            text.set("wordt", analysis.expression_id or "")
            text.set("componentnaam", "main")


def _add_article_heading(article, number: str) -> None:
    heading = sub(article, ns.TEKST_NS, "Kop")
    sub(heading, ns.TEKST_NS, "Label", "Artikel")
    sub(heading, ns.TEKST_NS, "Nummer", number)


def _add_procedure(parent, effective: date) -> None:
    procedure = sub(parent, ns.DATA_NS, "Procedureverloop")
    sub(procedure, ns.DATA_NS, "bekendOp", effective.isoformat())
    steps = sub(procedure, ns.DATA_NS, "procedurestappen")
    step = sub(steps, ns.DATA_NS, "Procedurestap")
    sub(step, ns.DATA_NS, "soortStap", PUBLICATION_STEP)
    sub(step, ns.DATA_NS, "voltooidOp", effective.isoformat())


def _add_consolidation(parent, analysis: ArchiveAnalysis, goal_id: str, effective: date) -> None:
    consolidation = sub(parent, ns.DATA_NS, "ConsolidatieInformatie")
    intended = sub(consolidation, ns.DATA_NS, "BeoogdeRegelgeving")

    regulation = sub(intended, ns.DATA_NS, "BeoogdeRegeling")
    goals = sub(regulation, ns.DATA_NS, "doelen")
    sub(goals, ns.DATA_NS, "doel", goal_id)
    sub(regulation, ns.DATA_NS, "instrumentVersie", analysis.expression_id or "")
    sub(regulation, ns.DATA_NS, "eId", "art_besluit1")

    for record in analysis.information_objects:
        if not record.expression_id or not record.external_ref_element_id:
            continue
        information_object = sub(intended, ns.DATA_NS, "BeoogdInformatieobject")
        goals = sub(information_object, ns.DATA_NS, "doelen")
        sub(goals, ns.DATA_NS, "doel", goal_id)
        sub(information_object, ns.DATA_NS, "instrumentVersie", record.expression_id)
        sub(information_object, ns.DATA_NS, "eId", f"!main#{record.external_ref_element_id}")

    timestamps = sub(consolidation, ns.DATA_NS, "Tijdstempels")
    timestamp = sub(timestamps, ns.DATA_NS, "Tijdstempel")
    sub(timestamp, ns.DATA_NS, "doel", goal_id)
    sub(timestamp, ns.DATA_NS, "soortTijdstempel", "juridischWerkendVanaf")
    sub(timestamp, ns.DATA_NS, "datum", effective.isoformat())
    sub(timestamp, ns.DATA_NS, "eId", "art_besluit2")


def _add_regulation_version(root, archive: zipfile.ZipFile) -> None:
    information = sub(root, ns.AANLEVERING_NS, "RegelingVersieInformatie")
    for path in REGULATION_VERSION_DOCUMENTS:
        load_converted_root(archive, path, ns.DATA_NS, information)


def build_information_object_files(archive: zipfile.ZipFile, analysis: ArchiveAnalysis,
                                   record: InformationObjectRecord, today: date) -> List[GeneratedFile]:
    """
    Delivery files for one information object.

    Returns:
        ``IO-<folder>.xml`` followed by the folder's payload files, or an
        empty list when the record lacks its work or expression id
    """
    if not record.work_id or not record.expression_id:
        logger.warning(f"Skipping information object {record.folder}: work or expression id missing")
        return []

    payloads = _collect_payloads(archive, record.folder, today)

    root = new_root(
        ns.AANLEVERING_NS, "AanleveringInformatieObject",
        nsmap={None: ns.AANLEVERING_NS, "data": ns.DATA_NS, "geo": ns.GEO_NS, "xsi": ns.XSI_NS},
        attrib={"schemaversie": "1.2.0", qname(ns.XSI_NS, "schemaLocation"): ns.AANLEVERING_SCHEMA_LOCATION},
    )
    version = sub(root, ns.AANLEVERING_NS, "InformatieObjectVersie")

    identification = sub(version, ns.AANLEVERING_NS, "ExpressionIdentificatie")
    sub(identification, ns.DATA_NS, "FRBRWork", record.work_id)
    sub(identification, ns.DATA_NS, "FRBRExpression", record.expression_id)
    sub(identification, ns.DATA_NS, "soortWork", INFORMATION_OBJECT_WORK_TYPE)

    version_metadata = sub(version, ns.AANLEVERING_NS, "InformatieObjectVersieMetadata")
    sub(version_metadata, ns.DATA_NS, "heeftGeboorteregeling", analysis.work_id or "")
    if payloads:
        files = sub(version_metadata, ns.DATA_NS, "heeftBestanden")
        for payload in payloads:
            holder = sub(files, ns.DATA_NS, "heeftBestand")
            entry = sub(holder, ns.DATA_NS, "Bestand")
            sub(entry, ns.DATA_NS, "bestandsnaam", payload.name)
            sub(entry, ns.DATA_NS, "hash", hashlib.sha512(payload.content).hexdigest())

    metadata_path = f"{record.folder}/Metadata.xml"
    if load_converted_root(archive, metadata_path, ns.DATA_NS, version) is None:
        logger.warning(f"Information object {record.folder} has no Metadata.xml; metadata block omitted")

    document = GeneratedFile(name=f"{record.folder}.xml", content=serialize(root, standalone=False))
    return [document] + payloads


def _collect_payloads(archive: zipfile.ZipFile, folder: str, today: date) -> List[GeneratedFile]:
    prefix = folder + "/"
    payloads = []
    for info in archive.infolist():
        if not has_prefix(info.filename, prefix):
            continue
        name = basename(info.filename)
        if not name:
            continue

        suffix = extension(name)
        if suffix in ns.GEO_EXTENSIONS:
            payloads.append(GeneratedFile(name=name, content=wrap_geo_payload(archive.read(info), today)))
        elif suffix in COPIED_PAYLOAD_EXTENSIONS:
            payloads.append(GeneratedFile(name=name, content=archive.read(info)))
    return payloads


def wrap_geo_payload(content: bytes, today: date) -> bytes:
    """
    Wrap a bare GML document in GeoInformatieObjectVaststelling.

    Documents that are already wrapped are kept, with any ``wasID``
    elements removed.
    """
    root = parse_xml(content)

    if local_name(root) == "GeoInformatieObjectVaststelling" and namespace_of(root) == ns.GEO_NS:
        previous_ids = list(root.iter(qname(ns.GEO_NS, "wasID")))
        if not previous_ids:
            return content
        for element in previous_ids:
            element.getparent().remove(element)
        return serialize(root, standalone=True)

    wrapper = new_root(
        ns.GEO_NS, "GeoInformatieObjectVaststelling",
        nsmap={
            "geo": ns.GEO_NS, "basisgeo": ns.BASISGEO_NS, "gio": ns.GIO_NS,
            "gml": ns.GML_NS, "xsi": ns.XSI_NS,
        },
        attrib={"schemaversie": "1.3.0", qname(ns.XSI_NS, "schemaLocation"): ns.GEO_SCHEMA_LOCATION},
    )
    context = sub(wrapper, ns.GEO_NS, "context")
    geographic = sub(context, ns.GIO_NS, "GeografischeContext")
    sub(geographic, ns.GIO_NS, "achtergrondVerwijzing", "cbs")
    sub(geographic, ns.GIO_NS, "achtergrondActualiteit", today.isoformat())

    established = sub(wrapper, ns.GEO_NS, "vastgesteldeVersie")
    established.append(copy.deepcopy(root))
    return serialize(wrapper, standalone=True)
