# WORKFLOW: Data model shared by the analysis and transformation pipeline.
# Used by: Analyzer, scenario processors, assembler, manifest builder, API schemas
# Models include:
# 1. ExternalReference - ExtIoRef token + element id parsed from Tekst.xml
# 2. InformationObjectRecord - One IO-folder annex (identifiers, payload, digest)
# 3. ArchiveAnalysis - Immutable result of analysing a source package
# 4. GeneratedFile / ScenarioResult - Documents produced by a scenario processor
# 5. OutputEntry / OutputEntrySet - Ordered, case-insensitive output archive content
# 6. TransformationResult - What a finished transformation call hands back
#
# Model flow: Source ZIP -> ArchiveAnalysis -> ScenarioResult -> OutputEntrySet -> Output ZIP

from enum import Enum
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, Field


class Scenario(str, Enum):
    PUBLICATION = "publication"
    WITHDRAWAL = "withdrawal"
    HANDOVER = "handover"


class EntryKind(str, Enum):
    GENERATED = "generated"
    INFORMATION_OBJECT = "information_object"
    GEO_OBJECT = "geo_object"
    REGULATION_IMAGE = "regulation_image"
    OTHER = "other"
    MANIFEST = "manifest"


class ExternalReference(BaseModel):
    ref: str
    element_id: Optional[str] = None

    class Config:
        frozen = True


class InformationObjectRecord(BaseModel):
    folder: str
    work_id: Optional[str] = None
    expression_id: Optional[str] = None
    external_ref_element_id: Optional[str] = None
    payload_name: Optional[str] = None
    payload_digest: Optional[str] = None
    title: Optional[str] = None

    class Config:
        frozen = True


class ArchiveAnalysis(BaseModel):
    work_id: Optional[str] = None
    expression_id: Optional[str] = None
    goal: Optional[str] = None
    authority_code: Optional[str] = None
    information_object_count: int = 0
    geo_payload_size: int = 0
    information_objects: List[InformationObjectRecord] = Field(default_factory=list)
    external_references: List[ExternalReference] = Field(default_factory=list)

    class Config:
        frozen = True


class GeneratedFile(BaseModel):
    name: str
    content: bytes

    class Config:
        frozen = True


class ScenarioResult(BaseModel):
    """Documents produced by one scenario processor call."""

    scenario: Scenario
    documents: List[GeneratedFile] = Field(default_factory=list)
    modified_files: List[GeneratedFile] = Field(default_factory=list)
    information_object_files: List[GeneratedFile] = Field(default_factory=list)
    goal_id: str
    consolidation_work_id: Optional[str] = None


class OutputEntry(BaseModel):
    name: str
    content: bytes
    kind: EntryKind

    class Config:
        frozen = True


class OutputEntrySet:
    """
    Ordered output archive content with case-insensitive unique names.

    The first entry added under a name wins; later additions with the same
    name (in any casing) are ignored.
    """

    def __init__(self):
        self._entries: List[OutputEntry] = []
        self._keys: Dict[str, int] = {}

    def add(self, name: str, content: bytes, kind: EntryKind) -> bool:
        """
        Add an entry unless its name is already taken.

        Returns:
            True if the entry was added, False if it was skipped as a duplicate
        """
        key = name.lower()
        if not name or key in self._keys:
            return False
        self._keys[key] = len(self._entries)
        self._entries.append(OutputEntry(name=name, content=content, kind=kind))
        return True

    def add_files(self, files: List[GeneratedFile], kind: EntryKind) -> None:
        for file in files:
            self.add(file.name, file.content, kind)

    def get(self, name: str) -> Optional[OutputEntry]:
        index = self._keys.get(name.lower())
        return None if index is None else self._entries[index]

    def of_kind(self, kind: EntryKind) -> List[OutputEntry]:
        return [entry for entry in self._entries if entry.kind == kind]

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._keys

    def __iter__(self) -> Iterator[OutputEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class TransformationResult(BaseModel):
    output_path: str
    report_path: str
    files: List[str]
    goal_id: str
    scenario: Scenario
    validation: bool = False
