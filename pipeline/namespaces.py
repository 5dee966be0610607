# WORKFLOW: XML namespaces and fixed archive path conventions of STOP packages.
# Used by: Analyzer, scenario processors, assembler, manifest builder
# Constants are module-level and never reassigned.

# STOP namespaces
DATA_NS = "https://standaarden.overheid.nl/stop/imop/data/"
TEKST_NS = "https://standaarden.overheid.nl/stop/imop/tekst/"
GEO_NS = "https://standaarden.overheid.nl/stop/imop/geo/"
GIO_NS = "https://standaarden.overheid.nl/stop/imop/gio/"
CONSOLIDATIE_NS = "https://standaarden.overheid.nl/stop/imop/consolidatie/"

# LVBB delivery namespaces
AANLEVERING_NS = "https://standaarden.overheid.nl/lvbb/stop/aanlevering/"
UITLEVERING_NS = "https://standaarden.overheid.nl/lvbb/stop/uitlevering/"
LVBB_NS = "http://www.overheid.nl/2017/lvbb"

# Omgevingswet (OW) object namespaces
MANIFEST_OW_NS = "http://www.geostandaarden.nl/bestanden-ow/manifest-ow"
OW_OBJECT_NS = "http://www.geostandaarden.nl/imow/owobject"
OP_OBJECT_NS = "http://www.geostandaarden.nl/imow/opobject"

# Generic
BASISGEO_NS = "http://www.geostandaarden.nl/basisgeometrie/1.0"
GML_NS = "http://www.opengis.net/gml/3.2"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

AANLEVERING_SCHEMA_LOCATION = (
    "https://standaarden.overheid.nl/lvbb/stop/aanlevering "
    "https://standaarden.overheid.nl/lvbb/1.2.0/lvbb-stop-aanlevering.xsd"
)
GEO_SCHEMA_LOCATION = (
    "https://standaarden.overheid.nl/stop/imop/geo/ "
    "https://standaarden.overheid.nl/stop/1.3.0/imop-geo.xsd"
)

# Archive layout
REGULATION_PREFIX = "Regeling/"
INFORMATION_OBJECT_PREFIX = "IO-"
GEO_OBJECT_PREFIX = "OW-bestanden/"
GEO_OBJECT_SEGMENT = "/OW/"

IDENTIFICATION_PATH = "Regeling/Identificatie.xml"
SNAPSHOT_PATH = "Regeling/Momentopname.xml"
METADATA_PATH = "Regeling/Metadata.xml"
VERSION_METADATA_PATH = "Regeling/VersieMetadata.xml"
TEXT_PATH = "Regeling/Tekst.xml"

PACKING_LIST_NAME = "pakbon.xml"
GEO_MANIFEST_NAME = "manifest-ow.xml"
MANIFEST_NAME = "manifest.xml"
ORDER_NAME = "opdracht.xml"

GEO_EXTENSIONS = (".gml",)
DOCUMENT_EXTENSIONS = (".pdf",)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")

# Payload selection order inside an information-object folder
PAYLOAD_EXTENSION_PRIORITY = GEO_EXTENSIONS + DOCUMENT_EXTENSIONS

INFORMATION_OBJECT_METADATA_NAMES = frozenset(
    name.lower()
    for name in (
        "Identificatie.xml",
        "JuridischeBorgingVan.xml",
        "Metadata.xml",
        "Momentopname.xml",
        "VersieMetadata.xml",
    )
)

AUTHORITY_TYPES = frozenset({"gemeente", "provincie", "ministerie", "waterschap"})

TERMINATION_STATUS = "beëindigen"
DEFAULT_PROCEDURE_TYPE = "/join/id/stop/proceduretype_definitief"
