# WORKFLOW: lxml helpers shared by the analyzer and every document generator.
# Used by: Analyzer, scenario processors, assembler, manifest builder
# Functions:
# 1. parse_xml() - Parse bytes with a non-resolving, offline parser
# 2. first_value() - Namespace-qualified lookup with case-insensitive local-name fallback
# 3. convert_to_namespace() - Deep clone of an element tree into another namespace
# 4. sub() / new_root() - Element construction with consistent prefixes
# 5. serialize() - Deterministic UTF-8 serialization with optional indenting

"""
lxml helpers shared by the analyzer and every document generator.
"""

import copy
from typing import Dict, Iterator, Optional

from lxml import etree

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def qname(namespace: Optional[str], name: str) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


def local_name(element) -> str:
    """Local part of an element's tag; empty for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def namespace_of(element) -> Optional[str]:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).namespace


def parse_xml(content: bytes):
    """Parse XML bytes and return the root element."""
    return etree.fromstring(content, _PARSER)


def iter_elements(root) -> Iterator:
    """Iterate over the root and all descendant elements, skipping comments."""
    for element in root.iter():
        if isinstance(element.tag, str):
            yield element


def child_elements(element) -> Iterator:
    for child in element:
        if isinstance(child.tag, str):
            yield child


def text_of(element) -> str:
    """Concatenated text of an element and its descendants."""
    return "".join(element.itertext())


def find_first(root, namespace: Optional[str], name: str):
    """
    Find the first element named ``name``.

    The namespace-qualified name is tried first; if nothing matches, the
    first element whose local name equals ``name`` case-insensitively wins.
    """
    for element in root.iter(qname(namespace, name)):
        return element
    wanted = name.lower()
    for element in iter_elements(root):
        if local_name(element).lower() == wanted:
            return element
    return None


def first_value(root, namespace: Optional[str], name: str) -> Optional[str]:
    element = find_first(root, namespace, name)
    if element is None:
        return None
    return text_of(element).strip()


def new_root(namespace: Optional[str], name: str, nsmap: Optional[Dict] = None, attrib: Optional[Dict] = None):
    root = etree.Element(qname(namespace, name), nsmap=nsmap)
    for key, value in (attrib or {}).items():
        root.set(key, value)
    return root


def sub(parent, namespace: Optional[str], name: str, text: Optional[str] = None,
        attrib: Optional[Dict] = None, nsmap: Optional[Dict] = None):
    """Append a child element, reusing prefixes already declared on ``parent``."""
    child = etree.SubElement(parent, qname(namespace, name), nsmap=nsmap)
    for key, value in (attrib or {}).items():
        child.set(key, value)
    if text is not None:
        child.text = text
    return child


def convert_to_namespace(source, namespace: str, parent=None):
    """
    Clone ``source`` with every element moved into ``namespace``.

    Attributes, text and tails are kept as they are; comments are copied.
    When ``parent`` is given the clone is appended to it.
    """
    tag = qname(namespace, local_name(source))
    converted = etree.Element(tag) if parent is None else etree.SubElement(parent, tag)
    for key, value in source.attrib.items():
        converted.set(key, value)
    converted.text = source.text
    for child in source:
        if isinstance(child.tag, str):
            cloned = convert_to_namespace(child, namespace, converted)
        else:
            cloned = copy.deepcopy(child)
            converted.append(cloned)
        cloned.tail = child.tail
    return converted


def serialize(root, standalone: Optional[bool] = None, indent: Optional[str] = None,
              crlf: bool = False) -> bytes:
    """
    Serialize an element as a UTF-8 document with an XML declaration.

    Args:
        root: Root element
        standalone: Value of the declaration's standalone flag (omitted when None)
        indent: Indentation unit; None keeps the tree's own whitespace
        crlf: Use CRLF line endings

    Returns:
        Serialized document bytes
    """
    if indent is not None:
        etree.indent(root, space=indent)
    content = etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=standalone)
    if crlf:
        content = content.replace(b"\r\n", b"\n").replace(b"\n", b"\r\n")
    return content
