# WORKFLOW: Tests for manifest.xml generation.
# Used by: CI/CD pipelines, development testing

import pytest
from lxml import etree

from pipeline import namespaces as ns
from pipeline.manifest import build_manifest, content_type, manifest_names

LVBB = ns.LVBB_NS


@pytest.mark.parametrize("name,expected", [
    ("besluit.xml", "application/xml"),
    ("gebied.GML", "application/gml+xml"),
    ("kaart.png", "image/png"),
    ("foto.jpeg", "image/jpeg"),
    ("foto.jpg", "image/jpeg"),
    ("bijlage.pdf", "application/pdf"),
    ("leesmij.txt", "application/octet-stream"),
    ("zonder_extensie", "application/octet-stream"),
])
def test_content_type(name, expected):
    assert content_type(name) == expected


def test_manifest_lists_itself_last():
    names = manifest_names(["manifest.xml", "besluit.xml", "opdracht.xml"])
    assert names == ["besluit.xml", "opdracht.xml", "manifest.xml"]


def test_manifest_names_are_deduplicated():
    assert manifest_names(["a.xml", "A.XML", "b.gml"]) == ["a.xml", "b.gml", "manifest.xml"]


def test_manifest_names_keep_names_that_only_fold_alike():
    assert manifest_names(["straße.xml", "STRASSE.xml"]) == ["straße.xml", "STRASSE.xml", "manifest.xml"]


def test_withdrawal_manifest_leaves_out_information_object_documents():
    names = ["intrekkingsbesluit.xml", "IO-gebied.xml", "io-kaart.xml", "gebied.gml"]

    assert manifest_names(names, withdrawal=True) == ["intrekkingsbesluit.xml", "gebied.gml", "manifest.xml"]
    assert "IO-gebied.xml" in manifest_names(names)


def test_build_manifest():
    content = build_manifest(["besluit.xml", "kaart.png"])

    assert content.startswith(b"<?xml version='1.0' encoding='UTF-8' standalone='yes'?>")
    assert b"\r\n   <bestand>" in content
    assert b"\n" not in content.replace(b"\r\n", b"")

    root = etree.fromstring(content)
    entries = root.findall(f"{{{LVBB}}}bestand")
    assert [entry.findtext(f"{{{LVBB}}}bestandsnaam") for entry in entries] == [
        "besluit.xml", "kaart.png", "manifest.xml",
    ]
    assert [entry.findtext(f"{{{LVBB}}}contentType") for entry in entries] == [
        "application/xml", "image/png", "application/xml",
    ]
