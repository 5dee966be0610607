# WORKFLOW: Analysis and assembly pipeline for STOP source packages.
# Used by: Scenario processors, transformation service, API, CLI
# Modules include:
# 1. analyzer.py - Extract identifiers, authority and information objects from a source ZIP
# 2. assembler.py - Copy remaining source entries into the output entry set
# 3. manifest.py - Build the package manifest with inferred content types
# 4. report.py - Write the plain-text transformation report
# 5. models.py / namespaces.py / xml_utils.py / archive.py - Shared model, constants and helpers
#
# Pipeline flow: Source ZIP -> Analyze -> Scenario processor -> Assemble -> Manifest -> Output ZIP

"""
Analysis and assembly pipeline for STOP source packages.
"""
