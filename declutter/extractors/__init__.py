"""Extraction sub-package: streaming scan, scoring strategies and standardization.

Modules, in pipeline order:

- ``selectors`` / ``patterns`` - selector matcher and static pattern tables
- ``collector`` / ``scanner`` - the single-pass scan filling the content buffer
- ``metadata``                 - precedence chains over the collected metadata
- ``scoring`` / ``main_content`` / ``sites`` / ``registry`` - strategies
- ``standardize`` / ``text`` / ``markdown`` - output normalization
"""
