"""Analyzers for finding, classifying and grouping hardcoded text.

Import from the submodules directly; the dialect implementations depend on
``skip_policy``, so this package stays free of eager imports.
"""
