"""
models/ - Domain Layer
======================
Resource definitions. Rows are plain mappings; nothing here validates them.
"""
