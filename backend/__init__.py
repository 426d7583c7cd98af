"""
Backend package for the NyayaMitra template catalog.

This package provides the FastAPI catalog service together with the storage,
database and search abstractions that the bulk template importer writes
through.
"""
