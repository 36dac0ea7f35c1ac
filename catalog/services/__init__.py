"""Catalog business logic: import pipeline, auditing and export."""
from catalog.services.catalog import ProductCatalog
from catalog.services.importer import ProductImporter, TempUpload, DedupGate
from catalog.services.images import ImageResolver
from catalog.services.exporter import export_products_csv

__all__ = [
    "ProductCatalog",
    "ProductImporter",
    "TempUpload",
    "DedupGate",
    "ImageResolver",
    "export_products_csv",
]
