"""
CSV export of the whole catalog.
"""
import csv
import io
from typing import Optional

from catalog.services.catalog import ProductCatalog
from catalog.services.normalizer import CSV_FIELDS


def export_products_csv(catalog: ProductCatalog) -> Optional[str]:
    """
    Serialize all products with a header row.

    Returns None when the catalog is empty.
    """
    products = catalog.all_products()
    if not products:
        return None

    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_FIELDS)
    for p in products:
        w.writerow([p.name, p.unit, p.category, p.brand, p.stock, p.status.value, p.image or ""])
    return buf.getvalue()
