"""
CSV bulk import.

Rows run through normalize -> resolve image -> duplicate check -> insert,
strictly in file order. A bad row is dropped, a duplicate is skipped and a
storage conflict is reported per row; none of these stop the batch.
"""
import csv
import re
import time
import uuid
from pathlib import Path
from typing import Iterable, Optional

from catalog.core.config import settings
from catalog.error_handlers import ConflictError, InputError
from catalog.logging_config import get_logger
from catalog.schemas.imports import ImportResult, ImportRowFailure
from catalog.schemas.product import ProductCreate
from catalog.services.catalog import ProductCatalog
from catalog.services.images import ImageResolver
from catalog.services.normalizer import RowDefect, normalize_row

logger = get_logger("importer")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _allow_fields_up_to(size: int) -> None:
    # csv caps a single cell at 128 KiB; an embedded image can be most of the file
    if csv.field_size_limit() < size:
        csv.field_size_limit(size)


class TempUpload:
    """
    An uploaded file written to the upload directory for one import.

    The file is deleted by release(), which is safe to call more than once.
    Use as a context manager to release on every exit path.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._released = False

    @classmethod
    def from_bytes(cls, content: bytes, filename: str = "upload.csv", upload_dir: str = None) -> "TempUpload":
        directory = Path(upload_dir or settings.upload_dir)
        directory.mkdir(parents=True, exist_ok=True)
        safe_name = _UNSAFE_CHARS.sub("_", Path(filename or "upload.csv").name) or "upload.csv"
        path = directory / f"{int(time.time() * 1000)}_{uuid.uuid4().hex}_{safe_name}"
        path.write_bytes(content)
        return cls(path)

    @property
    def released(self) -> bool:
        return self._released

    def read_records(self) -> list[dict]:
        """
        Parse the whole file as UTF-8 CSV with a header row.

        Raises:
            InputError: the file is not UTF-8 or not well-formed CSV
        """
        _allow_fields_up_to(max(settings.max_upload_size, self.path.stat().st_size))
        try:
            with open(self.path, newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f, strict=True)
                return list(reader)
        except UnicodeDecodeError as e:
            raise InputError("CSV file is not valid UTF-8 text", details={"reason": str(e)}) from e
        except csv.Error as e:
            raise InputError("CSV file is malformed", details={"reason": str(e)}) from e

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.path.unlink(missing_ok=True)
        logger.debug(f"Released temporary upload {self.path}")

    def __enter__(self) -> "TempUpload":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class DedupGate:
    """
    Admits a candidate only if its exact name is new.

    Names inserted earlier in the same batch are remembered locally so a
    repeated name is skipped without relying on the store seeing our own write.
    """

    def __init__(self, catalog: ProductCatalog):
        self.catalog = catalog
        self.seen: set[str] = set()

    def admit(self, candidate: ProductCreate) -> bool:
        if candidate.name in self.seen:
            return False
        if self.catalog.find_by_exact_name(candidate.name) is not None:
            return False
        return True

    def committed(self, name: str) -> None:
        self.seen.add(name)


class ProductImporter:
    """Imports a CSV upload into the catalog."""

    def __init__(self, catalog: ProductCatalog, image_resolver: Optional[ImageResolver] = None):
        self.catalog = catalog
        self.image_resolver = image_resolver or ImageResolver()

    def run(self, upload: Optional[TempUpload]) -> ImportResult:
        """
        Import every row of the upload and release it afterwards.

        Raises:
            InputError: no upload, or the file cannot be parsed
        """
        if upload is None:
            raise InputError("No file uploaded")

        with upload:
            records = upload.read_records()
            logger.info(f"Importing {len(records)} rows from {upload.path.name}")
            result = self.import_records(records)

        logger.info(
            f"Import finished: added={result.added} skipped={result.skipped_count} "
            f"failed={result.failed_count}"
        )
        return result

    def import_records(self, records: Iterable[dict]) -> ImportResult:
        result = ImportResult()
        gate = DedupGate(self.catalog)

        for row_number, record in enumerate(records, start=1):
            try:
                candidate = normalize_row(record)
            except RowDefect as e:
                logger.warning(f"Dropped row {row_number}: {e.reason}")
                continue

            if candidate.image:
                candidate.image = self.image_resolver.resolve(candidate.image) or None

            if not gate.admit(candidate):
                logger.info(f"Skipped row {row_number}: '{candidate.name}' already exists")
                result.skipped.append(candidate.name)
                continue

            try:
                self.catalog.insert(candidate)
            except ConflictError as e:
                logger.error(f"Row {row_number} '{candidate.name}' rejected by storage: {e.message}")
                result.failed.append(ImportRowFailure(row=row_number, name=candidate.name, error=e.message))
                continue

            gate.committed(candidate.name)
            result.added += 1

        result.skipped_count = len(result.skipped)
        result.failed_count = len(result.failed)
        return result
