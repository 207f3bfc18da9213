from __future__ import annotations
import csv
import io
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .types import FilamentRecord
from .utils import log

INVENTORY_COLUMNS = ("manufacturer", "color", "material", "temperature")


class InventoryError(OSError):
    """The inventory file exists but cannot be decoded."""


def _decode(p: Path) -> str:
    data = p.read_bytes()
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        line = data[: exc.start].count(b"\n") + 1
        raise InventoryError(
            f"{p}:{line}: not valid UTF-8 (byte 0x{data[exc.start]:02x}); save the inventory as UTF-8"
        ) from exc


def read_inventory(path: str | Path) -> List[FilamentRecord]:
    """Load filament records from a comma-separated inventory file.

    The header row names the columns; their order does not matter. Rows that do
    not have exactly one value per column, or whose values fail validation
    (empty text, non-integer temperature, "." or ".." as a name), are dropped.
    A missing file raises FileNotFoundError and a file that is not UTF-8 raises
    InventoryError, both before anything is rendered.
    """
    p = Path(path)
    reader = csv.DictReader(io.StringIO(_decode(p), newline=""))
    missing = [c for c in INVENTORY_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        log.warn(f"{p}: header is missing column(s) {', '.join(missing)}; no rows can be read")

    records: List[FilamentRecord] = []
    for row in reader:
        # DictReader files surplus values under None and pads short rows with None
        if None in row or any(v is None for v in row.values()):
            log.debug(f"{p}:{reader.line_num}: skipped row with wrong column count")
            continue
        try:
            rec = FilamentRecord.model_validate({c: row.get(c) for c in INVENTORY_COLUMNS})
        except ValidationError as e:
            log.debug(f"{p}:{reader.line_num}: skipped malformed row ({e.error_count()} error(s))")
            continue
        records.append(rec)
    log.info(f"Read {len(records)} filament(s) from {p}")
    return records
