"""Trader list loading and output document storage."""
from __future__ import annotations

import csv
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from traderwatch.errors import TraderListError
from traderwatch.models import Trader

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def load_traders(csv_path: Path) -> List[Trader]:
    """Load the tracked traders from a CSV with columns address,label[,tier].

    Addresses are lower-cased. Rows without an address are skipped;
    duplicate addresses keep the first row.
    """
    if not csv_path.exists():
        raise TraderListError(f"Trader list not found: {csv_path}")

    traders: List[Trader] = []
    seen: set[str] = set()

    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f, skipinitialspace=True)
        fieldnames = [name.strip() for name in reader.fieldnames or []]
        if "address" not in fieldnames:
            raise TraderListError(f"{csv_path} has no 'address' column (found {fieldnames})")
        reader.fieldnames = fieldnames

        for line_no, row in enumerate(reader, start=2):
            address = (row.get("address") or "").strip().lower()
            if not address:
                continue
            if not ADDRESS_RE.match(address):
                raise TraderListError(f"{csv_path}:{line_no}: invalid address {address!r}")
            if address in seen:
                logger.warning(f"{csv_path}:{line_no}: duplicate address {address}, skipping")
                continue
            seen.add(address)

            label = (row.get("label") or "").strip() or address[:10]
            tier = (row.get("tier") or "").strip() or "1"
            traders.append(Trader(address=address, label=label, tier=tier))

    logger.info(f"Loaded {len(traders)} traders from {csv_path}")
    return traders


def write_documents(output_dir: Path, documents: Dict[str, Any]) -> List[Path]:
    """Write every document as pretty JSON, or none of them.

    All documents are serialized to temp files in ``output_dir`` first and
    only renamed into place once every one of them was written.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    staged: List[tuple[Path, Path]] = []

    try:
        for filename, data in documents.items():
            fd, tmp_name = tempfile.mkstemp(prefix=f".{filename}.", suffix=".tmp", dir=output_dir)
            tmp_path = Path(tmp_name)
            staged.append((tmp_path, output_dir / filename))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
    except Exception:
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
        raise

    written = []
    for tmp_path, final_path in staged:
        os.replace(tmp_path, final_path)
        logger.info(f"Wrote: {final_path}")
        written.append(final_path)
    return written
