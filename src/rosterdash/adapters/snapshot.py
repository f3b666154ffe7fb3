"""Tabular snapshot source backed by a CSV file."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from rosterdash.domain.errors import SourceUnavailableError
from rosterdash.domain.model.records import SnapshotRow

log = getLogger(__name__)

SOURCE_NAME = "snapshot"


@dataclass(slots=True)
class CsvSnapshotSource:
    """Read snapshot rows from a CSV file with a header line."""

    path: Path
    encoding: str = "utf-8-sig"

    def load(self) -> list[SnapshotRow]:
        try:
            with Path(self.path).open(newline="", encoding=self.encoding) as handle:
                rows = [_to_row(raw) for raw in csv.DictReader(handle)]
        except FileNotFoundError as exc:
            raise SourceUnavailableError(SOURCE_NAME, f"{self.path} does not exist") from exc
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise SourceUnavailableError(SOURCE_NAME, f"cannot read {self.path}: {exc}") from exc

        non_empty = [row for row in rows if any(value.strip() for value in row.fields.values())]
        skipped = len(rows) - len(non_empty)
        if skipped:
            log.debug("Skipped %s empty snapshot rows", skipped)
        log.info("Loaded %s snapshot rows from %s", len(non_empty), self.path)
        return non_empty


def _to_row(raw: dict[str | None, str | list[str] | None]) -> SnapshotRow:
    # DictReader stores surplus cells under a None key and fills missing ones with None.
    return SnapshotRow(
        fields={
            key.strip(): value
            for key, value in raw.items()
            if key is not None and isinstance(value, str)
        }
    )


if TYPE_CHECKING:
    from rosterdash.domain.ports.fetching import SnapshotSource

    _source_check: SnapshotSource = CsvSnapshotSource(Path("snapshot.csv"))
