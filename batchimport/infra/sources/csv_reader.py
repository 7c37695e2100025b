from __future__ import annotations

import csv
from types import MappingProxyType
from typing import Iterator

from batchimport.domain.transform.source_record import SourceRecord
from batchimport.infra.sources.csv_utils import CsvFormatError, parseBlank


class CsvRecordSource:
    """
    Назначение/ответственность:
        CSV-источник с обязательной строкой заголовка: отдаёт список колонок
        и строки в виде SourceRecord (RawRow).
    """

    def __init__(self, path: str, delimiter: str = ",", encoding: str = "utf-8-sig") -> None:
        self.path = path
        self.delimiter = delimiter
        self.encoding = encoding

    def columns(self) -> list[str]:
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            reader = csv.reader(f, delimiter=self.delimiter)
            header = next(reader, None)
        if not header:
            raise CsvFormatError("Missing header in source CSV")
        return [name.strip() for name in header]

    def read_all(self) -> list[SourceRecord]:
        return list(self)

    def __iter__(self) -> Iterator[SourceRecord]:
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=self.delimiter)
            if not reader.fieldnames:
                raise CsvFormatError("Missing header in source CSV")
            fieldnames = [name.strip() for name in reader.fieldnames]
            reader.fieldnames = fieldnames
            for csv_line_no, row in enumerate(reader, start=2):
                if not row or all(value in (None, "") for key, value in row.items() if key is not None):
                    continue
                if None in row:
                    extra = row.get(None) or []
                    raise CsvFormatError(
                        f"Invalid column count at line {csv_line_no}: expected {len(fieldnames)}, "
                        f"got {len(fieldnames) + len(extra)}"
                    )
                values = {key: parseBlank(row.get(key)) for key in fieldnames}
                yield SourceRecord(
                    line_no=csv_line_no,
                    record_id=f"line:{csv_line_no}",
                    values=MappingProxyType(values),
                )
