#!filepath: temporal_eval/simulate/sinks.py
from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import IO, List, Optional

import pyarrow as pa
import pyarrow.csv as pcsv
import pyarrow.parquet as pq

from temporal_eval import logs
from temporal_eval.simulate.core.records import ExtendedRecord, OutputRecord
from temporal_eval.utils.filesystem import FileSystem

OUTPUT_SCHEMA = pa.schema(
    [
        ("User", pa.int64()),
        ("Item", pa.int64()),
        ("Rating", pa.float64()),
        ("Timestamp", pa.int64()),
        ("Prediction", pa.float64()),
        ("RunningRMSE", pa.float64()),
        ("ModelAge", pa.int64()),
        ("Rank", pa.int32()),
        ("Rebuilds", pa.int32()),
    ]
)


class TableSink:
    """
    Streaming tabular writer（one row per replayed event）

    - .csv / .csv.gz / .parquet, chosen by suffix
    - rows buffered into small record batches; close() flushes the tail
    - absent prediction / rank / model age → null (empty CSV cell), never 0
    - path=None → no-op sink (metrics are still computed upstream)
    """

    def __init__(self, path: Optional[str | Path], *, batch_size: int = 1024) -> None:
        self.path = Path(path) if path is not None else None
        self.batch_size = batch_size
        self.rows_written = 0

        self._buffer: List[OutputRecord] = []
        self._writer = None
        self._stream: Optional[pa.NativeFile] = None
        self._closed = False

        if self.path is not None:
            self._open()

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def _open(self) -> None:
        FileSystem.ensure_parent(self.path)
        kind = FileSystem.logical_suffix(self.path)

        if kind == ".parquet":
            self._writer = pq.ParquetWriter(str(self.path), OUTPUT_SCHEMA)
        elif kind in (".csv", ".txt", ""):
            if FileSystem.is_gzip(self.path):
                self._stream = pa.CompressedOutputStream(str(self.path), "gzip")
            else:
                self._stream = pa.OSFile(str(self.path), "wb")
            self._writer = pcsv.CSVWriter(
                self._stream,
                OUTPUT_SCHEMA,
                write_options=pcsv.WriteOptions(include_header=True),
            )
        else:
            raise ValueError(f"[TableSink] unsupported output format: {self.path}")

        logs.info(f"[TableSink] open {self.path}")

    def write(self, record: OutputRecord) -> None:
        if self._closed:
            raise RuntimeError("[TableSink] write after close")
        if not self.enabled:
            return

        self._buffer.append(record)
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._buffer or self._writer is None:
            return

        rows = self._buffer
        batch = pa.RecordBatch.from_arrays(
            [
                pa.array([r.user for r in rows], pa.int64()),
                pa.array([r.item for r in rows], pa.int64()),
                pa.array([r.rating for r in rows], pa.float64()),
                pa.array([r.timestamp for r in rows], pa.int64()),
                pa.array([r.prediction for r in rows], pa.float64()),
                pa.array([r.running_rmse for r in rows], pa.float64()),
                pa.array([r.model_age for r in rows], pa.int64()),
                pa.array([r.rank for r in rows], pa.int32()),
                pa.array([r.rebuilds for r in rows], pa.int32()),
            ],
            schema=OUTPUT_SCHEMA,
        )
        if isinstance(self._writer, pq.ParquetWriter):
            self._writer.write_table(pa.Table.from_batches([batch]))
        else:
            self._writer.write_batch(batch)

        self.rows_written += len(rows)
        self._buffer = []

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            self.flush()
        finally:
            if self._writer is not None:
                self._writer.close()
                self._writer = None
            if self._stream is not None:
                self._stream.close()
                self._stream = None

        if self.enabled:
            logs.info(f"[TableSink] closed {self.path} rows={self.rows_written}")

    def __enter__(self) -> "TableSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ExtendedSink:
    """
    Diagnostic output: JSON Lines, one object per event, written as it goes.

    Nothing is held in memory beyond the current line.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.records_written = 0

        FileSystem.ensure_parent(self.path)
        self._fh: Optional[IO[str]]
        if FileSystem.is_gzip(self.path):
            self._fh = gzip.open(self.path, "wt", encoding="utf-8")
        else:
            self._fh = open(self.path, "w", encoding="utf-8")

        logs.info(f"[ExtendedSink] open {self.path}")

    def write(self, record: ExtendedRecord) -> None:
        if self._fh is None:
            raise RuntimeError("[ExtendedSink] write after close")
        self._fh.write(json.dumps(record.to_json()))
        self._fh.write("\n")
        self.records_written += 1

    def close(self) -> None:
        if self._fh is None:
            return
        self._fh.close()
        self._fh = None
        logs.info(f"[ExtendedSink] closed {self.path} records={self.records_written}")

    def __enter__(self) -> "ExtendedSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
