#!filepath: temporal_eval/simulate/source.py
from __future__ import annotations

import gzip
from pathlib import Path
from typing import Optional

import pandas as pd
import pyarrow as pa
import pyarrow.csv as pcsv
import pyarrow.parquet as pq

from temporal_eval import logs
from temporal_eval.config.simulate_config import RatingFileSchema
from temporal_eval.simulate.core.data import RatingDataset
from temporal_eval.utils.errors import ConfigurationError
from temporal_eval.utils.filesystem import FileSystem


class RatingSource:
    """
    Reads a ratings file into a RatingDataset.

    Formats (by suffix):
      .csv / .csv.gz   comma separated
      .tsv             tab separated
      .dat             MovieLens `::` separated, no header
      .parquet
    """

    def __init__(self, path: str | Path, schema: RatingFileSchema | None = None) -> None:
        self.path = Path(path)
        self.schema = schema if schema is not None else RatingFileSchema()

    def load(self) -> RatingDataset:
        if not self.path.exists():
            raise FileNotFoundError(f"ratings file not found: {self.path}")

        logs.info(f"[RatingSource] read {self.path}")

        kind = FileSystem.logical_suffix(self.path)
        if kind == ".parquet":
            table = pq.read_table(self.path)
        elif kind == ".dat":
            table = self._read_dat()
        elif kind in (".csv", ".tsv", ".txt"):
            table = self._read_delimited(kind)
        else:
            raise ConfigurationError(f"[RatingSource] unsupported ratings format: {self.path}")

        dataset = RatingDataset(self._rename(table))
        lo, hi = dataset.time_bounds()
        logs.info(
            f"[RatingSource] ratings={len(dataset)} untimed={dataset.num_untimed} "
            f"time_bounds=({lo}, {hi})"
        )
        return dataset

    # -------------------------
    # Readers
    # -------------------------
    def _read_delimited(self, kind: str) -> pa.Table:
        s = self.schema
        delimiter = s.delimiter or ("\t" if kind == ".tsv" else ",")

        if s.header:
            read_options = pcsv.ReadOptions()
        else:
            # a 3-column file has no timestamp column
            n_cols = self._sniff_columns(delimiter)
            read_options = pcsv.ReadOptions(column_names=s.positional[:n_cols])

        return pcsv.read_csv(
            str(self.path),
            read_options=read_options,
            parse_options=pcsv.ParseOptions(delimiter=delimiter),
        )

    def _read_dat(self) -> pa.Table:
        # MovieLens: user::item::rating::timestamp, never a header
        df = pd.read_csv(
            self.path,
            sep=self.schema.delimiter or "::",
            engine="python",
            header=None,
            names=self.schema.positional,
        )
        return pa.Table.from_pandas(df, preserve_index=False)

    def _sniff_columns(self, delimiter: str) -> int:
        if FileSystem.is_gzip(self.path):
            fh = gzip.open(self.path, "rt", encoding="utf-8")
        else:
            fh = open(self.path, "r", encoding="utf-8")
        with fh:
            first = fh.readline()
        return min(len(first.rstrip("\r\n").split(delimiter)), len(self.schema.positional))

    def _rename(self, table: pa.Table) -> pa.Table:
        s = self.schema
        mapping = {
            s.user_col: "user",
            s.item_col: "item",
            s.rating_col: "rating",
            s.timestamp_col: "timestamp",
        }
        return table.rename_columns([mapping.get(n, n) for n in table.schema.names])
