from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional

import numpy as np
import pyarrow as pa
import pyarrow.compute as pc

from temporal_eval.simulate.core.events import Rating
from temporal_eval.utils.errors import ConfigurationError
"""
{#!filepath: temporal_eval/simulate/core/data.py}

RatingDataset / WindowedView (FINAL / FROZEN)

Defines WHAT history is observable at simulated time t.

Contract:
- RatingDataset holds the immutable full history, stably sorted by timestamp
  (untimed ratings first).
- view_as_of(limit) exposes exactly the timed ratings with timestamp <= limit.
- A view is a bound, not a copy: its table is a zero-copy slice.

Invariants:
- Views never mutate the dataset
- Two views over the same dataset with equal limits are interchangeable
- An empty view (limit below every timestamp, or None) is valid
"""

RATING_SCHEMA = pa.schema(
    [
        ("user", pa.int64()),
        ("item", pa.int64()),
        ("rating", pa.float64()),
        ("timestamp", pa.int64()),
    ]
)

_UNTIMED = -1


class RatingDataset:
    """
    Immutable, time-sorted rating history.

    Per-user row positions and first-seen item positions are indexed once so
    that every window query is a couple of binary searches.
    """

    def __init__(self, table: pa.Table):
        table = _normalize(table)

        filled = pc.fill_null(table["timestamp"], _UNTIMED).to_numpy()
        order = np.argsort(filled, kind="stable")

        self._table: pa.Table = table.take(pa.array(order))
        self._ts: np.ndarray = filled[order]
        self._users: np.ndarray = self._table["user"].to_numpy()
        self._items: np.ndarray = self._table["item"].to_numpy()

        # untimed rows sort first (-1); the timed region is [n_untimed, n)
        self._n_untimed = int(np.count_nonzero(self._ts < 0))
        self._timed_ts = self._ts[self._n_untimed:]

        self._user_rows = _index_user_rows(self._users)

        timed_items = self._items[self._n_untimed:]
        uniq, first = np.unique(timed_items, return_index=True)
        by_first = np.argsort(first, kind="stable")
        self._items_by_first_seen = uniq[by_first]
        self._item_first_pos = first[by_first] + self._n_untimed

    # -------------------------
    # Constructors
    # -------------------------
    @classmethod
    def from_ratings(cls, ratings: Iterable[Rating]) -> "RatingDataset":
        rows = list(ratings)
        table = pa.table(
            {
                "user": [r.user for r in rows],
                "item": [r.item for r in rows],
                "rating": [r.value for r in rows],
                "timestamp": [r.timestamp for r in rows],
            },
            schema=RATING_SCHEMA,
        )
        return cls(table)

    # -------------------------
    # Full history
    # -------------------------
    @property
    def table(self) -> pa.Table:
        return self._table

    def __len__(self) -> int:
        return self._table.num_rows

    @property
    def num_untimed(self) -> int:
        return self._n_untimed

    def time_bounds(self) -> tuple[Optional[int], Optional[int]]:
        """(min_ts, max_ts) over timed ratings, inclusive; (None, None) when none."""
        if self._timed_ts.size == 0:
            return None, None
        return int(self._timed_ts[0]), int(self._timed_ts[-1])

    def iter_ratings(self) -> Iterator[Rating]:
        """Restartable stream of every rating in replay order."""
        yield from _iter_table(self._table)

    # -------------------------
    # Windows
    # -------------------------
    def view_as_of(self, limit: Optional[int]) -> "WindowedView":
        return WindowedView(self, limit)

    def view_before(self, ts: int) -> "WindowedView":
        """
        Causal view for an event at `ts`: everything strictly earlier.

        Timestamps are integral seconds, so `< ts` is `<= ts - 1`.
        """
        return WindowedView(self, int(ts) - 1)

    def empty_view(self) -> "WindowedView":
        return WindowedView(self, None)

    # -------------------------
    # Internals (used by WindowedView)
    # -------------------------
    def _end_row(self, limit: Optional[int]) -> int:
        if limit is None or limit < 0:
            return self._n_untimed
        return self._n_untimed + int(np.searchsorted(self._timed_ts, limit, side="right"))

    def _item_ids(self, end: int) -> np.ndarray:
        k = int(np.searchsorted(self._item_first_pos, end, side="left"))
        return self._items_by_first_seen[:k]

    def _user_items(self, user: int, end: int) -> np.ndarray:
        rows = self._user_rows.get(int(user))
        if rows is None:
            return np.empty(0, dtype=np.int64)
        lo = int(np.searchsorted(rows, self._n_untimed, side="left"))
        hi = int(np.searchsorted(rows, end, side="left"))
        return np.unique(self._items[rows[lo:hi]])


class WindowedView:
    """
    WindowedView (FINAL / FROZEN)

    "All timed ratings with timestamp <= limit", drawn from a RatingDataset.

    FROZEN RULES:
    - Construction computes a row bound only; nothing is copied.
    - limit=None means "no data".
    - Queries never observe rows past the bound.
    """

    __slots__ = ("_dataset", "_limit", "_start", "_end")

    def __init__(self, dataset: RatingDataset, limit: Optional[int]):
        self._dataset = dataset
        self._limit = None if limit is None else int(limit)
        self._start = dataset.num_untimed
        self._end = dataset._end_row(self._limit)

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def num_ratings(self) -> int:
        return self._end - self._start

    def is_empty(self) -> bool:
        return self.num_ratings == 0

    def table(self) -> pa.Table:
        """Zero-copy slice of the window's rows."""
        return self._dataset.table.slice(self._start, self.num_ratings)

    def item_ids(self) -> np.ndarray:
        """Every item seen in the window, in first-seen order."""
        return self._dataset._item_ids(self._end)

    def user_items(self, user: int) -> np.ndarray:
        """Distinct items the user rated inside the window (sorted; empty if unseen)."""
        return self._dataset._user_items(user, self._end)

    def iter_ratings(self) -> Iterator[Rating]:
        yield from _iter_table(self.table())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WindowedView):
            return NotImplemented
        return self._dataset is other._dataset and self._end == other._end

    def __hash__(self) -> int:
        return hash((id(self._dataset), self._end))

    def __repr__(self) -> str:
        return f"WindowedView(limit={self._limit}, ratings={self.num_ratings})"


# -------------------------
# Helpers
# -------------------------
def _normalize(table: pa.Table) -> pa.Table:
    names = table.schema.names
    missing = [c for c in ("user", "item", "rating") if c not in names]
    if missing:
        raise ConfigurationError(f"[RatingDataset] missing columns={missing}")

    if "timestamp" not in names:
        table = table.append_column(
            "timestamp", pa.nulls(table.num_rows, type=pa.int64())
        )

    table = table.select(RATING_SCHEMA.names).cast(RATING_SCHEMA)

    for col in ("user", "item", "rating"):
        if table[col].null_count:
            raise ConfigurationError(f"[RatingDataset] null values in column={col}")

    # negative timestamps are treated as unknown
    ts = table["timestamp"]
    ts = pc.if_else(pc.less(ts, 0), pa.scalar(None, pa.int64()), ts)
    return table.set_column(3, "timestamp", ts)


def _index_user_rows(users: np.ndarray) -> Dict[int, np.ndarray]:
    if users.size == 0:
        return {}
    by_user = np.argsort(users, kind="stable")
    uniq, starts = np.unique(users[by_user], return_index=True)
    chunks = np.split(by_user, starts[1:])
    # stable argsort keeps each user's rows ascending
    return {int(u): rows for u, rows in zip(uniq, chunks)}


def _iter_table(table: pa.Table) -> Iterator[Rating]:
    for batch in table.to_batches():
        if batch.num_rows == 0:
            continue
        users = batch.column(0).to_pylist()
        items = batch.column(1).to_pylist()
        values = batch.column(2).to_pylist()
        stamps = batch.column(3).to_pylist()
        for u, i, v, t in zip(users, items, values, stamps):
            yield Rating(user=u, item=i, value=v, timestamp=t)
