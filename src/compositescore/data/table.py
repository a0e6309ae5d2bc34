"""
Data Table
==========

In-memory representation of an imported feature table: one row per
sample, one column per feature, and a parallel sequence of sample labels.

Tables usually arrive as CSV exports from a feature-finding tool with a
leading identifier column (sample name) followed by numeric abundances:

    sample,   F001,  F002,  F003, ...
    QC_01,    1520,  0,     88.1, ...
    Leaf_A,   980,   12.5,  0,    ...

The identifier column becomes ``labels``; labels need not be unique
(replicate injections often share a name). Every other column must be
numeric and finite.

The stored matrix is a read-only float64 array, so a table can be shared
by every pipeline stage without defensive copies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ..errors import InvalidCellError, ShapeMismatchError

logger = logging.getLogger(__name__)


def _frozen(values: NDArray) -> NDArray:
    array = np.array(values, dtype=np.float64, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class DataTable:
    """A rectangular numeric table with one label per row.

    Attributes:
        values: (n_samples, n_features) matrix of finite doubles.
        labels: Sample labels, one per row.
        features: Feature names, one per column. Generated as
            ``F1..Fm`` when not supplied.
    """
    values: NDArray
    labels: tuple[str, ...]
    features: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        values = np.asarray(self.values)
        if values.ndim != 2:
            raise ShapeMismatchError(
                f"Table must be two-dimensional, got {values.ndim} dimension(s)"
            )
        if not np.issubdtype(values.dtype, np.number):
            raise InvalidCellError(f"Table holds non-numeric values (dtype {values.dtype})")

        n_samples, n_features = values.shape
        labels = tuple(str(label) for label in self.labels)
        if len(labels) != n_samples:
            raise ShapeMismatchError(
                f"Got {len(labels)} labels for {n_samples} sample rows"
            )
        if n_samples < 2 or n_features < 1:
            raise ShapeMismatchError(
                f"Need at least 2 samples and 1 feature, got {n_samples}x{n_features}"
            )

        features = tuple(str(name) for name in self.features)
        if not features:
            features = tuple(f"F{j + 1}" for j in range(n_features))
        elif len(features) != n_features:
            raise ShapeMismatchError(
                f"Got {len(features)} feature names for {n_features} columns"
            )

        values = values.astype(np.float64)
        bad = np.argwhere(~np.isfinite(values))
        if len(bad):
            cells = [(int(i), int(j)) for i, j in bad]
            raise InvalidCellError(
                f"{len(cells)} non-finite cell(s), first at "
                f"sample {labels[cells[0][0]]!r}, feature {features[cells[0][1]]!r}",
                cells=cells,
            )

        object.__setattr__(self, "values", _frozen(values))
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "features", features)

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @property
    def n_features(self) -> int:
        return self.values.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    def column_means(self) -> NDArray:
        """Per-feature mean across samples."""
        return self.values.mean(axis=0)

    def to_frame(self) -> pd.DataFrame:
        """Samples as rows, features as columns, labels as the index."""
        return pd.DataFrame(
            np.array(self.values),
            index=pd.Index(self.labels, name="sample"),
            columns=list(self.features),
        )

    def summary(self) -> dict:
        return {
            "n_samples": self.n_samples,
            "n_features": self.n_features,
            "unique_labels": len(set(self.labels)),
            "min": float(self.values.min()),
            "max": float(self.values.max()),
        }

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[float]],
        labels: Sequence[str],
        features: Optional[Sequence[str]] = None,
    ) -> DataTable:
        """Build a table from row sequences, rejecting ragged input."""
        if len(rows) == 0:
            raise ShapeMismatchError("Table has no rows")
        widths = {len(row) for row in rows}
        if len(widths) > 1:
            raise ShapeMismatchError(
                f"Rows have differing lengths: {sorted(widths)}"
            )
        try:
            values = np.array(rows, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidCellError(f"Table holds non-numeric values: {e}") from e
        return cls(values=values, labels=tuple(labels), features=tuple(features or ()))

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        label_column: Optional[str] = None,
    ) -> DataTable:
        """
        Build a table from a DataFrame whose identifier column holds labels.

        Args:
            df: One row per sample.
            label_column: Column holding sample labels. Defaults to the
                leading column, which is stripped before conversion.

        Returns:
            DataTable over the remaining (numeric) columns.
        """
        if df.shape[1] < 2:
            raise ShapeMismatchError(
                "Frame needs an identifier column and at least one feature column"
            )
        if label_column is None:
            label_column = df.columns[0]
        elif label_column not in df.columns:
            raise ShapeMismatchError(f"Label column {label_column!r} not found")

        labels = df[label_column].astype(str).tolist()
        numeric = df.drop(columns=[label_column]).apply(pd.to_numeric, errors="coerce")

        missing = np.argwhere(numeric.isna().to_numpy())
        if len(missing):
            cells = [(int(i), int(j)) for i, j in missing]
            i, j = cells[0]
            raise InvalidCellError(
                f"{len(cells)} missing or non-numeric cell(s), first at "
                f"sample {labels[i]!r}, feature {numeric.columns[j]!r}",
                cells=cells,
            )

        table = cls(
            values=numeric.to_numpy(dtype=np.float64),
            labels=tuple(labels),
            features=tuple(str(c) for c in numeric.columns),
        )
        logger.info(
            f"Loaded table: {table.n_samples} samples x {table.n_features} features"
        )
        return table

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        label_column: Optional[str] = None,
        sep: str = ",",
    ) -> DataTable:
        """Read a CSV file with a leading identifier column."""
        path = Path(path)
        df = pd.read_csv(path, sep=sep)
        logger.info(f"Read {path} ({df.shape[0]} rows, {df.shape[1]} columns)")
        return cls.from_frame(df, label_column=label_column)
