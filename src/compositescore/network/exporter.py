"""
Network Exporter
================

Turns a Composite Score matrix into a dense edge list for graph tools
such as Cytoscape or Gephi: one row per ordered sample pair, diagonal
included, ``n²`` rows in all.

Rows are emitted column-major. The outer loop walks the matrix columns
(the ``target`` sample) and the inner loop walks the rows (the ``source``
sample), giving ``(target=labels[j], source=labels[i], weight=CS[i, j])``.
Weights keep full precision; thresholding and deduplication belong to
the graph tool.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from ..score.engine import CompositeScore

logger = logging.getLogger(__name__)

EDGE_COLUMNS = ("target", "source", "weight")


class NetworkExporter:
    """Dense, column-major edge lists from CS matrices."""

    def export(self, score: CompositeScore) -> pd.DataFrame:
        n = score.n_samples
        labels = np.asarray(score.labels, dtype=object)
        edges = pd.DataFrame({
            "target": np.repeat(labels, n),
            "source": np.tile(labels, n),
            "weight": np.asarray(score.matrix).ravel(order="F"),
        }, columns=list(EDGE_COLUMNS))
        logger.info(f"Exported {len(edges)} edges for {n} samples")
        return edges

    def write_csv(self, score: CompositeScore, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.export(score).to_csv(path, index=False, float_format="%.17g")
        logger.info(f"Edge list saved to {path}")
        return path
