"""
Visualization Module
====================

Diagnostic plots for the retention decision.

The scree plot shows the observed eigenvalue spectrum next to the
parallel-analysis noise floor, with the broken-stick expectation on a
secondary percent-variance axis. The recommendation counts are listed in
the legend so the plot can be read on its own when choosing ``k``.

Heatmaps of the Composite Score matrix are left to the caller; the
matrix is available as a labelled DataFrame from
``CompositeScore.to_frame()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for server/CLI use
import matplotlib.pyplot as plt
import seaborn as sns

from ..retention.advisor import RetentionRecommendation

logger = logging.getLogger(__name__)


@dataclass
class PlotConfig:
    """Configuration for plot output.

    Attributes:
        figsize: Figure size as (width, height) in inches.
        dpi: Resolution for saved figures.
        file_format: Output file format ('png', 'pdf', 'svg').
        style: Seaborn style preset.
        palette: Seaborn color palette name.
        context: Seaborn context preset.
        title_fontsize: Font size for plot titles.
    """
    figsize: tuple[float, float] = (10, 6)
    dpi: int = 150
    file_format: str = "png"
    style: str = "whitegrid"
    palette: str = "colorblind"
    context: str = "notebook"
    title_fontsize: int = 14


class Visualizer:
    """
    Creates and saves diagnostic plots.

    Parameters
    ----------
    output_dir : str or Path
        Directory where plots are saved. Created if missing.
    config : PlotConfig, optional
        Output configuration.
    """

    def __init__(
        self,
        output_dir: str | Path = "./figures",
        config: Optional[PlotConfig] = None,
    ):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or PlotConfig()

        sns.set_theme(
            style=self.config.style,
            palette=self.config.palette,
            context=self.config.context,
        )

    def _save_figure(self, fig: plt.Figure, filename: str) -> Path:
        """Save a figure to the output directory and close it."""
        fig.tight_layout()
        filepath = self.output_dir / f"{filename}.{self.config.file_format}"
        fig.savefig(
            filepath,
            dpi=self.config.dpi,
            format=self.config.file_format,
            bbox_inches="tight",
            facecolor="white",
        )
        plt.close(fig)
        logger.info(f"Saved plot: {filepath}")
        return filepath

    def plot_scree(
        self,
        recommendation: RetentionRecommendation,
        filename: str = "scree",
        title: Optional[str] = None,
    ) -> Path:
        """
        Scree plot with the parallel-analysis and broken-stick references.

        Parameters
        ----------
        recommendation : RetentionRecommendation
            Advisor output holding the spectrum and reference curves.
        filename : str
            Output filename (without extension).
        title : str, optional
            Custom title.

        Returns
        -------
        Path
            Location of the saved figure.
        """
        ev = recommendation.eigenvalues
        if ev is None:
            raise ValueError("Recommendation carries no eigenvalue spectrum to plot")
        ranks = np.arange(1, ev.size + 1)

        fig, ax = plt.subplots(figsize=self.config.figsize)
        ax.plot(ranks, ev, marker="o", label="Observed eigenvalues")
        if recommendation.reference is not None:
            ax.plot(
                ranks, recommendation.reference, linestyle="--",
                label=f"Parallel analysis ({100 * recommendation.parallel.cent:.0f}th pct)"
                if recommendation.parallel is not None else "Reference",
            )
        ax.set_xlabel("Component")
        ax.set_ylabel("Eigenvalue")
        ax.set_xticks(ranks)

        handles, labels = ax.get_legend_handles_labels()
        if recommendation.broken_stick is not None and ev.sum() > 0:
            pct_ax = ax.twinx()
            pct_ax.plot(
                ranks, 100.0 * ev / ev.sum(), marker="s", linestyle="",
                color="grey", alpha=0.6, label="Observed (% variance)",
            )
            pct_ax.plot(
                ranks, recommendation.broken_stick, linestyle=":", color="grey",
                label="Broken stick (% variance)",
            )
            pct_ax.set_ylabel("% variance")
            pct_ax.grid(False)
            extra_handles, extra_labels = pct_ax.get_legend_handles_labels()
            handles += extra_handles
            labels += extra_labels

        lines = [f"{name}: {count}" for name, count in recommendation.counts.items()]
        lines += [f"{name}: n/a ({err.reason})" for name, err in recommendation.failures.items()]
        ax.text(
            0.98, 0.95, "\n".join(lines), transform=ax.transAxes,
            ha="right", va="top", fontsize=9,
            bbox={"boxstyle": "round", "facecolor": "white", "alpha": 0.8},
        )
        ax.legend(handles, labels, loc="center right")
        ax.set_title(title or "Component retention", fontsize=self.config.title_fontsize)

        return self._save_figure(fig, filename)
