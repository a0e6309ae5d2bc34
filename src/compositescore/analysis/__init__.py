"""
Analysis Package
================

Diagnostic plots for the Composite Score pipeline.

Usage::

    from compositescore.analysis import Visualizer

    viz = Visualizer(output_dir="./figures")
    viz.plot_scree(context.recommendation)
"""

from .visualization import PlotConfig, Visualizer

__all__ = [
    "PlotConfig",
    "Visualizer",
]
