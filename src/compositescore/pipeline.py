"""
Main Pipeline
=============

Orchestrates the Composite Score computation.

Pipeline Phases:
    1. TRANSFORM  - Power transform of the raw table
    2. DECOMPOSE  - Principal-component decomposition (no centering/scaling)
    3. SCALE      - Unit-norm scores, centered unit-norm loadings
    4. RETENTION  - Heuristic recommendations for the number of components
       -- k is decided here, outside the computation --
    5. SCORE      - Mean-estimated reconstruction and Composite Score matrix
    6. NETWORK    - Dense edge list for graph tools

Phases 1-4 are ``compute_recommendations`` and phases 5-6 are
``compute_composite_score``. Both take and return an immutable
PipelineContext, so a caller can inspect the recommendations, pick k,
and resume without re-running the decomposition:

    context = compute_recommendations(table, config)
    context = compute_composite_score(context, k=3)

``Pipeline.run`` does both in one call, resolving k from the
configuration, and writes the results to the output directory.
"""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from .config import PipelineConfig
from .data.table import DataTable
from .errors import CompositeScoreError
from .network.exporter import NetworkExporter
from .retention.advisor import RetentionAdvisor, RetentionRecommendation, validate_choice
from .score.engine import CompositeScore, CompositeScoreEngine
from .spectral.model import SpectralModel, decompose
from .spectral.scaling import ComponentScaler, ScaledComponents
from .transform import PowerTransformer, TransformedTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PipelineContext:
    """
    Configuration and every artifact produced so far for one invocation.

    Stages never modify a context; they return a new one with their
    artifact filled in (see ``evolve``).
    """
    config: PipelineConfig
    table: DataTable
    transformed: Optional[TransformedTable] = None
    model: Optional[SpectralModel] = None
    scaled: Optional[ScaledComponents] = None
    recommendation: Optional[RetentionRecommendation] = None
    score: Optional[CompositeScore] = None
    edges: Optional[pd.DataFrame] = None

    def evolve(self, **changes) -> PipelineContext:
        return dataclasses.replace(self, **changes)

    @property
    def k(self) -> Optional[int]:
        return None if self.score is None else self.score.k


def _timed(name: str, func, *args):
    start = time.time()
    try:
        result = func(*args)
    except CompositeScoreError as e:
        logger.error(f"Stage {name} failed ({e.stage}): {e}")
        raise
    logger.debug(f"Stage {name} completed in {time.time() - start:.2f}s")
    return result


def compute_recommendations(
    table: DataTable,
    config: Optional[PipelineConfig] = None,
) -> PipelineContext:
    """
    Phase one: transform, decompose, scale and advise.

    Args:
        table: Raw samples x features table.
        config: Pipeline configuration; defaults are used when omitted.

    Returns:
        Context holding the transformed table, spectral model, scaled
        components and retention recommendation.
    """
    config = config or PipelineConfig()
    context = PipelineContext(config=copy.deepcopy(config), table=table)

    transformer = PowerTransformer(exponent=config.transform.exponent)
    transformed = _timed("transform", transformer.transform, table)

    model = _timed("decompose", decompose, transformed)

    scaler = ComponentScaler(
        on_degenerate=config.scaling.on_degenerate,
        tolerance=config.scaling.tolerance,
    )
    scaled = _timed("scale", scaler.scale, model)

    advisor = RetentionAdvisor(
        rep=config.parallel.rep,
        cent=config.parallel.cent,
        seed=config.parallel.seed,
        jolliffe_factor=config.retention.jolliffe_factor,
    )
    recommendation = _timed("retention", advisor.advise, model)

    return context.evolve(
        transformed=transformed,
        model=model,
        scaled=scaled,
        recommendation=recommendation,
    )


def compute_composite_score(context: PipelineContext, k: int) -> PipelineContext:
    """
    Phase two: Composite Score matrix and edge list for ``k`` components.

    Raises:
        InvalidRetentionChoiceError: if ``k`` is outside
            ``[1, number of scaled components]``.
    """
    if context.scaled is None or context.transformed is None:
        raise RuntimeError("Recommendations must be computed before the Composite Score")

    k = validate_choice(k, context.scaled.n_components)
    engine = CompositeScoreEngine(decimals=context.config.output.decimals)
    score = _timed("score", engine.compute, context.scaled, context.transformed, k)
    edges = _timed("network", NetworkExporter().export, score)
    return context.evolve(score=score, edges=edges)


class Pipeline:
    """
    Runs both phases and saves the results.

    Usage:
        config = PipelineConfig.from_yaml("configs/default.yaml")
        pipeline = Pipeline(config)
        context = pipeline.run(DataTable.from_csv("features.csv"))
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self.output_dir = Path(self.config.output.output_dir)

    def load_table(self) -> DataTable:
        cfg = self.config.input
        if cfg.path is None:
            raise ValueError("No input table given and no input path configured")
        return DataTable.from_csv(cfg.path, label_column=cfg.label_column, sep=cfg.sep)

    def resolve_k(self, context: PipelineContext, k: Optional[int] = None) -> int:
        """Explicit argument, then configured ``retention.k``, then the policy."""
        n_components = context.scaled.n_components
        if k is not None:
            return validate_choice(k, n_components)
        if self.config.retention.k is not None:
            return validate_choice(self.config.retention.k, n_components)
        return context.recommendation.choose(
            self.config.retention.policy, n_components=n_components
        )

    def run(self, table: Optional[DataTable] = None, k: Optional[int] = None) -> PipelineContext:
        """
        Run all phases.

        Returns:
            The completed PipelineContext.
        """
        total_start = time.time()
        if table is None:
            table = self.load_table()

        logger.info("Starting Composite Score pipeline")
        logger.info(f"Input: {table.n_samples} samples x {table.n_features} features")

        context = compute_recommendations(table, self.config)
        chosen = self.resolve_k(context, k)
        logger.info(
            f"Retaining k={chosen} of {context.scaled.n_components} components"
        )
        context = compute_composite_score(context, chosen)

        total_elapsed = time.time() - total_start
        logger.info(f"Pipeline completed in {total_elapsed:.1f}s")

        if self.config.output.write_files:
            self.save(context, total_elapsed)

        return context

    def save(self, context: PipelineContext, total_elapsed: float = 0.0) -> dict[str, Path]:
        """Write recommendations, spectrum, CS matrix, edge list and a summary."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        paths: dict[str, Path] = {}

        recommendation = context.recommendation
        paths["recommendations"] = self.output_dir / "recommendations.csv"
        recommendation.to_frame().to_csv(paths["recommendations"], index=False)

        model = context.model
        spectrum = pd.DataFrame({
            "component": np.arange(1, model.n_components + 1),
            "eigenvalue": model.eigenvalues,
            "explained_variance_ratio": model.explained_variance_ratio,
            "parallel_reference": recommendation.reference,
            "broken_stick_percent": recommendation.broken_stick,
        })
        paths["eigenvalues"] = self.output_dir / "eigenvalues.csv"
        spectrum.to_csv(paths["eigenvalues"], index=False)

        if context.score is not None:
            paths["composite_score"] = self.output_dir / "composite_score.csv"
            context.score.to_frame(rounded=True).to_csv(paths["composite_score"])

            paths["network_edges"] = NetworkExporter().write_csv(
                context.score, self.output_dir / "network_edges.csv"
            )

        if self.config.output.generate_plots:
            from .analysis.visualization import Visualizer
            viz = Visualizer(output_dir=self.output_dir)
            paths["scree"] = viz.plot_scree(recommendation)

        summary = {
            "total_elapsed_seconds": total_elapsed,
            "table": context.table.summary(),
            "config": dataclasses.asdict(context.config),
            "spectral": model.summary(),
            "excluded_components": list(context.scaled.excluded),
            "recommendations": recommendation.as_dict(),
            "retention_failures": {
                name: err.reason for name, err in recommendation.failures.items()
            },
            "composite_score": context.score.summary() if context.score else None,
            "files": {name: str(path) for name, path in paths.items()},
        }
        paths["summary"] = self.output_dir / "pipeline_summary.json"
        with open(paths["summary"], "w") as f:
            json.dump(summary, f, indent=2, default=str)

        logger.info(f"Results saved to {self.output_dir}")
        return paths


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for running the pipeline from command line."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Composite Score similarity matrix for feature tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show recommendations and score with the median policy
    python -m compositescore.pipeline --input features.csv

    # Retain exactly three components
    python -m compositescore.pipeline --input features.csv --k 3

    # Reproducible parallel analysis, custom config
    python -m compositescore.pipeline -c configs/default.yaml --seed 42
        """,
    )
    parser.add_argument(
        "--config", "-c",
        default="configs/default.yaml",
        help="Path to YAML config file",
    )
    parser.add_argument("--input", "-i", help="CSV table (overrides config)")
    parser.add_argument("--k", type=int, help="Number of components to retain")
    parser.add_argument(
        "--policy",
        help="Retention policy: median, min, max or a heuristic name",
    )
    parser.add_argument("--seed", type=int, help="Seed for parallel analysis")
    parser.add_argument("--output", "-o", help="Output directory (overrides config)")
    parser.add_argument("--plots", action="store_true", help="Save the scree plot")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Load config
    config_path = Path(args.config)
    if config_path.exists():
        config = PipelineConfig.from_yaml(config_path)
    else:
        logger.info(f"Config file {config_path} not found, using defaults")
        config = PipelineConfig()

    # Apply overrides
    if args.input:
        config.input.path = args.input
    if args.policy:
        config.retention.policy = args.policy
    if args.seed is not None:
        config.parallel.seed = args.seed
    if args.output:
        config.output.output_dir = args.output
    if args.plots:
        config.output.generate_plots = True
    if not config.input.path:
        parser.error("no input table: pass --input or set input.path in the config")

    pipeline = Pipeline(config)
    try:
        context = pipeline.run(k=args.k)
    except CompositeScoreError as e:
        logger.error(f"Pipeline failed in stage '{e.stage}': {e}")
        return 1

    # Print summary
    print("\n" + "=" * 60)
    print("RETENTION RECOMMENDATIONS")
    print("=" * 60)
    print(context.recommendation.to_frame().to_string(index=False))
    print(f"\nRetained components: k = {context.k}")
    print(f"Results saved to: {config.output.output_dir}/")

    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())
