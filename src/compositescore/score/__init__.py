from .engine import CompositeScore, CompositeScoreEngine

__all__ = ["CompositeScore", "CompositeScoreEngine"]
