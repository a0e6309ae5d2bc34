from .model import SpectralModel, decompose
from .scaling import ComponentScaler, ScaledComponents

__all__ = ["ComponentScaler", "ScaledComponents", "SpectralModel", "decompose"]
