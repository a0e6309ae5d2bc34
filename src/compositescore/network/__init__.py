from .exporter import EDGE_COLUMNS, NetworkExporter

__all__ = ["EDGE_COLUMNS", "NetworkExporter"]
