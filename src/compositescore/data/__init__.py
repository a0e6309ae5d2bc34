from .table import DataTable

__all__ = ["DataTable"]
