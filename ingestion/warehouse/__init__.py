from .reader import Cursor, ScanPage, WarehouseReader

__all__ = ["Cursor", "ScanPage", "WarehouseReader"]
