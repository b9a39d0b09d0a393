"""
app/mappers package marker.
"""

from app.mappers.inventory_adapter import snapshot_from_payload

__all__ = ["snapshot_from_payload"]
