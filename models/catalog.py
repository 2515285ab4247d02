"""
Catalog collaborator.
Re-exports the equipment, destination and client functions the reservation
services read from and the catalog writes they perform (usage counters,
client loyalty and preferred destination).
"""

from .destination import get_destination_by_id, get_all_destinations
from .equipment import (
    get_equipment_by_id,
    get_equipment_by_ids,
    get_equipment_by_destination,
    increment_usage_count,
)
from .client import get_client_by_id, refresh_client_loyalty, refresh_preferred_destination

__all__ = [
    'get_destination_by_id',
    'get_all_destinations',
    'get_equipment_by_id',
    'get_equipment_by_ids',
    'get_equipment_by_destination',
    'increment_usage_count',
    'get_client_by_id',
    'refresh_client_loyalty',
    'refresh_preferred_destination',
]
