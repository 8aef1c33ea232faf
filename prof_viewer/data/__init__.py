"""
Profile Data

Entry addressing, tile contents, the data source contract and the tile cache.
"""

from .data_source import DataSource, aligned_tiles, split_evenly
from .entry import EntryID, EntryIndex, EntryInfo, EntryKind, PanelInfo, SlotInfo, SummaryInfo
from .tile_cache import TileCache, TileState
from .tiles import Item, SlotTile, SummaryTile, TileID, UtilPoint

__all__ = [
    'DataSource', 'aligned_tiles', 'split_evenly',
    'EntryID', 'EntryIndex', 'EntryInfo', 'EntryKind', 'PanelInfo', 'SlotInfo', 'SummaryInfo',
    'TileCache', 'TileState',
    'Item', 'SlotTile', 'SummaryTile', 'TileID', 'UtilPoint',
]
