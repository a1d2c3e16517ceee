"""Data containers, observation access and batch loading."""
from .containers import (
    getobs, numobs, mapobs, filterobs, groupobs, shuffleobs, datasubset, splitobs, MappedData, ObsView,
)
from .dataloader import DataLoader, collate, uncollate

__all__ = [
    'getobs', 'numobs', 'mapobs', 'filterobs', 'groupobs', 'shuffleobs', 'datasubset', 'splitobs',
    'MappedData', 'ObsView', 'DataLoader', 'collate', 'uncollate',
]
