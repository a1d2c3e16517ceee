"""Dataset files, containers and recipes."""
from .files import datasetpath, loadfile, loadfolderdata, isimagefile, istextfile, parentname, grandparentname
from .containers import TableDataset
from .idx import load_idx_gz
from .recipes import DatasetRecipe, DatasetEntry, register_dataset, finddatasets, loaddataset, listdatasets

__all__ = [
    'datasetpath', 'loadfile', 'loadfolderdata', 'isimagefile', 'istextfile', 'parentname', 'grandparentname',
    'TableDataset', 'load_idx_gz', 'DatasetRecipe', 'DatasetEntry', 'register_dataset', 'finddatasets',
    'loaddataset', 'listdatasets',
]
