"""Tabular data: row blocks, preprocessing, models, tasks and recipes."""
from .blocks import TableRow, EncodedTableRow
from .preprocessing import TabularPreprocessing
from .models import TabularModel, emb_sz_rule
from .tasks import TabularClassificationSingle, TabularRegression
from .recipes import TableDatasetRecipe

__all__ = [
    'TableRow', 'EncodedTableRow', 'TabularPreprocessing', 'TabularModel', 'emb_sz_rule',
    'TabularClassificationSingle', 'TabularRegression', 'TableDatasetRecipe',
]
