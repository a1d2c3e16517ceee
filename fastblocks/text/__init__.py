"""Text: row blocks, tokenization, models, tasks and recipes."""
from .blocks import TextRow, EncodedTextRow
from .preprocessing import TextPreprocessing, tokenize, buildvocab
from .models import textbackbone
from .tasks import TextClassificationSingle
from .recipes import TextFolders

__all__ = [
    'TextRow', 'EncodedTextRow', 'TextPreprocessing', 'tokenize', 'buildvocab', 'textbackbone',
    'TextClassificationSingle', 'TextFolders',
]
