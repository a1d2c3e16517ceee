from .label import Label, LabelMulti
from .continuous import Continuous
from .wrappers import Named, Many

__all__ = ['Label', 'LabelMulti', 'Continuous', 'Named', 'Many']
