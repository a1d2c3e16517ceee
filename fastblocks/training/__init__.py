"""Training: the `Learner`, callbacks, schedules, metrics and model files."""
from .callbacks import (
    Callback, CancelFitException, Metrics, Recorder, ProgressBar, Scheduler, EarlyStopping, ReduceLROnPlateau,
    onecycle,
)
from .paramgroups import IndexGrouper, ParamGroups, DiscriminativeLRs
from .metrics import accuracy, accuracy_thresh
from .learner import Learner, fit, fitonecycle, finetune, tasklearner, defaultmetrics, getbatch
from .lrfind import LRFinderResult, lrfind
from .serialization import savetaskmodel, loadtaskmodel

__all__ = [
    'Callback', 'CancelFitException', 'Metrics', 'Recorder', 'ProgressBar', 'Scheduler', 'EarlyStopping',
    'ReduceLROnPlateau', 'onecycle', 'IndexGrouper', 'ParamGroups', 'DiscriminativeLRs', 'accuracy',
    'accuracy_thresh', 'Learner', 'fit', 'fitonecycle', 'finetune', 'tasklearner', 'defaultmetrics', 'getbatch',
    'LRFinderResult', 'lrfind', 'savetaskmodel', 'loadtaskmodel',
]
