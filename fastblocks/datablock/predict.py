"""Running models on unencoded inputs."""
from __future__ import annotations
from typing import Sequence

from ..context import Context, Inference
from ..data import collate, uncollate
from .task import AbstractBlockTask, decodeypred, encodeinput


def predict(task: AbstractBlockTask, model, input, context: Context = Inference):
    """Encode ``input``, run ``model`` on it and decode the output."""
    return predictbatch(task, model, [input], context=context)[0]


def predictbatch(task: AbstractBlockTask, model, inputs: Sequence, context: Context = Inference) -> list:
    xs = collate([encodeinput(task, context, input) for input in inputs])
    ypreds = model(xs)
    return [decodeypred(task, context, ypred) for ypred in uncollate(ypreds)]
