"""Consistency checks for blocks, encodings and tasks."""
from __future__ import annotations
import numpy as np

from ..context import Context, Training, Validation, Inference
from .block import checkblock, mockblock
from .encoding import Encoding, decode, decodedblock, encode, encodedblock
from .task import AbstractBlockTask, decodeypred, encodeinput, encodesample, mocksample, mockmodel


def testencoding(encoding: Encoding, block, obs=None, context: Context = Validation):
    """Assert that ``encoding`` behaves consistently on ``block``.

    Checks that the encoded observation is valid for the encoded block and,
    if the encoding can decode, that decoding gives back a valid observation
    of the original block.

    Raises:
        AssertionError: If any check fails
    """
    if obs is None:
        obs = mockblock(block)
    assert checkblock(block, obs), f"{obs!r} is not a valid observation of {block!r}"
    outblock = encodedblock(encoding, block)
    assert outblock is not None, f"{encoding!r} does not apply to {block!r}"
    encoded = encode(encoding, context, block, obs)
    assert checkblock(outblock, encoded), f"Encoded observation is not valid for {outblock!r}"
    inblock = decodedblock(encoding, outblock)
    if inblock is not None:
        assert type(inblock) is type(block), f"Decoded block {inblock!r} does not match {block!r}"
        decoded = decode(encoding, context, outblock, encoded)
        assert checkblock(inblock, decoded), f"Decoded observation is not valid for {inblock!r}"
    return encoded


def checktask_core(task: AbstractBlockTask, sample=None, model=None):
    """Run a sample through encoding, a model and decoding, asserting every
    intermediate observation matches its block.

    Raises:
        AssertionError: If a stage produces an invalid observation
    """
    blocks = task.blocks
    sample = mocksample(task) if sample is None else sample
    model = mockmodel(task) if model is None else model
    assert checkblock(blocks.sample, sample), "sample does not match the task's sample block"
    for context in (Training, Validation):
        encoded = encodesample(task, context, sample)
        if blocks.target is not None:
            x, y = encoded
            assert checkblock(blocks.x, x), f"encoded input is not valid for {blocks.x!r} ({context!r})"
            assert checkblock(blocks.y, y), f"encoded target is not valid for {blocks.y!r} ({context!r})"
        else:
            x = encoded
            assert checkblock(blocks.x, x), f"encoded sample is not valid for {blocks.x!r} ({context!r})"
    if blocks.ypred is None:
        return True
    xs = encodeinput(task, Inference, sample[0])
    batch = tuple(np.asarray(xi)[None] for xi in xs) if isinstance(xs, tuple) else np.asarray(xs)[None]
    out = model(batch)
    ypred = out[0]
    assert checkblock(blocks.ypred, ypred), f"model output is not valid for {blocks.ypred!r}"
    pred = decodeypred(task, Inference, ypred)
    assert checkblock(blocks.pred, pred), f"decoded output is not valid for {blocks.pred!r}"
    return True
