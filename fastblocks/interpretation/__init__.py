"""Visualizing blocks, samples, batches and model outputs."""
from .backends import ShowBackend, ShowText, ShowPlots, default_showbackend
from .show import (
    showblock, showblocks, showsample, showsamples, showencodedsample, showencodedsamples, showbatch,
    showoutput, showoutputs, showoutputbatch, showprediction, showpredictions, plotlrfind,
)

__all__ = [
    'ShowBackend', 'ShowText', 'ShowPlots', 'default_showbackend', 'showblock', 'showblocks', 'showsample',
    'showsamples', 'showencodedsample', 'showencodedsamples', 'showbatch', 'showoutput', 'showoutputs',
    'showoutputbatch', 'showprediction', 'showpredictions', 'plotlrfind',
]
