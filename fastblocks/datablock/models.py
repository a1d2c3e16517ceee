"""Block-based model and loss construction.

Model and loss builders are registered for pairs of block types; lookup
picks the most recently registered builder whose types match, so domain
modules can specialise earlier, more generic registrations.
"""
from __future__ import annotations
from typing import Callable, List, Optional, Tuple, Type

from .block import Block, wrapped

_BLOCKMODELS: List[Tuple[Type, Type, Callable]] = []
_BLOCKBACKBONES: List[Tuple[Type, Callable]] = []
_BLOCKLOSSFNS: List[Tuple[Type, Type, Callable]] = []


def register_blockmodel(intype: Type, outtype: Type):
    """Register ``fn(inblock, outblock, backbone) -> model``."""
    def decorator(fn):
        _BLOCKMODELS.append((intype, outtype, fn))
        return fn
    return decorator


def register_blockbackbone(intype: Type):
    """Register ``fn(inblock) -> backbone``."""
    def decorator(fn):
        _BLOCKBACKBONES.append((intype, fn))
        return fn
    return decorator


def register_blocklossfn(outtype: Type, ytype: Type):
    """Register ``fn(outblock, yblock) -> loss``."""
    def decorator(fn):
        _BLOCKLOSSFNS.append((outtype, ytype, fn))
        return fn
    return decorator


def blockmodel(inblock: Block, outblock: Block, backbone=None):
    """Construct a model mapping encoded ``inblock`` to ``outblock``."""
    inblock, outblock = wrapped(inblock), wrapped(outblock)
    for intype, outtype, fn in reversed(_BLOCKMODELS):
        if isinstance(inblock, intype) and isinstance(outblock, outtype):
            return fn(inblock, outblock, backbone)
    raise NotImplementedError(
        f"No model is registered for {type(inblock).__name__} -> {type(outblock).__name__}")


def blockbackbone(inblock: Block):
    """Default backbone for inputs of kind ``inblock``."""
    inblock = wrapped(inblock)
    for intype, fn in reversed(_BLOCKBACKBONES):
        if isinstance(inblock, intype):
            return fn(inblock)
    raise NotImplementedError(f"No default backbone is registered for {type(inblock).__name__}")


def hasblockbackbone(inblock: Block) -> bool:
    inblock = wrapped(inblock)
    return any(isinstance(inblock, intype) for intype, _ in _BLOCKBACKBONES)


def blocklossfn(outblock: Block, yblock: Optional[Block] = None):
    """Loss function comparing model outputs of ``outblock`` with targets of ``yblock``."""
    outblock = wrapped(outblock)
    yblock = outblock if yblock is None else wrapped(yblock)
    for outtype, ytype, fn in reversed(_BLOCKLOSSFNS):
        if isinstance(outblock, outtype) and isinstance(yblock, ytype):
            return fn(outblock, yblock)
    raise NotImplementedError(
        f"No loss function is registered for {type(outblock).__name__} and {type(yblock).__name__}")
