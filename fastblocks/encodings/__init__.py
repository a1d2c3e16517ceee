from .onehot import OneHot, OneHotTensor, OneHotTensorMulti
from .only import Only

__all__ = ['OneHot', 'OneHotTensor', 'OneHotTensorMulti', 'Only']
