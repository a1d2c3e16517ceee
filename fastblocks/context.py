"""Contexts in which samples are encoded."""
from enum import Enum


class Context(Enum):
    TRAINING = 'training'
    VALIDATION = 'validation'
    INFERENCE = 'inference'

    def __repr__(self):
        return self.name.capitalize()


Training = Context.TRAINING
Validation = Context.VALIDATION
Inference = Context.INFERENCE
