from typing import NamedTuple, Optional, Union

import numpy as np

from pyRDDLSim.core.debug.exception import (
    RDDLNotImplementedError,
    RDDLValueOutOfRangeError
)

Value = Union[bool, int, float]


class KronDelta(NamedTuple):
    '''Point mass on a discrete (bool or int) value.'''
    value: Value


class DiracDelta(NamedTuple):
    '''Point mass on a real value.'''
    value: float


class Bernoulli(NamedTuple):
    '''Two-outcome distribution, true with probability p.'''
    p: float


KNOWN_DISTRIBUTIONS = {
    'KronDelta': KronDelta,
    'DiracDelta': DiracDelta,
    'Bernoulli': Bernoulli
}

Distribution = Union[KronDelta, DiracDelta, Bernoulli]


def is_distribution(value) -> bool:
    return isinstance(value, (KronDelta, DiracDelta, Bernoulli))


def check_bernoulli(p: float) -> float:
    '''Checks the parameter of a Bernoulli distribution lies in [0, 1].'''
    if not (0.0 <= p <= 1.0):
        raise RDDLValueOutOfRangeError(
            f'Bernoulli parameter p should be in [0, 1], got {p}.')
    return p


class RDDLSampler:
    '''Draws samples from distribution descriptors using its own stream of
    pseudo-random numbers. Two samplers seeded identically and asked for the
    same sequence of descriptors produce identical samples.'''

    def __init__(self, seed: Optional[int]=None) -> None:
        self.seed(seed)

    def seed(self, seed: Optional[int]=None) -> None:
        self.rng = np.random.default_rng(seed)

    def sample(self, dist: Distribution) -> Value:
        '''Draws exactly one sample from the given distribution.'''
        if isinstance(dist, (KronDelta, DiracDelta)):
            return dist.value
        elif isinstance(dist, Bernoulli):
            p = check_bernoulli(dist.p)
            return bool(self.rng.uniform() < p)
        else:
            raise RDDLNotImplementedError(
                f'Distribution <{type(dist).__name__}> is not supported, '
                f'must be one of {set(KNOWN_DISTRIBUTIONS)}.')
