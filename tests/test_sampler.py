import pytest

from pyRDDLSim.core.debug.exception import (
    RDDLNotImplementedError,
    RDDLValueOutOfRangeError
)
from pyRDDLSim.core.sampler import (
    Bernoulli,
    DiracDelta,
    is_distribution,
    KronDelta,
    RDDLSampler
)


def test_point_masses():
    sampler = RDDLSampler(0)
    assert sampler.sample(KronDelta(True)) is True
    assert sampler.sample(KronDelta(4)) == 4
    assert sampler.sample(DiracDelta(-1.5)) == -1.5


def test_bernoulli_extremes():
    sampler = RDDLSampler(0)
    assert not any(sampler.sample(Bernoulli(0.0)) for _ in range(1000))
    assert all(sampler.sample(Bernoulli(1.0)) for _ in range(1000))


def test_bernoulli_frequency():
    sampler = RDDLSampler(123)
    samples = [sampler.sample(Bernoulli(0.3)) for _ in range(10000)]
    assert all(isinstance(sample, bool) for sample in samples)
    assert sum(samples) / len(samples) == pytest.approx(0.3, abs=0.03)


@pytest.mark.parametrize('p', [-0.01, 1.01, float('nan')])
def test_bernoulli_out_of_range(p):
    with pytest.raises(RDDLValueOutOfRangeError):
        RDDLSampler(0).sample(Bernoulli(p))


def test_same_seed_same_samples():
    sampler1, sampler2 = RDDLSampler(7), RDDLSampler(7)
    samples1 = [sampler1.sample(Bernoulli(0.5)) for _ in range(100)]
    samples2 = [sampler2.sample(Bernoulli(0.5)) for _ in range(100)]
    assert samples1 == samples2

    # reseeding restarts the stream
    sampler1.seed(7)
    assert [sampler1.sample(Bernoulli(0.5)) for _ in range(100)] == samples1


def test_unknown_distribution():
    assert not is_distribution(0.5)
    assert is_distribution(Bernoulli(0.5))
    with pytest.raises(RDDLNotImplementedError):
        RDDLSampler(0).sample(('Normal', 0.0, 1.0))
