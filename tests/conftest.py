import pytest

from pyRDDLSim.core.builder import (
    add,
    aggregation,
    bernoulli,
    ge,
    if_then_else,
    le,
    lnot,
    mul,
    pvar,
    RDDLBuilder
)


def build_lights(horizon=5, max_nondef_actions='pos-inf', discount=0.9,
                 termination=False, precondition=False, invariant=False):
    '''A small MDP over three cells: each cell is a light toggled by flip,
    count counts the steps and coin is a fresh Bernoulli(prob) sample.'''
    builder = RDDLBuilder()
    builder.add_object_type('cell')
    builder.add_pvariable('REWARD-AT', ['cell'], 'non-fluent', 'real', 1.0)
    builder.add_pvariable('on', ['cell'], 'state-fluent', 'bool', False)
    builder.add_pvariable('count', [], 'state-fluent', 'int', 0)
    builder.add_pvariable('coin', [], 'state-fluent', 'bool', False)
    builder.add_pvariable('flip', ['cell'], 'action-fluent', 'bool', False)
    builder.add_pvariable('prob', [], 'action-fluent', 'real', 0.5)
    builder.add_cpf('on\'', ['?c'], if_then_else(
        pvar('flip', '?c'), lnot(pvar('on', '?c')), pvar('on', '?c')))
    builder.add_cpf('count\'', [], add(pvar('count'), 1))
    builder.add_cpf('coin\'', [], bernoulli(pvar('prob')))
    builder.add_reward(aggregation('sum', [('?c', 'cell')], mul(
        pvar('REWARD-AT', '?c'), pvar('on', '?c'))))
    if termination:
        builder.add_termination(ge(pvar('count'), 2))
    if precondition:
        builder.add_precondition(le(pvar('prob'), 0.9))
    if invariant:
        builder.add_invariant(le(pvar('count'), 1))

    builder.add_object_values('cell', ['c1', 'c2', 'c3'])
    builder.add_nonfluent_init('REWARD-AT', ['c2'], 2.5)
    builder.add_init_state('on', ['c3'], True)
    builder.add_max_nondef_actions(max_nondef_actions)
    builder.add_horizon(horizon)
    builder.add_discount(discount)
    return builder


@pytest.fixture
def lights_builder():
    return build_lights


@pytest.fixture
def lights():
    def _make(**kwargs):
        return build_lights(**kwargs).build('lights', 'lights_inst')
    return _make
