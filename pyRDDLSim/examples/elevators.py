'''Elevators: elevators serve passengers that arrive at random on each floor.

Passengers waiting on a floor board an elevator whose door opens there in
their direction of travel, and leave it at the top (going up) or bottom
(going down) floor. The reward penalizes waiting passengers, and passengers
riding an elevator, more so when it travels in the wrong direction.
'''
from typing import Dict, Optional, Union

from pyRDDLSim.core.builder import (
    add,
    aggregation,
    bernoulli,
    eq,
    exists,
    forall,
    if_then_else,
    kron_delta,
    land,
    le,
    lnot,
    lor,
    mul,
    neg,
    pvar,
    RDDLBuilder,
    sub
)
from pyRDDLSim.core.parser.rddl import RDDL

DOMAIN_NAME = 'elevators_mdp'

ACTIONS = ('open-door-going-up', 'open-door-going-down', 'close-door', 'move-current-dir')


def _waiting(direction, going_up):
    # a waiting passenger stays until an elevator opens in their direction
    dir_up = pvar('elevator-dir-up', '?e')
    picked_up = exists([('?e', 'elevator')], land(
        pvar('elevator-at-floor', '?e', '?f'),
        dir_up if going_up else lnot(dir_up),
        lnot(pvar('elevator-closed', '?e'))))
    return if_then_else(
        land(pvar(direction, '?f'), lnot(picked_up)),
        kron_delta(True),
        bernoulli(pvar('ARRIVE-PARAM', '?f')))


def _riding(direction, waiting, last_floor, going_up):
    # passengers board at an open door and leave at the last floor
    dir_up = pvar('elevator-dir-up', '?e')
    return if_then_else(
        pvar(direction, '?e'),
        kron_delta(lnot(exists([('?f', 'floor')], land(
            pvar('elevator-at-floor', '?e', '?f'), pvar(last_floor, '?f'))))),
        kron_delta(exists([('?f', 'floor')], land(
            pvar('elevator-at-floor', '?e', '?f'),
            dir_up if going_up else lnot(dir_up),
            lnot(pvar('elevator-closed', '?e')),
            pvar(waiting, '?f')))))


def _penalty(weight, riding, going_up):
    dir_up = pvar('elevator-dir-up', '?e')
    return aggregation('sum', [('?e', 'elevator')], neg(mul(
        pvar(weight), land(pvar(riding, '?e'), dir_up if going_up else lnot(dir_up)))))


def build_domain(builder: RDDLBuilder) -> None:
    '''Adds the types, pvariables, CPFs, reward and constraints of the
    elevators domain to the builder.'''
    builder.add_object_type('elevator')
    builder.add_object_type('floor')

    # non-fluents
    builder.add_pvariable('ARRIVE-PARAM', ['floor'], 'non-fluent', 'real', 0.0)
    builder.add_pvariable('ELEVATOR-PENALTY-RIGHT-DIR', [], 'non-fluent', 'real', 0.75)
    builder.add_pvariable('ELEVATOR-PENALTY-WRONG-DIR', [], 'non-fluent', 'real', 3.0)
    builder.add_pvariable('ADJACENT-UP', ['floor', 'floor'], 'non-fluent', 'bool', False)
    builder.add_pvariable('TOP-FLOOR', ['floor'], 'non-fluent', 'bool', False)
    builder.add_pvariable('BOTTOM-FLOOR', ['floor'], 'non-fluent', 'bool', False)

    # state-fluents
    builder.add_pvariable('person-waiting-up', ['floor'], 'state-fluent', 'bool', False)
    builder.add_pvariable('person-waiting-down', ['floor'], 'state-fluent', 'bool', False)
    builder.add_pvariable('person-in-elevator-going-up', ['elevator'], 'state-fluent', 'bool', False)
    builder.add_pvariable('person-in-elevator-going-down', ['elevator'], 'state-fluent', 'bool', False)
    builder.add_pvariable('elevator-dir-up', ['elevator'], 'state-fluent', 'bool', True)
    builder.add_pvariable('elevator-closed', ['elevator'], 'state-fluent', 'bool', True)
    builder.add_pvariable('elevator-at-floor', ['elevator', 'floor'], 'state-fluent', 'bool', False)

    # action-fluents
    for action in ACTIONS:
        builder.add_pvariable(action, ['elevator'], 'action-fluent', 'bool', False)

    # passenger arrivals and boarding
    builder.add_cpf('person-waiting-up\'', ['?f'], _waiting('person-waiting-up', True))
    builder.add_cpf('person-waiting-down\'', ['?f'], _waiting('person-waiting-down', False))
    builder.add_cpf('person-in-elevator-going-up\'', ['?e'], _riding(
        'person-in-elevator-going-up', 'person-waiting-up', 'TOP-FLOOR', True))
    builder.add_cpf('person-in-elevator-going-down\'', ['?e'], _riding(
        'person-in-elevator-going-down', 'person-waiting-down', 'BOTTOM-FLOOR', False))

    # doors and direction
    builder.add_cpf('elevator-closed\'', ['?e'], kron_delta(lor(
        land(pvar('elevator-closed', '?e'),
             lnot(pvar('open-door-going-up', '?e')),
             lnot(pvar('open-door-going-down', '?e'))),
        pvar('close-door', '?e'))))
    builder.add_cpf('elevator-dir-up\'', ['?e'], if_then_else(
        pvar('open-door-going-up', '?e'),
        kron_delta(True),
        if_then_else(pvar('open-door-going-down', '?e'),
                     kron_delta(False),
                     kron_delta(pvar('elevator-dir-up', '?e')))))

    # a closed elevator moves one floor in its current direction
    moving = land(pvar('elevator-closed', '?e'), pvar('move-current-dir', '?e'))
    dir_up = pvar('elevator-dir-up', '?e')
    at = pvar('elevator-at-floor', '?e', '?f')
    builder.add_cpf('elevator-at-floor\'', ['?e', '?f'], if_then_else(
        lnot(moving),
        kron_delta(at),
        if_then_else(
            land(dir_up, exists([('?cur', 'floor')], land(
                pvar('elevator-at-floor', '?e', '?cur'), pvar('ADJACENT-UP', '?cur', '?f')))),
            kron_delta(True),
            if_then_else(
                land(dir_up, exists([('?next', 'floor')], land(
                    at, pvar('ADJACENT-UP', '?f', '?next')))),
                kron_delta(False),
                if_then_else(
                    land(lnot(dir_up), exists([('?cur', 'floor')], land(
                        pvar('elevator-at-floor', '?e', '?cur'),
                        pvar('ADJACENT-UP', '?f', '?cur')))),
                    kron_delta(True),
                    if_then_else(
                        land(lnot(dir_up), exists([('?next', 'floor')], land(
                            at, pvar('ADJACENT-UP', '?next', '?f')))),
                        kron_delta(False),
                        kron_delta(at)))))))

    # reward
    waiting = aggregation('sum', [('?f', 'floor')], sub(
        neg(pvar('person-waiting-up', '?f')), pvar('person-waiting-down', '?f')))
    builder.add_reward(add(
        _penalty('ELEVATOR-PENALTY-RIGHT-DIR', 'person-in-elevator-going-up', True),
        _penalty('ELEVATOR-PENALTY-RIGHT-DIR', 'person-in-elevator-going-down', False),
        _penalty('ELEVATOR-PENALTY-WRONG-DIR', 'person-in-elevator-going-up', False),
        _penalty('ELEVATOR-PENALTY-WRONG-DIR', 'person-in-elevator-going-down', True),
        waiting))

    # one action per elevator, and every elevator is on exactly one floor
    builder.add_precondition(forall([('?e', 'elevator')], le(
        add(*(pvar(action, '?e') for action in ACTIONS)), 1)))
    builder.add_invariant(forall([('?e', 'elevator')], eq(
        aggregation('sum', [('?f', 'floor')], pvar('elevator-at-floor', '?e', '?f')), 1)))


def build_instance(builder: RDDLBuilder,
                   num_floors: int=3,
                   num_elevators: int=1,
                   arrive_param: Optional[Union[float, Dict[int, float]]]=None,
                   max_nondef_actions: Union[int, str]=1,
                   horizon: int=40,
                   discount: float=1.0) -> None:
    '''Adds an instance with the given number of floors f0, f1, ... and of
    elevators e0, e1, ..., all starting closed on the bottom floor.

    :param arrive_param: probability that a passenger arrives on a floor in a
    step, either one value for all floors or a value per floor index
    '''
    floors = [f'f{i}' for i in range(num_floors)]
    elevators = [f'e{i}' for i in range(num_elevators)]
    if arrive_param is None:
        arrive_param = {i: 0.1 + 0.02 * i for i in range(num_floors)}

    builder.add_object_values('elevator', elevators)
    builder.add_object_values('floor', floors)

    for (i, floor) in enumerate(floors):
        prob = arrive_param[i] if isinstance(arrive_param, dict) else arrive_param
        builder.add_nonfluent_init('ARRIVE-PARAM', [floor], prob)
    for (lower, upper) in zip(floors[:-1], floors[1:]):
        builder.add_nonfluent_init('ADJACENT-UP', [lower, upper], True)
    builder.add_nonfluent_init('TOP-FLOOR', [floors[-1]], True)
    builder.add_nonfluent_init('BOTTOM-FLOOR', [floors[0]], True)

    for elevator in elevators:
        builder.add_init_state('elevator-at-floor', [elevator, floors[0]], True)

    builder.add_max_nondef_actions(max_nondef_actions)
    builder.add_horizon(horizon)
    builder.add_discount(discount)


def make_rddl(instance_name: str='elevators_inst_mdp__1', **kwargs) -> RDDL:
    '''Builds the elevators domain together with an instance created by
    build_instance(**kwargs).'''
    builder = RDDLBuilder()
    build_domain(builder)
    build_instance(builder, **kwargs)
    return builder.build(DOMAIN_NAME, instance_name)
