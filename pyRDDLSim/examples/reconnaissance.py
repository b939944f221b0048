'''Reconnaissance: a partially observed planetary exploration domain.

An agent moves over a grid and uses tools on objects to detect water and
life, and takes pictures of objects that harbour life. Tools used while the
agent stands on a hazard cell may break, and are repaired at the base. Water
and life appear on objects over time: life can only arise on an object that
already holds water at the start of a step.
'''
from typing import Dict, Iterable, Optional, Tuple, Union

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
    pvar,
    RDDLBuilder,
    sub
)
from pyRDDLSim.core.parser.rddl import RDDL

DOMAIN_NAME = 'recon_pomdp'

DIRECTIONS = {
    'up': ('ADJACENT-UP', (0, 1)),
    'down': ('ADJACENT-DOWN', (0, -1)),
    'left': ('ADJACENT-LEFT', (-1, 0)),
    'right': ('ADJACENT-RIGHT', (1, 0))
}

Cell = Tuple[int, int]


def _move(agent, x, y, x2, y2):
    # agent at (x, y) is sent to (x2, y2) by one of its movement actions
    return lor(*(land(pvar(action, agent), pvar(adjacent, x, y, x2, y2))
                 for (action, (adjacent, _)) in DIRECTIONS.items()))


def _colocated(agent, obj):
    return exists([('?xa', 'x_pos'), ('?ya', 'y_pos')],
                  land(pvar('agentAt', agent, '?xa', '?ya'),
                       pvar('objAt', obj, '?xa', '?ya')))


def _tool_used(tool_kind, obj, damaged=None):
    # some agent standing on obj uses a tool of the given kind on it
    body = [pvar('useToolOn', '?ua', '?ut', obj), pvar(tool_kind, '?ut')]
    if damaged is True:
        body.append(pvar('damaged', '?ut'))
    elif damaged is False:
        body.append(lnot(pvar('damaged', '?ut')))
    body.append(_colocated('?ua', obj))
    return exists([('?ua', 'agent'), ('?ut', 'tool')], land(*body))


def _detection(fluent, tool_kind, evidence):
    return if_then_else(
        pvar(fluent, '?o'),
        kron_delta(True),
        if_then_else(
            land(evidence, _tool_used(tool_kind, '?o', damaged=False)),
            bernoulli(pvar('DETECT_PROB')),
            if_then_else(
                land(evidence, _tool_used(tool_kind, '?o', damaged=True)),
                bernoulli(pvar('DETECT_PROB_DAMAGED')),
                kron_delta(False))))


def build_domain(builder: RDDLBuilder) -> None:
    '''Adds the types, pvariables, CPFs, reward and constraints of the
    reconnaissance domain to the builder.'''
    for otype in ('x_pos', 'y_pos', 'obj', 'agent', 'tool'):
        builder.add_object_type(otype)

    # non-fluents
    for (adjacent, _) in DIRECTIONS.values():
        builder.add_pvariable(adjacent, ['x_pos', 'y_pos', 'x_pos', 'y_pos'],
                              'non-fluent', 'bool', False)
    builder.add_pvariable('objAt', ['obj', 'x_pos', 'y_pos'], 'non-fluent', 'bool', False)
    builder.add_pvariable('HAZARD', ['x_pos', 'y_pos'], 'non-fluent', 'bool', False)
    builder.add_pvariable('BASE', ['x_pos', 'y_pos'], 'non-fluent', 'bool', False)
    builder.add_pvariable('WATER_TOOL', ['tool'], 'non-fluent', 'bool', False)
    builder.add_pvariable('LIFE_TOOL', ['tool'], 'non-fluent', 'bool', False)
    builder.add_pvariable('CAMERA_TOOL', ['tool'], 'non-fluent', 'bool', False)
    builder.add_pvariable('DAMAGE_PROB', ['tool'], 'non-fluent', 'real', 0.0)
    builder.add_pvariable('DETECT_PROB', [], 'non-fluent', 'real', 0.8)
    builder.add_pvariable('DETECT_PROB_DAMAGED', [], 'non-fluent', 'real', 0.4)
    builder.add_pvariable('WATER_PROB', [], 'non-fluent', 'real', 0.0)
    builder.add_pvariable('LIFE_PROB', [], 'non-fluent', 'real', 0.0)
    builder.add_pvariable('GOOD_PIC_WEIGHT', [], 'non-fluent', 'real', 1.0)
    builder.add_pvariable('BAD_PIC_WEIGHT', [], 'non-fluent', 'real', 2.0)

    # state-fluents
    builder.add_pvariable('agentAt', ['agent', 'x_pos', 'y_pos'], 'state-fluent', 'bool', False)
    builder.add_pvariable('damaged', ['tool'], 'state-fluent', 'bool', False)
    builder.add_pvariable('HAS_WATER', ['obj'], 'state-fluent', 'bool', False)
    builder.add_pvariable('HAS_LIFE', ['obj'], 'state-fluent', 'bool', False)
    builder.add_pvariable('waterDetected', ['obj'], 'state-fluent', 'bool', False)
    builder.add_pvariable('lifeDetected', ['obj'], 'state-fluent', 'bool', False)
    builder.add_pvariable('pictureTaken', ['obj'], 'state-fluent', 'bool', False)

    # interm-fluents
    builder.add_pvariable('moved', ['agent'], 'interm-fluent', 'bool')

    # observ-fluents
    builder.add_pvariable('observedAt', ['agent', 'x_pos', 'y_pos'], 'observ-fluent', 'bool')
    builder.add_pvariable('damageReading', ['tool'], 'observ-fluent', 'bool')
    builder.add_pvariable('waterReading', ['obj'], 'observ-fluent', 'bool')
    builder.add_pvariable('lifeReading', ['obj'], 'observ-fluent', 'bool')

    # action-fluents
    for action in DIRECTIONS:
        builder.add_pvariable(action, ['agent'], 'action-fluent', 'bool', False)
    builder.add_pvariable('useToolOn', ['agent', 'tool', 'obj'], 'action-fluent', 'bool', False)
    builder.add_pvariable('repair', ['agent', 'tool'], 'action-fluent', 'bool', False)

    # movement: the agent leaves its cell only when an adjacent cell exists
    # in the chosen direction
    builder.add_cpf('moved', ['?a'], exists(
        [('?x', 'x_pos'), ('?y', 'y_pos'), ('?x2', 'x_pos'), ('?y2', 'y_pos')],
        land(pvar('agentAt', '?a', '?x', '?y'), _move('?a', '?x', '?y', '?x2', '?y2'))))
    builder.add_cpf('agentAt\'', ['?a', '?x', '?y'], if_then_else(
        pvar('moved', '?a'),
        kron_delta(exists(
            [('?x2', 'x_pos'), ('?y2', 'y_pos')],
            land(pvar('agentAt', '?a', '?x2', '?y2'),
                 _move('?a', '?x2', '?y2', '?x', '?y')))),
        kron_delta(pvar('agentAt', '?a', '?x', '?y'))))

    # tools break on hazards and are repaired at the base
    at_hazard = exists([('?a', 'agent'), ('?x', 'x_pos'), ('?y', 'y_pos')],
                       land(pvar('agentAt', '?a', '?x', '?y'), pvar('HAZARD', '?x', '?y')))
    repaired = exists([('?a', 'agent'), ('?x', 'x_pos'), ('?y', 'y_pos')],
                      land(pvar('repair', '?a', '?t'),
                           pvar('agentAt', '?a', '?x', '?y'),
                           pvar('BASE', '?x', '?y')))
    builder.add_cpf('damaged\'', ['?t'], if_then_else(
        repaired,
        kron_delta(False),
        if_then_else(
            pvar('damaged', '?t'),
            kron_delta(True),
            if_then_else(at_hazard,
                         bernoulli(pvar('DAMAGE_PROB', '?t')),
                         kron_delta(False)))))

    # genesis of water and life
    builder.add_cpf('HAS_WATER\'', ['?o'], if_then_else(
        pvar('HAS_WATER', '?o'),
        kron_delta(True),
        bernoulli(pvar('WATER_PROB'))))
    builder.add_cpf('HAS_LIFE\'', ['?o'], if_then_else(
        pvar('HAS_LIFE', '?o'),
        kron_delta(True),
        if_then_else(pvar('HAS_WATER', '?o'),
                     bernoulli(pvar('LIFE_PROB')),
                     kron_delta(False))))

    # detection with (possibly damaged) tools
    builder.add_cpf('waterDetected\'', ['?o'], _detection(
        'waterDetected', 'WATER_TOOL', pvar('HAS_WATER', '?o')))
    builder.add_cpf('lifeDetected\'', ['?o'], _detection(
        'lifeDetected', 'LIFE_TOOL', pvar('HAS_LIFE', '?o')))
    builder.add_cpf('pictureTaken\'', ['?o'], kron_delta(lor(
        pvar('pictureTaken', '?o'),
        _tool_used('CAMERA_TOOL', '?o', damaged=False))))

    # observations reveal the outcome of this step
    builder.add_cpf('observedAt', ['?a', '?x', '?y'],
                    kron_delta(pvar('agentAt\'', '?a', '?x', '?y')))
    builder.add_cpf('damageReading', ['?t'], kron_delta(pvar('damaged\'', '?t')))
    builder.add_cpf('waterReading', ['?o'], kron_delta(pvar('waterDetected\'', '?o')))
    builder.add_cpf('lifeReading', ['?o'], kron_delta(pvar('lifeDetected\'', '?o')))

    # a good picture is rewarded once per object, a bad one always penalized
    good_pic = land(lnot(pvar('pictureTaken', '?o')),
                    pvar('HAS_LIFE', '?o'),
                    _tool_used('CAMERA_TOOL', '?o', damaged=False))
    bad_pic = land(lnot(pvar('HAS_LIFE', '?o')),
                   _tool_used('CAMERA_TOOL', '?o'))
    builder.add_reward(aggregation('sum', [('?o', 'obj')], sub(
        mul(pvar('GOOD_PIC_WEIGHT'), good_pic),
        mul(pvar('BAD_PIC_WEIGHT'), bad_pic))))

    # at most one movement per agent, and the agent occupies exactly one cell
    builder.add_precondition(forall([('?a', 'agent')], le(
        add(*(pvar(action, '?a') for action in DIRECTIONS)), 1)))
    builder.add_invariant(forall([('?a', 'agent')], eq(
        aggregation('sum', [('?x', 'x_pos'), ('?y', 'y_pos')],
                    pvar('agentAt', '?a', '?x', '?y')), 1)))


def build_instance(builder: RDDLBuilder,
                   size: int=3,
                   objects: Optional[Dict[str, Cell]]=None,
                   hazards: Iterable[Cell]=((1, 1),),
                   base: Cell=(0, 0),
                   start: Cell=(0, 0),
                   damage_prob: Union[float, Dict[str, float]]=0.5,
                   detect_prob: float=0.8,
                   detect_prob_damaged: float=0.4,
                   water_prob: float=0.2,
                   life_prob: float=0.3,
                   good_pic_weight: float=1.0,
                   bad_pic_weight: float=2.0,
                   init_state: Iterable=(),
                   max_nondef_actions: Union[int, str]=1,
                   horizon: int=40,
                   discount: float=1.0) -> None:
    '''Adds a square grid instance with one agent and one tool of each kind
    (w1 detects water, l1 detects life, p1 is a camera).

    :param size: number of cells along each side of the grid
    :param objects: cell (x, y) of each object, keyed by object name
    :param hazards: cells where tools may be damaged
    :param base: cell where tools are repaired
    :param start: initial cell of the agent
    :param damage_prob: probability of damaging a tool on a hazard, either
    one value for all tools or a value per tool name
    :param init_state: additional ((name, params), value) init-state entries
    '''
    if objects is None:
        objects = {'o1': (size - 1, size - 1), 'o2': (0, size - 1)}
    xs = [f'x{i}' for i in range(size)]
    ys = [f'y{j}' for j in range(size)]
    tools = {'w1': 'WATER_TOOL', 'l1': 'LIFE_TOOL', 'p1': 'CAMERA_TOOL'}

    builder.add_object_values('x_pos', xs)
    builder.add_object_values('y_pos', ys)
    builder.add_object_values('obj', list(objects))
    builder.add_object_values('agent', ['a1'])
    builder.add_object_values('tool', list(tools))

    # grid adjacency
    for i in range(size):
        for j in range(size):
            for (adjacent, (dx, dy)) in DIRECTIONS.values():
                if 0 <= i + dx < size and 0 <= j + dy < size:
                    builder.add_nonfluent_init(
                        adjacent, [xs[i], ys[j], xs[i + dx], ys[j + dy]], True)

    for (obj, (i, j)) in objects.items():
        builder.add_nonfluent_init('objAt', [obj, xs[i], ys[j]], True)
    for (i, j) in hazards:
        builder.add_nonfluent_init('HAZARD', [xs[i], ys[j]], True)
    builder.add_nonfluent_init('BASE', [xs[base[0]], ys[base[1]]], True)
    for (tool, kind) in tools.items():
        builder.add_nonfluent_init(kind, [tool], True)
        prob = damage_prob[tool] if isinstance(damage_prob, dict) else damage_prob
        builder.add_nonfluent_init('DAMAGE_PROB', [tool], prob)
    builder.add_nonfluent_init('DETECT_PROB', [], detect_prob)
    builder.add_nonfluent_init('DETECT_PROB_DAMAGED', [], detect_prob_damaged)
    builder.add_nonfluent_init('WATER_PROB', [], water_prob)
    builder.add_nonfluent_init('LIFE_PROB', [], life_prob)
    builder.add_nonfluent_init('GOOD_PIC_WEIGHT', [], good_pic_weight)
    builder.add_nonfluent_init('BAD_PIC_WEIGHT', [], bad_pic_weight)

    builder.add_init_state('agentAt', ['a1', xs[start[0]], ys[start[1]]], True)
    for ((name, params), value) in init_state:
        builder.add_init_state(name, params, value)

    builder.add_max_nondef_actions(max_nondef_actions)
    builder.add_horizon(horizon)
    builder.add_discount(discount)


def make_rddl(instance_name: str='recon_inst_pomdp__1', **kwargs) -> RDDL:
    '''Builds the reconnaissance domain together with an instance created
    by build_instance(**kwargs).'''
    builder = RDDLBuilder()
    build_domain(builder)
    build_instance(builder, **kwargs)
    return builder.build(DOMAIN_NAME, instance_name)
