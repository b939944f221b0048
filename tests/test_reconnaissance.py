import pytest

from pyRDDLSim.core.grounder import RDDLGrounder
from pyRDDLSim.core.simulator import RDDLSimulator
from pyRDDLSim.examples import reconnaissance

##################################################################################
# Helper functions
##################################################################################


def make_simulator(seed=0, **kwargs):
    kwargs.setdefault('size', 2)
    kwargs.setdefault('hazards', ())
    rddl = reconnaissance.make_rddl(**kwargs)
    simulator = RDDLSimulator(RDDLGrounder(rddl).ground(), seed=seed)
    simulator.reset()
    return simulator


def agent_cell(simulator):
    cells = [(x, y) for ((name, (_, x, y)), value) in
             ((key, value) for (key, value) in simulator.states.items()
              if key[0] == 'agentAt') if value]
    assert len(cells) == 1
    return cells[0]


LIFE_AND_WATER = [(('HAS_WATER', ['o1']), True), (('HAS_LIFE', ['o1']), True)]

##################################################################################
# Pictures
##################################################################################


def test_good_picture():
    simulator = make_simulator(objects={'o1': (0, 0)}, init_state=LIFE_AND_WATER,
                               good_pic_weight=3.0)
    good = simulator.non_fluents[('GOOD_PIC_WEIGHT', ())]
    assert good == 3.0

    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == good
    assert simulator.states[('pictureTaken', ('o1',))] is True

    # a second picture of the same object is not rewarded again
    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == 0.0


def test_bad_picture():
    simulator = make_simulator(objects={'o1': (0, 0)})
    bad = simulator.non_fluents[('BAD_PIC_WEIGHT', ())]
    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == -bad

    # bad pictures are penalized every time
    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == -bad


def test_picture_with_damaged_camera():
    init_state = LIFE_AND_WATER + [(('damaged', ['p1']), True)]
    simulator = make_simulator(objects={'o1': (0, 0)}, init_state=init_state)
    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == 0.0
    assert simulator.states[('pictureTaken', ('o1',))] is False


def test_picture_of_distant_object():
    simulator = make_simulator(objects={'o1': (1, 1)}, init_state=LIFE_AND_WATER)
    _, reward, _ = simulator.step({'useToolOn(a1,p1,o1)': True})
    assert reward == 0.0


def test_no_action_no_reward():
    simulator = make_simulator(objects={'o1': (0, 0)}, init_state=LIFE_AND_WATER)
    for _ in range(5):
        assert simulator.step({})[1] == 0.0

##################################################################################
# Damage and repair
##################################################################################


def test_damage_on_hazard():
    simulator = make_simulator(hazards=((1, 1),), start=(1, 1), damage_prob=1.0)
    obs, _, _ = simulator.step({})
    for tool in ('w1', 'l1', 'p1'):
        assert simulator.states[('damaged', (tool,))] is True
        assert obs[('damageReading', (tool,))] is True


def test_no_damage_off_hazard():
    simulator = make_simulator(hazards=((1, 1),), start=(0, 1), damage_prob=1.0)
    for _ in range(10):
        simulator.step({})
    assert not any(simulator.states[('damaged', (tool,))] for tool in ('w1', 'l1', 'p1'))


def test_damage_probability_per_tool():
    simulator = make_simulator(hazards=((0, 0),), damage_prob={'w1': 0.0, 'l1': 1.0, 'p1': 0.0})
    for _ in range(10):
        simulator.step({})
    assert simulator.states[('damaged', ('w1',))] is False
    assert simulator.states[('damaged', ('l1',))] is True
    assert simulator.states[('damaged', ('p1',))] is False


def test_damage_persists():
    simulator = make_simulator(init_state=[(('damaged', ['w1']), True)])
    for _ in range(5):
        simulator.step({})
    assert simulator.states[('damaged', ('w1',))] is True


def test_repair_at_base():
    init_state = [(('damaged', ['p1']), True), (('damaged', ['w1']), True)]
    simulator = make_simulator(init_state=init_state)
    simulator.step({'repair(a1,p1)': True})
    assert simulator.states[('damaged', ('p1',))] is False
    assert simulator.states[('damaged', ('w1',))] is True

    # repairing an undamaged tool keeps it undamaged
    simulator.step({'repair(a1,p1)': True})
    assert simulator.states[('damaged', ('p1',))] is False


def test_repair_on_hazardous_base():
    simulator = make_simulator(hazards=((0, 0),), damage_prob=1.0,
                               init_state=[(('damaged', ['p1']), True)])
    for _ in range(5):
        simulator.step({'repair(a1,p1)': True})
        assert simulator.states[('damaged', ('p1',))] is False


def test_repair_away_from_base():
    simulator = make_simulator(start=(1, 0), init_state=[(('damaged', ['p1']), True)])
    simulator.step({'repair(a1,p1)': True})
    assert simulator.states[('damaged', ('p1',))] is True

##################################################################################
# Movement
##################################################################################


@pytest.mark.parametrize('action, cell', [
    ('right', ('x1', 'y0')),
    ('up', ('x0', 'y1')),
    ('left', ('x0', 'y0')),
    ('down', ('x0', 'y0'))
])
def test_move_from_corner(action, cell):
    simulator = make_simulator()
    obs, _, _ = simulator.step({f'{action}(a1)': True})
    assert agent_cell(simulator) == cell
    assert obs[('observedAt', ('a1',) + cell)] is True


def test_move_around_grid():
    simulator = make_simulator(size=3)
    path = [('right', ('x1', 'y0')), ('right', ('x2', 'y0')), ('right', ('x2', 'y0')),
            ('up', ('x2', 'y1')), ('left', ('x1', 'y1')), ('down', ('x1', 'y0'))]
    for (action, cell) in path:
        simulator.step({f'{action}(a1)': True})
        assert agent_cell(simulator) == cell


def test_no_move_without_action():
    simulator = make_simulator(start=(1, 1))
    for _ in range(3):
        simulator.step({'useToolOn(a1,w1,o1)': True})
        assert agent_cell(simulator) == ('x1', 'y1')

##################################################################################
# Genesis and detection
##################################################################################


def test_life_follows_water():
    simulator = make_simulator(water_prob=1.0, life_prob=1.0)
    simulator.step({})
    assert simulator.states[('HAS_WATER', ('o1',))] is True
    assert simulator.states[('HAS_LIFE', ('o1',))] is False
    simulator.step({})
    assert simulator.states[('HAS_LIFE', ('o1',))] is True


def test_no_life_without_water():
    simulator = make_simulator(water_prob=0.0, life_prob=1.0)
    for _ in range(10):
        simulator.step({})
    assert not any(simulator.states[('HAS_LIFE', (obj,))] for obj in ('o1', 'o2'))


@pytest.mark.parametrize('seed', range(5))
def test_life_never_in_same_step_as_water(seed):
    simulator = make_simulator(seed=seed, water_prob=0.3, life_prob=0.9)
    for _ in range(20):
        before = simulator.states
        simulator.step({})
        for obj in ('o1', 'o2'):
            if simulator.states[('HAS_LIFE', (obj,))]:
                assert before[('HAS_WATER', (obj,))]


def test_detection():
    init_state = [(('HAS_WATER', ['o1']), True)]
    simulator = make_simulator(objects={'o1': (0, 0)}, init_state=init_state,
                               detect_prob=1.0)
    obs, _, _ = simulator.step({'useToolOn(a1,l1,o1)': True})
    assert obs[('lifeReading', ('o1',))] is False
    assert obs[('waterReading', ('o1',))] is False
    obs, _, _ = simulator.step({'useToolOn(a1,w1,o1)': True})
    assert obs[('waterReading', ('o1',))] is True
    assert simulator.states[('waterDetected', ('o1',))] is True


def test_detection_with_damaged_tool():
    init_state = [(('HAS_WATER', ['o1']), True), (('damaged', ['w1']), True)]
    simulator = make_simulator(objects={'o1': (0, 0)}, init_state=init_state,
                               detect_prob=1.0, detect_prob_damaged=0.0)
    for _ in range(5):
        obs, _, _ = simulator.step({'useToolOn(a1,w1,o1)': True})
        assert obs[('waterReading', ('o1',))] is False


def test_interm_fluent_not_in_state():
    simulator = make_simulator()
    assert ('moved', ('a1',)) not in simulator.states
    obs, _, _ = simulator.step({'right(a1)': True})
    assert ('moved', ('a1',)) not in obs
