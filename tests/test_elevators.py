from pyRDDLSim.core.grounder import RDDLGrounder
from pyRDDLSim.core.simulator import RDDLSimulator
from pyRDDLSim.examples import elevators

##################################################################################
# Helper functions
##################################################################################


def make_simulator(seed=0, **kwargs):
    rddl = elevators.make_rddl(**kwargs)
    simulator = RDDLSimulator(RDDLGrounder(rddl).ground(), seed=seed)
    simulator.reset()
    return simulator


def floor_of(simulator, elevator='e0'):
    floors = [args[1] for ((name, args), value) in simulator.states.items()
              if name == 'elevator-at-floor' and args[0] == elevator and value]
    assert len(floors) == 1
    return floors[0]

##################################################################################
# Test definitions
##################################################################################


def test_move_up_and_down():
    simulator = make_simulator(arrive_param=0.0)
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f1'
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f2'

    # the top floor is the end of the shaft
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f2'

    # reverse direction, then close the door and move down
    simulator.step({'open-door-going-down(e0)': True})
    assert simulator.states[('elevator-dir-up', ('e0',))] is False
    assert simulator.states[('elevator-closed', ('e0',))] is False
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f2'
    simulator.step({'close-door(e0)': True})
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f1'


def test_no_arrivals_no_penalty():
    simulator = make_simulator(arrive_param=0.0)
    for _ in range(10):
        assert simulator.step({'move-current-dir(e0)': True})[1] == 0.0


def test_waiting_penalty():
    simulator = make_simulator(arrive_param=1.0)
    _, reward, _ = simulator.step({})
    assert reward == 0.0
    _, reward, _ = simulator.step({})
    assert reward == -6.0


def test_passenger_ride():
    simulator = make_simulator(arrive_param={0: 1.0, 1: 0.0, 2: 0.0})
    simulator.step({})
    assert simulator.states[('person-waiting-up', ('f0',))] is True

    # open the door going up, the passenger boards
    simulator.step({'open-door-going-up(e0)': True})
    simulator.step({'close-door(e0)': True})
    assert simulator.states[('person-in-elevator-going-up', ('e0',))] is True

    # ride to the top, where the passenger leaves
    _, reward, _ = simulator.step({'move-current-dir(e0)': True})
    assert reward == -0.75 - 2.0
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator) == 'f2'
    simulator.step({})
    assert simulator.states[('person-in-elevator-going-up', ('e0',))] is False


def test_two_elevators():
    simulator = make_simulator(num_floors=5, num_elevators=2, arrive_param=0.0,
                               max_nondef_actions=2)
    simulator.step({'move-current-dir(e0)': True, 'move-current-dir(e1)': True})
    simulator.step({'move-current-dir(e0)': True})
    assert floor_of(simulator, 'e0') == 'f2'
    assert floor_of(simulator, 'e1') == 'f1'
    assert simulator.check_state_invariants()
