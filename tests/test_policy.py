import pytest

import pyRDDLSim
from pyRDDLSim.core.env import RDDLEnv
from pyRDDLSim.core.policy import NoOpAgent, RandomAgent


def test_noop_agent(lights):
    env = RDDLEnv(lights(horizon=3, discount=0.9))
    agent = NoOpAgent(env.action_space)
    assert agent.sample_action() == {}
    stats = agent.evaluate(env, episodes=2, seed=0)
    assert stats['mean'] == pytest.approx(1.0 + 0.9 + 0.81)
    assert stats['std'] == pytest.approx(0.0)
    assert set(stats) == {'mean', 'median', 'min', 'max', 'std'}


def test_random_agent_actions():
    env = pyRDDLSim.make('Reconnaissance', '1')
    agent = RandomAgent(env.action_space, num_actions=1, seed=42)
    for _ in range(20):
        action = agent.sample_action()
        assert len(action) == 1
        (key, value), = action.items()
        assert key in env.model.action_fluents
        assert isinstance(value, bool)


def test_random_agent_real_actions(lights):
    env = RDDLEnv(lights())
    agent = RandomAgent(env.action_space, num_actions=4, seed=0)
    action = agent.sample_action()
    assert len(action) == 4
    assert isinstance(action[('prob', ())], float)


def test_random_agent_evaluate(capsys):
    env = pyRDDLSim.make('Elevators', '1')
    agent = RandomAgent(env.action_space, num_actions=1, seed=3)
    stats = agent.evaluate(env, episodes=2, verbose=True, seed=3)
    assert stats['min'] <= stats['mean'] <= stats['max'] <= 0.0
    assert 'episode 2 ended with return' in capsys.readouterr().out
