import os
from typing import Optional, Union

import gymnasium as gym
from gymnasium.spaces import Box, Dict, Discrete
import numpy as np

from pyRDDLSim.core.compiler.model import RDDLGroundedModel
from pyRDDLSim.core.debug.exception import (
    raise_warning,
    RDDLEpisodeAlreadyEndedError,
    RDDLLogFolderError,
    RDDLTypeError
)
from pyRDDLSim.core.debug.logger import Logger, SimLogger
from pyRDDLSim.core.grounder import RDDLGrounder
from pyRDDLSim.core.parser.rddl import RDDL
from pyRDDLSim.core.seeding import RDDLEnvSeeder, RDDLEnvSeederFibonacci
from pyRDDLSim.core.simulator import RDDLSimulator


def _make_dir(log_path):
    root_path = os.path.dirname(log_path)
    if root_path and not os.path.exists(root_path):
        try:
            os.makedirs(root_path)
        except FileExistsError:
            pass
        except OSError as error:
            raise RDDLLogFolderError(
                f'Could not create folder at path {root_path}.') from error
    return log_path


class RDDLEnv(gym.Env):
    '''A gym environment class for RDDL domains.

    Wraps a RDDLSimulator with horizon and discount bookkeeping: the info dict
    returned by step() holds the discounted return accumulated so far in the
    episode, sum_t discount^t * reward_t.
    '''

    def __init__(self, rddl: Union[RDDL, RDDLGroundedModel],
                 enforce_action_constraints: bool=False,
                 debug: bool=False,
                 log_path: Optional[str]=None,
                 seeds: Optional[RDDLEnvSeeder]=None) -> None:
        '''Creates a new gym environment from the given RDDL domain + instance.

        :param rddl: the parsed RDDL domain and instance, or a grounded model
        that may be shared with other environments
        :param enforce_action_constraints: whether to raise an exception if the
        action preconditions are violated
        :param debug: whether to log compilation information to a log file
        :param log_path: path to file where simulation log is saved,
        excluding the file extension, None means no logging
        :param seeds: an instance of RDDLEnvSeeder for generating RNG seeds,
        defaults to the Fibonacci sequence
        '''
        super(RDDLEnv, self).__init__()
        self.enforce_action_constraints = enforce_action_constraints

        # for logging compilation data
        if isinstance(rddl, RDDLGroundedModel):
            log_fname = f'{rddl.domain_name}_{rddl.instance_name}'
        else:
            log_fname = f'{rddl.domain.name}_{rddl.instance.name}'
        logger = Logger(f'{log_fname}_debug.log') if debug else None
        self.logger = logger

        # define the RDDL model
        if isinstance(rddl, RDDLGroundedModel):
            self.model = rddl
        else:
            self.model = RDDLGrounder(rddl, logger=logger).ground()
        self.horizon = self.model.horizon
        self.discount = self.model.discount
        self.max_allowed_actions = self.model.max_allowed_actions

        # for logging simulation data
        self.simlogger = None
        if log_path:
            new_log_path = _make_dir(log_path)
            self.simlogger = SimLogger(f'{new_log_path}_log.csv')
            self.simlogger.clear(overwrite=False)

        # define the simulation backend
        self.sampler = RDDLSimulator(
            self.model,
            enforce_action_constraints=enforce_action_constraints,
            logger=logger)

        # construct the gym observation space
        if self.sampler.is_pomdp:
            state_keys = self.model.observ_fluents
        else:
            state_keys = self.model.state_fluents
        self.observation_space = self._rddl_to_gym_bounds(state_keys)

        # construct the gym action space
        self._noop_actions = self.sampler.noop_actions
        self.action_space = self._rddl_to_gym_bounds(self._noop_actions)

        # set roll-out parameters
        self.state = None
        self.trial = 0
        self.timestep = 0
        self.total_reward = 0.0
        self.done = False
        self.seeds = iter(seeds if seeds is not None else RDDLEnvSeederFibonacci())

    def _rddl_to_gym_bounds(self, keys):
        result = {}
        for key in keys:
            prange = self.model.range_of(key)

            # real values define a box
            if prange == 'real':
                result[key] = Box(-np.inf, np.inf, dtype=np.float32)

            # boolean values converted to Discrete space
            elif prange == 'bool':
                result[key] = Discrete(2)

            # integer values define a box over all 32-bit integers
            elif prange == 'int':
                low, high = np.iinfo(np.int32).min, np.iinfo(np.int32).max
                result[key] = Box(low, high, dtype=np.int32)

            # unknown type
            else:
                raise RDDLTypeError(
                    f'Range <{prange}> of fluent <{key}> is not valid, '
                    f'must be a primitive type (real, int, bool).')

        return Dict(result)

    def seed(self, seed=None):
        self.sampler.seed(seed)
        return [seed]

    def step(self, actions):
        sampler = self.sampler

        if self.done:
            raise RDDLEpisodeAlreadyEndedError(
                'The step() function has been called even though the '
                'current episode has terminated or truncated: please call reset().')

        # sample next state and reward
        actions = sampler.prepare_actions(actions)
        obs, reward, _ = sampler.step(actions)
        self.state = sampler.states
        self.total_reward += reward * (self.discount ** self.timestep)

        # check if the state invariants are satisfied
        terminated = sampler.check_terminal_states()
        truncated = not sampler.check_state_invariants(silent=True)
        if truncated:
            raise_warning(f'State invariants are not satisfied after step '
                          f'{self.timestep}: the episode is truncated.', 'red')

        # log to file
        if self.simlogger is not None:
            self.simlogger.log(self.model.ground_vars_with_value(obs),
                               self.model.ground_vars_with_value(actions),
                               reward, terminated or truncated, self.timestep)

        # update step horizon
        self.timestep += 1
        if self.timestep == self.horizon:
            truncated = truncated or not terminated
        self.done = terminated or truncated

        info = {'return': self.total_reward, 'timestep': self.timestep}
        return obs, reward, terminated, truncated, info

    def reset(self, seed=None, options=None):
        sampler = self.sampler

        # update random generator seed
        if seed is None:
            seed = next(self.seeds)
        if seed is not None:
            self.seed(seed)

        # reset counters and internal state
        obs, terminated = sampler.reset()
        self.done = terminated
        self.state = sampler.states
        self.trial += 1
        self.timestep = 0
        self.total_reward = 0.0

        # logging
        if self.simlogger is not None:
            text = (f'######################################################\n'
                    f'New Trial, seed={seed}\n'
                    f'######################################################')
            self.simlogger.log_free(text)

        return obs, {}

    def close(self):
        if self.simlogger is not None:
            self.simlogger.close()
