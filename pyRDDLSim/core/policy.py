from abc import ABCMeta, abstractmethod
import random
import shutil
from typing import Any, Dict, Optional

import gymnasium as gym
import numpy as np

from pyRDDLSim.core.compiler.model import RDDLGroundedModel
from pyRDDLSim.core.env import RDDLEnv


class BaseAgent(metaclass=ABCMeta):
    '''Base class for policies.'''

    @abstractmethod
    def sample_action(self, state: Any) -> Any:
        '''Samples an action from the current policy evaluated at the given state.

        :param state: the current state (or observation)
        '''
        pass

    def reset(self) -> None:
        '''Resets the policy and prepares it for the next episode.'''
        pass

    @staticmethod
    def _format(state, width=80, indent=4):
        if len(state) == 0:
            return str(state)
        state = {RDDLGroundedModel.key_to_str(key) if isinstance(key, tuple) else key:
                 str(value) for (key, value) in state.items()}
        klen = max(map(len, state.keys())) + 1
        vlen = max(map(len, state.values())) + 1
        cols = max(1, (width - indent) // (klen + vlen + 3))
        result = ' ' * indent
        for (count, (key, value)) in enumerate(state.items(), 1):
            result += f'{key.rjust(klen)} = {value.ljust(vlen)}'
            if count % cols == 0:
                result += '\n' + ' ' * indent
        return result

    def evaluate(self, env: RDDLEnv, episodes: int=1,
                 verbose: bool=False,
                 seed: Optional[int]=None) -> Dict[str, float]:
        '''Evaluates the current agent on the specified environment by simulating
        roll-outs. Returns a dictionary of summary statistics of the returns
        accumulated on the roll-outs.

        :param env: the environment
        :param episodes: how many episodes (trials) to perform
        :param verbose: whether to print the transition information to console
        at each step of the simulation
        :param seed: optional RNG seed for the environment
        '''
        gamma = env.discount

        # get terminal width
        if verbose:
            width = shutil.get_terminal_size().columns
            sep_bar = '-' * width

        # start simulation
        history = np.zeros((episodes,))
        for episode in range(episodes):

            # restart episode
            total_reward, cuml_gamma = 0.0, 1.0
            self.reset()
            state, _ = env.reset(seed=seed)

            # printing
            if verbose:
                print(f'initial state = \n{self._format(state, width)}')

            # simulate to end of horizon
            for step in range(env.horizon):

                # take a step in the environment
                action = self.sample_action(state)
                next_state, reward, terminated, truncated, _ = env.step(action)
                total_reward += reward * cuml_gamma
                cuml_gamma *= gamma
                done = terminated or truncated

                # printing
                if verbose:
                    print(f'{sep_bar}\n'
                          f'step   = {step}\n'
                          f'action = \n{self._format(action, width)}\n'
                          f'state  = \n{self._format(next_state, width)}\n'
                          f'reward = {reward}\n'
                          f'done   = {done}')
                state = next_state
                if done:
                    break

            if verbose:
                print(f'\n'
                      f'episode {episode + 1} ended with return {total_reward}\n'
                      f'{"=" * width}')
            history[episode] = total_reward

            # set the seed on the first episode only
            seed = None

        # summary statistics
        return {
            'mean': np.mean(history),
            'median': np.median(history),
            'min': np.min(history),
            'max': np.max(history),
            'std': np.std(history)
        }


class RandomAgent(BaseAgent):
    '''Uniformly pseudo-random policy.'''

    def __init__(self, action_space: gym.spaces.Dict,
                 num_actions: int=1, seed: Optional[int]=None) -> None:
        '''Creates a new uniformly pseudo-random policy.

        :param action_space: the set of actions from which to sample uniformly
        :param num_actions: the number of actions to set to a sampled value,
        the remaining actions keep their default value
        :param seed: optional RNG seed for the policy
        '''
        self.action_space = action_space
        self.num_actions = min(num_actions, len(action_space.spaces))
        self.rng = random.Random(seed)
        if seed is not None:
            self.action_space.seed(seed)

    def sample_action(self, state: Any=None) -> Dict:
        s = self.action_space.sample()
        action = {}
        selected_actions = self.rng.sample(sorted(s), self.num_actions)
        for sample in selected_actions:
            space = self.action_space[sample]
            if isinstance(space, gym.spaces.Box):
                action[sample] = np.asarray(s[sample]).item()
            elif isinstance(space, gym.spaces.Discrete):
                action[sample] = bool(s[sample])
        return action


class NoOpAgent(BaseAgent):
    '''No-op policy.'''

    def __init__(self, action_space=None, num_actions=0):
        '''Creates a new no-op policy.

        :param action_space: the set of actions (currently unused)
        :param num_actions: the number of samples to produce (currently unused)
        '''
        self.action_space = action_space
        self.num_actions = num_actions

    def sample_action(self, state=None):
        return {}
