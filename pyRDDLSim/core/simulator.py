from collections import ChainMap
import enum
import threading
from typing import Any, Dict, Optional, Tuple

import numpy as np

from pyRDDLSim.core.compiler.model import GroundKey, RDDLGroundedModel, Value
from pyRDDLSim.core.debug.exception import (
    print_stack_trace,
    print_stack_trace_root,
    RDDLActionPreconditionNotSatisfiedError,
    RDDLConcurrentStepError,
    RDDLEpisodeAlreadyEndedError,
    RDDLInvalidActionError,
    RDDLStateInvariantNotSatisfiedError,
    RDDLTypeError
)
from pyRDDLSim.core.debug.logger import Logger
from pyRDDLSim.core.evaluator import RDDLExpressionEvaluator
from pyRDDLSim.core.grounder import cast_value
from pyRDDLSim.core.sampler import is_distribution, RDDLSampler

Args = Dict[GroundKey, Value]


class SimulatorState(enum.Enum):
    INITIALIZED = 'initialized'
    READY = 'ready'
    STEPPING = 'stepping'
    TERMINATED = 'terminated'


class RDDLSimulator:
    '''Executes one episode of a grounded RDDL model.

    The simulator owns the current generation of the state fluents and its own
    stream of random numbers; the model itself is only read. A step evaluates
    every CPF against the state before the step, and the new generation
    replaces the current one only once the whole step has succeeded: an error
    raised while stepping leaves the state and the step counter unchanged.
    '''

    def __init__(self, rddl: RDDLGroundedModel,
                 enforce_action_constraints: bool=False,
                 seed: Optional[int]=None,
                 logger: Optional[Logger]=None) -> None:
        '''Creates a new simulator for the given RDDL model.

        :param rddl: the grounded RDDL model
        :param enforce_action_constraints: whether to raise an exception if the
        action preconditions are not satisfied
        :param seed: the seed of the random number generator
        :param logger: to log information about simulation to file
        '''
        self.rddl = rddl
        self.enforce_action_constraints = enforce_action_constraints
        self.logger = logger

        self.sampler = RDDLSampler(seed)
        self.evaluator = RDDLExpressionEvaluator(rddl.type_to_objects, self.sampler)
        self.noop_actions = dict(rddl.action_fluents)

        self._lock = threading.Lock()
        self._status = SimulatorState.INITIALIZED
        self._states = None
        self._observations = None
        self._timestep = 0

        if logger is not None:
            order = '\n\t'.join(map(RDDLGroundedModel.key_to_str,
                                    rddl.interm_order + rddl.next_state_order +
                                    rddl.observ_order))
            logger.log(f'[info] order of evaluation of ground CPFs:\n\t{order}\n')

    def seed(self, seed: Optional[int]=None) -> None:
        '''Resets the random number generator with the given seed.'''
        self.sampler.seed(seed)

    # ===========================================================================
    # read-only accessors
    # ===========================================================================

    @property
    def status(self) -> SimulatorState:
        return self._status

    @property
    def states(self) -> Optional[Args]:
        '''A copy of the full ground state, for debugging or oracle use.'''
        return None if self._states is None else dict(self._states)

    @property
    def non_fluents(self):
        return self.rddl.non_fluents

    @property
    def observations(self) -> Optional[Args]:
        return None if self._observations is None else dict(self._observations)

    @property
    def timestep(self) -> int:
        return self._timestep

    @property
    def horizon(self) -> int:
        return self.rddl.horizon

    @property
    def is_pomdp(self) -> bool:
        return self.rddl.is_pomdp

    # ===========================================================================
    # actions and constraints
    # ===========================================================================

    @staticmethod
    def _cast_action(value, prange):
        if isinstance(value, np.ndarray) and value.size == 1:
            value = value.item()
        if prange == 'bool' and isinstance(value, (int, np.integer)) \
        and not isinstance(value, bool) and value in (0, 1):
            return bool(value)
        return cast_value(value, prange)

    def prepare_actions(self, actions: Optional[Dict[Any, Any]]) -> Args:
        '''Converts the keys of the given actions to ground keys, the values to
        the range of each action, and fills in the default value of every
        action not given.'''
        rddl = self.rddl
        prepared = dict(self.noop_actions)
        for (var, value) in (actions or {}).items():
            try:
                key = rddl.ground_key(var)
            except (TypeError, ValueError, SyntaxError):
                raise RDDLInvalidActionError(
                    f'<{var}> is not a valid ground action.') from None
            if key not in prepared:
                raise RDDLInvalidActionError(
                    f'<{RDDLGroundedModel.key_to_str(key)}> is not a valid '
                    f'action-fluent, must be one of '
                    f'{[RDDLGroundedModel.key_to_str(k) for k in prepared]}.')
            prange = rddl.range_of(key)
            cast = self._cast_action(value, prange)
            if cast is None:
                raise RDDLInvalidActionError(
                    f'Value <{value}> of action-fluent '
                    f'<{RDDLGroundedModel.key_to_str(key)}> is not of type {prange}.')
            prepared[key] = cast
        return prepared

    def check_default_action_count(self, actions: Args) -> None:
        '''Throws an exception if the actions do not satisfy max-nondef-actions.'''
        noop = self.noop_actions
        count = sum(1 for (key, value) in actions.items() if value != noop[key])
        if count > self.rddl.max_allowed_actions:
            raise RDDLInvalidActionError(
                f'Expected at most {self.rddl.max_allowed_actions} '
                f'non-default actions, got {count}.')

    def _check_constraint(self, expr, subs, what):
        value = self.evaluator.evaluate(expr, subs)
        if not isinstance(value, bool):
            raise RDDLTypeError(
                f'{what} must evaluate to bool, got {value}.\n' +
                print_stack_trace(expr))
        return value

    def check_action_preconditions(self, actions: Args, silent: bool=False) -> bool:
        '''Throws an exception if the action preconditions are not satisfied.'''
        subs = ChainMap(actions, self._states, self.rddl.non_fluents)
        for (i, precond) in enumerate(self.rddl.preconditions):
            if not self._check_constraint(precond, subs, 'Precondition'):
                if silent:
                    return False
                raise RDDLActionPreconditionNotSatisfiedError(
                    f'Precondition {i + 1} is not satisfied.\n' +
                    print_stack_trace(precond))
        return True

    def check_state_invariants(self, silent: bool=False) -> bool:
        '''Throws an exception if the state invariants are not satisfied.'''
        subs = ChainMap(self._states, self.rddl.non_fluents)
        for (i, invariant) in enumerate(self.rddl.invariants):
            if not self._check_constraint(invariant, subs, 'Invariant'):
                if silent:
                    return False
                raise RDDLStateInvariantNotSatisfiedError(
                    f'Invariant {i + 1} is not satisfied.\n' +
                    print_stack_trace(invariant))
        return True

    def _is_terminal(self, states):
        subs = ChainMap(states, self.rddl.non_fluents)
        return any(self._check_constraint(terminal, subs, 'Termination')
                   for terminal in self.rddl.terminations)

    def check_terminal_states(self) -> bool:
        '''Returns whether a termination condition holds in the current state.'''
        return self._is_terminal(self._states)

    # ===========================================================================
    # main simulation routines
    # ===========================================================================

    def _acquire(self):
        if not self._lock.acquire(blocking=False):
            raise RDDLConcurrentStepError(
                'Another call to reset() or step() is in progress on this '
                'simulator: steps of an episode must be sequential.')

    def reset(self) -> Tuple[Args, bool]:
        '''Resets the state to the initial state of the instance and returns
        the initial observation and whether the initial state is terminal.'''
        self._acquire()
        try:
            rddl = self.rddl
            self._states = dict(rddl.state_fluents)
            self._timestep = 0
            if rddl.is_pomdp:
                obs = dict(rddl.observ_fluents)
            else:
                obs = dict(self._states)
            self._observations = obs
            done = self.check_terminal_states()
            self._status = SimulatorState.TERMINATED if done else SimulatorState.READY
            return dict(obs), done
        finally:
            self._lock.release()

    def step(self, actions: Optional[Dict[Any, Any]]) -> Tuple[Args, float, bool]:
        '''Samples and commits the next state given the actions, and returns
        the observation, the reward and whether the episode is done.

        :param actions: dict of action values keyed by ground key (name, args)
        or by string name(obj1,obj2), actions not given take their default
        '''
        self._acquire()
        try:
            return self._step(actions)
        finally:
            self._lock.release()

    def _step(self, actions):
        if self._status == SimulatorState.INITIALIZED:
            raise RDDLEpisodeAlreadyEndedError(
                'The step() function has been called before reset().')
        elif self._status == SimulatorState.TERMINATED:
            raise RDDLEpisodeAlreadyEndedError(
                'The step() function has been called even though the '
                'current episode has terminated: please call reset().')

        actions = self.prepare_actions(actions)
        self.check_default_action_count(actions)
        if self.enforce_action_constraints:
            self.check_action_preconditions(actions)

        self._status = SimulatorState.STEPPING
        try:
            obs, reward, next_states, terminated = self._transition(actions)
        finally:
            self._status = SimulatorState.READY

        # commit the next generation
        self._states = next_states
        self._observations = obs
        self._timestep += 1
        done = terminated or self._timestep >= self.rddl.horizon
        if done:
            self._status = SimulatorState.TERMINATED
        return dict(obs), reward, done

    def _transition(self, actions):
        rddl = self.rddl

        # interm and next state are sampled from the pre-step snapshot
        interms = {}
        subs = ChainMap(actions, interms, self._states, rddl.non_fluents)
        for key in rddl.interm_order:
            interms[key] = self._sample_cpf(key, subs)
        next_states = {}
        for key in rddl.next_state_order:
            next_states[key] = self._sample_cpf(key, subs)

        # observations read only the already sampled next state
        observs = {}
        obs_subs = ChainMap(next_states, actions, interms, rddl.non_fluents)
        for key in rddl.observ_order:
            observs[key] = self._sample_cpf(key, obs_subs)

        # reward reads the state before this step's effects
        reward = self._sample_reward(subs)

        new_states = {}
        for (name, objects) in rddl.state_fluents:
            new_states[(name, objects)] = next_states[(rddl.next_state[name], objects)]
        terminated = self._is_terminal(new_states)

        obs = observs if rddl.is_pomdp else dict(new_states)
        return obs, reward, new_states, terminated

    def _sample_cpf(self, key, subs):
        bindings, expr = self.rddl.ground_cpfs[key]
        sample = self.evaluator.evaluate_cpf(expr, subs, bindings)
        if is_distribution(sample):
            sample = self.sampler.sample(sample)
        return self._check_type(key, sample, expr)

    def _check_type(self, key, value, expr):
        prange = self.rddl.range_of(key)
        if prange == 'bool':
            if isinstance(value, bool):
                return value
        elif prange == 'int':
            if isinstance(value, int):
                return int(value)
        elif isinstance(value, (bool, int, float)):
            return float(value)
        name = RDDLGroundedModel.key_to_str(key)
        raise RDDLTypeError(
            f'CPF <{name}> of range {prange} produced value <{value}> of type '
            f'{type(value).__name__}.\n' + print_stack_trace_root(expr, name))

    def _sample_reward(self, subs):
        reward = self.evaluator.evaluate(self.rddl.reward, subs)
        if not isinstance(reward, (bool, int, float)):
            raise RDDLTypeError(
                f'Reward must evaluate to a number, got {reward}.\n' +
                print_stack_trace(self.rddl.reward))
        return float(reward)
