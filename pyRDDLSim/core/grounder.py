import abc
from types import MappingProxyType
from typing import Dict, Optional

import numpy as np

from pyRDDLSim.core.compiler.levels import RDDLLevelAnalysis
from pyRDDLSim.core.compiler.model import RDDLGroundedModel
from pyRDDLSim.core.debug.exception import (
    print_stack_trace,
    RDDLInstantiationError,
    RDDLInvalidDependencyInCPFError,
    RDDLInvalidExpressionError,
    RDDLInvalidNumberOfArgumentsError,
    RDDLInvalidObjectError,
    RDDLInvalidValueError,
    RDDLMissingCPFDefinitionError,
    RDDLModelError,
    RDDLNotImplementedError,
    RDDLRepeatedVariableError,
    RDDLUndefinedTypeError,
    RDDLUndefinedVariableError
)
from pyRDDLSim.core.debug.logger import Logger
from pyRDDLSim.core.evaluator import KNOWN_BINARY, KNOWN_UNARY
from pyRDDLSim.core.parser.expr import Expression
from pyRDDLSim.core.parser.pvariable import FLUENT_TYPES
from pyRDDLSim.core.parser.rddl import RDDL
from pyRDDLSim.core.sampler import KNOWN_DISTRIBUTIONS

# number of arguments accepted by each operator, None for any number >= 1
OPERATOR_ARITY = {
    '+': None, '*': None, '-': (1, 2), '/': (2,),
    '^': None, '&': None, '|': None, '~': (1,), '=>': (2,), '<=>': (2,),
    '>=': (2,), '<=': (2,), '<': (2,), '>': (2,), '==': (2,), '~=': (2,)
}


def cast_value(value, prange):
    '''Casts the value to the Python type of the given range, or returns None
    if the value is not a valid member of the range.'''
    if prange == 'bool':
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
    elif isinstance(value, (bool, np.bool_)):
        return None
    elif prange == 'int':
        if isinstance(value, (int, np.integer)):
            return int(value)
    elif prange == 'real':
        if isinstance(value, (int, float, np.integer, np.floating)):
            return float(value)
    return None


class BaseRDDLGrounder(metaclass=abc.ABCMeta):
    '''Base class for all grounder classes.
    '''

    @abc.abstractmethod
    def ground(self) -> RDDLGroundedModel:
        '''Produces a grounded representation of the current RDDL.
        '''
        pass


class RDDLGrounder(BaseRDDLGrounder):
    '''Standard class for grounding a RDDL domain and instance.

    Expands the typed parameters of every pvariable over the object domains of
    the instance, resolves instance overrides against the domain defaults,
    validates all expressions and computes a dependency-ordered list of ground
    CPFs. Raises a subclass of RDDLModelError for a malformed domain and of
    RDDLInstantiationError for an instance that cannot be bound to it.
    '''

    def __init__(self, RDDL_AST: RDDL, logger: Optional[Logger]=None) -> None:
        '''Creates a new grounder object for grounding the specified RDDL.

        :param RDDL_AST: the parsed RDDL domain, non-fluents and instance
        :param logger: to log information about grounding to file
        '''
        super(RDDLGrounder, self).__init__()
        self.AST = RDDL_AST
        self.logger = logger
        self._quantified_types = set()

    def ground(self) -> RDDLGroundedModel:
        model = RDDLGroundedModel(self.AST)
        self._extract_objects(model)
        self._extract_variables(model)
        self._extract_cpfs(model)
        self._check_expressions(model)
        self._check_required_types(model)
        self._ground_non_fluents(model)
        self._ground_fluents(model)
        model.level_to_cpfs = RDDLLevelAnalysis(model, self.logger).compute_levels()
        self._ground_cpfs(model)
        model.horizon = self._ground_horizon()
        model.discount = self._ground_discount()
        model.max_allowed_actions = self._ground_max_actions(model)

        if self.logger is not None:
            self.logger.log(
                f'[info] grounded domain <{model.domain_name}> '
                f'with instance <{model.instance_name}>:\n'
                f'\tobjects: {model.type_to_objects}\n'
                f'\tnon-fluents: {len(model.non_fluents)}, '
                f'state-fluents: {len(model.state_fluents)}, '
                f'interm-fluents: {len(model.interm_fluents)}, '
                f'observ-fluents: {len(model.observ_fluents)}, '
                f'action-fluents: {len(model.action_fluents)}\n'
                f'\thorizon: {model.horizon}, discount: {model.discount}, '
                f'max-nondef-actions: {model.max_allowed_actions}\n')
        return model

    # ===========================================================================
    # objects and variables
    # ===========================================================================

    def _extract_objects(self, model):
        type_to_objects = {}
        for (name, kind) in self.AST.domain.types:
            if name in type_to_objects:
                raise RDDLRepeatedVariableError(
                    f'Type <{name}> is declared more than once.')
            if kind != 'object':
                raise RDDLNotImplementedError(
                    f'Type <{name}> of kind <{kind}> is not supported, '
                    f'only object types are.')
            type_to_objects[name] = []

        blocks = []
        if self.AST.non_fluents is not None:
            blocks.extend(self.AST.non_fluents.objects)
        blocks.extend(self.AST.instance.objects)

        object_to_type = {}
        for (ptype, objects) in blocks:
            if ptype not in type_to_objects:
                raise RDDLUndefinedTypeError(
                    f'Objects are given for type <{ptype}>, which is not '
                    f'declared in types {{...}} block, '
                    f'must be one of {set(type_to_objects.keys())}.')
            for obj in objects:
                if obj in object_to_type:
                    raise RDDLRepeatedVariableError(
                        f'Object <{obj}> of type <{ptype}> is already defined '
                        f'for type <{object_to_type[obj]}>.')
                object_to_type[obj] = ptype
                type_to_objects[ptype].append(obj)

        model.type_to_objects = {ptype: tuple(objects)
                                 for (ptype, objects) in type_to_objects.items()}
        model.object_to_type = object_to_type

    def _extract_variables(self, model):
        PRIME = RDDLGroundedModel.NEXT_STATE_SYM
        for pvar in self.AST.domain.pvariables:
            name = pvar.name
            if name in model.variable_types:
                raise RDDLRepeatedVariableError(
                    f'{pvar.fluent_type} <{name}> is already defined as '
                    f'{model.variable_types[name]}.')
            if not name or name.endswith(PRIME) or RDDLGroundedModel.is_free_object(name):
                raise RDDLModelError(f'Variable name <{name}> is not valid.')
            if pvar.fluent_type not in FLUENT_TYPES:
                raise RDDLNotImplementedError(
                    f'Type <{pvar.fluent_type}> of variable <{name}> is not '
                    f'supported, must be one of {set(FLUENT_TYPES)}.')
            if pvar.range not in RDDLGroundedModel.PRIMITIVE_TYPES:
                raise RDDLUndefinedTypeError(
                    f'Range <{pvar.range}> of variable <{name}> is not valid, '
                    f'must be one of {set(RDDLGroundedModel.PRIMITIVE_TYPES)}.')

            ptypes = tuple(pvar.param_types or ())
            for ptype in ptypes:
                if ptype not in model.type_to_objects:
                    raise RDDLUndefinedTypeError(
                        f'Type <{ptype}> of parameter of variable <{name}> is '
                        f'not defined, must be one of '
                        f'{set(model.type_to_objects.keys())}.')

            # interm and observ fluents are computed, others need a default
            default = None
            if pvar.fluent_type not in ('interm-fluent', 'observ-fluent'):
                default = cast_value(pvar.default, pvar.range)
                if default is None:
                    raise RDDLModelError(
                        f'Default value <{pvar.default}> of {pvar.fluent_type} '
                        f'<{name}> is missing or not of type {pvar.range}.')

            model.variable_types[name] = pvar.fluent_type
            model.variable_ranges[name] = pvar.range
            model.variable_params[name] = ptypes
            model.variable_defaults[name] = default
            if pvar.is_state_fluent():
                next_name = name + PRIME
                model.next_state[name] = next_name
                model.prev_state[next_name] = name

        # next-state fluents are registered after all names are known
        for (name, next_name) in model.next_state.items():
            if next_name in model.variable_types:
                raise RDDLRepeatedVariableError(
                    f'Variable <{next_name}> is already defined.')
            model.variable_types[next_name] = 'next-state-fluent'
            model.variable_ranges[next_name] = model.variable_ranges[name]
            model.variable_params[next_name] = model.variable_params[name]
            model.variable_defaults[next_name] = model.variable_defaults[name]

    # ===========================================================================
    # CPFs and expressions
    # ===========================================================================

    def _extract_cpfs(self, model):
        PRIME = RDDLGroundedModel.NEXT_STATE_SYM
        for cpf in self.AST.domain.cpf_list:
            name = cpf.fluent
            var_type = model.variable_types.get(name, None)
            if var_type is None:
                raise RDDLUndefinedVariableError(
                    f'CPF <{name}> is defined for a variable that is not '
                    f'declared in pvariables {{...}} block.')
            elif var_type == 'state-fluent':
                raise RDDLInvalidDependencyInCPFError(
                    f'CPF definition for state-fluent <{name}> is not valid, '
                    f'did you mean <{name}{PRIME}>?')
            elif var_type not in ('next-state-fluent', 'interm-fluent', 'observ-fluent'):
                raise RDDLInvalidDependencyInCPFError(
                    f'{var_type} <{name}> cannot be defined by a CPF.')
            if name in model.cpfs:
                raise RDDLRepeatedVariableError(
                    f'CPF <{name}> is defined more than once.')

            params = cpf.params
            ptypes = model.variable_params[name]
            if len(params) != len(ptypes):
                raise RDDLInvalidNumberOfArgumentsError(
                    f'CPF <{name}> expects {len(ptypes)} parameters, '
                    f'got {len(params)}.')
            for param in params:
                if not isinstance(param, str) \
                or not RDDLGroundedModel.is_free_object(param):
                    raise RDDLInvalidExpressionError(
                        f'Parameter <{param}> of CPF <{name}> is not a variable '
                        f'of the form ?x.')
            if len(set(params)) != len(params):
                raise RDDLRepeatedVariableError(
                    f'CPF <{name}> has repeated parameters {params}.')
            model.cpfs[name] = (list(zip(params, ptypes)), cpf.expr)

        domain = self.AST.domain
        if domain.reward is None:
            raise RDDLMissingCPFDefinitionError(
                'Reward is not defined in domain.')
        model.reward = domain.reward
        model.preconditions = list(domain.preconds) + list(domain.constraints)
        model.invariants = list(domain.invariants)
        model.terminations = list(domain.terminals)

    def _check_expressions(self, model):
        for (name, (params, expr)) in model.cpfs.items():
            self._check_expr(model, expr, dict(params), f'CPF <{name}>')
        self._check_expr(model, model.reward, {}, 'reward')
        for (where, exprs) in (('precondition', model.preconditions),
                               ('invariant', model.invariants),
                               ('termination', model.terminations)):
            for expr in exprs:
                self._check_expr(model, expr, {}, where)

    def _check_expr(self, model, expr, scope, where):
        if not isinstance(expr, Expression):
            raise RDDLInvalidExpressionError(
                f'Argument <{expr}> in {where} is not an expression.')
        etype, op = expr.etype

        if etype == 'constant':
            pass

        elif etype == 'pvar':
            self._check_pvar(model, expr, scope, where)

        elif etype == 'aggregation':
            *pvars, body = expr.args
            if not pvars:
                raise RDDLInvalidExpressionError(
                    f'Aggregation <{op}> in {where} has no variables.\n' +
                    print_stack_trace(expr))
            new_scope = dict(scope)
            for (_, (var, ptype)) in pvars:
                if ptype not in model.type_to_objects:
                    raise RDDLUndefinedTypeError(
                        f'Type <{ptype}> of variable <{var}> in {where} is not '
                        f'defined, must be one of '
                        f'{set(model.type_to_objects.keys())}.\n' +
                        print_stack_trace(expr))
                self._quantified_types.add(ptype)
                new_scope[var] = ptype
            self._check_expr(model, body, new_scope, where)

        elif etype in ('arithmetic', 'boolean', 'relational'):
            arity = OPERATOR_ARITY[op]
            n = len(expr.args)
            if (arity is None and n < 1) or (arity is not None and n not in arity):
                raise RDDLInvalidNumberOfArgumentsError(
                    f'Operator <{op}> in {where} cannot take {n} arguments.\n' +
                    print_stack_trace(expr))
            for arg in expr.args:
                self._check_expr(model, arg, scope, where)

        elif etype == 'func':
            n = len(expr.args)
            if not ((op in KNOWN_UNARY and n == 1) or (op in KNOWN_BINARY and n == 2)):
                raise RDDLNotImplementedError(
                    f'Function <{op}> with {n} arguments in {where} is not '
                    f'supported, must be one of {set(KNOWN_UNARY)} (unary) or '
                    f'{set(KNOWN_BINARY)} (binary).\n' + print_stack_trace(expr))
            for arg in expr.args:
                self._check_expr(model, arg, scope, where)

        elif etype == 'control':
            if len(expr.args) != 3:
                raise RDDLInvalidNumberOfArgumentsError(
                    f'If statement in {where} must have three arguments.\n' +
                    print_stack_trace(expr))
            for arg in expr.args:
                self._check_expr(model, arg, scope, where)

        elif etype == 'randomvar':
            if op not in KNOWN_DISTRIBUTIONS:
                raise RDDLNotImplementedError(
                    f'Distribution <{op}> in {where} is not supported, '
                    f'must be one of {set(KNOWN_DISTRIBUTIONS)}.\n' +
                    print_stack_trace(expr))
            if len(expr.args) != 1:
                raise RDDLInvalidNumberOfArgumentsError(
                    f'Distribution <{op}> in {where} requires one parameter, '
                    f'got {len(expr.args)}.\n' + print_stack_trace(expr))
            self._check_expr(model, expr.args[0], scope, where)

        else:
            raise RDDLInvalidExpressionError(
                f'Expression type <{expr[0]}> in {where} is not valid.')

    def _check_pvar(self, model, expr, scope, where):
        name, params = expr.args

        # a free variable must be bound by the CPF or an enclosing aggregation
        if RDDLGroundedModel.is_free_object(name):
            if name not in scope:
                raise RDDLUndefinedVariableError(
                    f'Variable <{name}> in {where} is not bound.\n' +
                    print_stack_trace(expr))
            return

        # object literal
        if not params and name in model.object_to_type \
        and name not in model.variable_types:
            return

        if name not in model.variable_types:
            raise RDDLUndefinedVariableError(
                f'Variable <{name}> in {where} is not defined.\n' +
                print_stack_trace(expr))

        params = params or []
        ptypes = model.variable_params[name]
        if len(params) != len(ptypes):
            raise RDDLInvalidNumberOfArgumentsError(
                f'Variable <{name}> in {where} requires {len(ptypes)} '
                f'parameters, got {len(params)}.\n' + print_stack_trace(expr))

        for (param, ptype) in zip(params, ptypes):
            if isinstance(param, Expression):
                raise RDDLNotImplementedError(
                    f'Nested expression <{param}> as argument of variable '
                    f'<{name}> in {where} is not supported.')
            if RDDLGroundedModel.is_free_object(param):
                if param not in scope:
                    raise RDDLUndefinedVariableError(
                        f'Variable <{param}> in {where} is not bound.\n' +
                        print_stack_trace(expr))
                if scope[param] != ptype:
                    raise RDDLInvalidObjectError(
                        f'Variable <{param}> of type <{scope[param]}> cannot be '
                        f'an argument of <{name}> of type <{ptype}> in '
                        f'{where}.\n' + print_stack_trace(expr))
            else:
                otype = model.object_to_type.get(param, None)
                if otype is None:
                    raise RDDLInvalidObjectError(
                        f'Object <{param}> in {where} is not defined.\n' +
                        print_stack_trace(expr))
                if otype != ptype:
                    raise RDDLInvalidObjectError(
                        f'Object <{param}> of type <{otype}> cannot be an '
                        f'argument of <{name}> of type <{ptype}> in '
                        f'{where}.\n' + print_stack_trace(expr))

    def _check_required_types(self, model):
        required = set(self._quantified_types)
        for ptypes in model.variable_params.values():
            required.update(ptypes)
        for ptype in sorted(required):
            if not model.type_to_objects[ptype]:
                raise RDDLInstantiationError(
                    f'Type <{ptype}> is required by the domain but the '
                    f'instance defines no objects of this type.')

    # ===========================================================================
    # ground tables
    # ===========================================================================

    def _ground_table(self, model, fluent_type) -> Dict:
        table = {}
        for name in sorted(model.variable_types):
            if model.variable_types[name] == fluent_type:
                default = model.variable_defaults[name]
                for objects in model.ground_types(model.variable_params[name]):
                    table[(name, tuple(objects))] = default
        return dict(sorted(table.items(), key=lambda item: item[0]))

    def _check_ground_args(self, model, name, objects, where):
        ptypes = model.variable_params[name]
        if len(objects) != len(ptypes):
            raise RDDLInvalidNumberOfArgumentsError(
                f'Variable <{name}> in {where} requires {len(ptypes)} '
                f'parameters, got {len(objects)}.')
        for (obj, ptype) in zip(objects, ptypes):
            if obj not in model.type_to_objects[ptype]:
                raise RDDLInvalidObjectError(
                    f'Object <{obj}> is not of type <{ptype}> required by '
                    f'variable <{name}> in {where}, must be one of '
                    f'{model.type_to_objects[ptype]}.')

    def _apply_overrides(self, model, table, assignments, fluent_type, where):
        for ((name, objects), value) in assignments:
            if model.variable_types.get(name, None) != fluent_type:
                raise RDDLInstantiationError(
                    f'Variable <{name}> in {where} is not a declared '
                    f'{fluent_type}.')
            objects = tuple(objects or ())
            self._check_ground_args(model, name, objects, where)
            prange = model.variable_ranges[name]
            cast = cast_value(value, prange)
            if cast is None:
                raise RDDLInvalidValueError(
                    f'Value <{value}> assigned to <{name}{list(objects)}> in '
                    f'{where} is not of type {prange}.')
            table[(name, objects)] = cast

    def _ground_non_fluents(self, model):
        table = self._ground_table(model, 'non-fluent')
        if self.AST.non_fluents is not None:
            self._apply_overrides(model, table, self.AST.non_fluents.init_non_fluent,
                                  'non-fluent', 'non-fluents {...} block')
        model.non_fluents = MappingProxyType(table)

    def _ground_fluents(self, model):
        states = self._ground_table(model, 'state-fluent')
        self._apply_overrides(model, states, self.AST.instance.init_state,
                              'state-fluent', 'init-state {...} block')
        model.state_fluents = MappingProxyType(states)
        model.interm_fluents = MappingProxyType(self._ground_table(model, 'interm-fluent'))
        model.observ_fluents = MappingProxyType(self._ground_table(model, 'observ-fluent'))
        model.action_fluents = MappingProxyType(self._ground_table(model, 'action-fluent'))

    def _ground_cpfs(self, model):
        ground_cpfs = {}
        interm_order, next_state_order, observ_order = [], [], []
        for cpfs in model.level_to_cpfs.values():
            for name in cpfs:
                params, expr = model.cpfs[name]
                variables = [var for (var, _) in params]
                keys = []
                for objects in model.ground_types([ptype for (_, ptype) in params]):
                    key = (name, tuple(objects))
                    ground_cpfs[key] = (dict(zip(variables, objects)), expr)
                    keys.append(key)
                var_type = model.variable_types[name]
                if var_type == 'interm-fluent':
                    interm_order.extend(sorted(keys))
                elif var_type == 'next-state-fluent':
                    next_state_order.extend(keys)
                else:
                    observ_order.extend(keys)

        model.ground_cpfs = MappingProxyType(ground_cpfs)
        model.interm_order = tuple(interm_order)
        model.next_state_order = tuple(sorted(next_state_order))
        model.observ_order = tuple(sorted(observ_order))

    # ===========================================================================
    # instance constants
    # ===========================================================================

    def _ground_horizon(self) -> int:
        horizon = self.AST.instance.horizon
        if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) \
        or horizon <= 0:
            raise RDDLInstantiationError(
                f'Horizon must be a positive integer, got {horizon}.')
        return int(horizon)

    def _ground_discount(self) -> float:
        discount = self.AST.instance.discount
        if isinstance(discount, bool) \
        or not isinstance(discount, (int, float, np.integer, np.floating)) \
        or not (0.0 <= discount <= 1.0):
            raise RDDLInstantiationError(
                f'Discount factor must be a number in [0, 1], got {discount}.')
        return float(discount)

    def _ground_max_actions(self, model) -> int:
        num_actions = self.AST.instance.max_nondef_actions
        if num_actions == 'pos-inf':
            return len(model.action_fluents)
        if isinstance(num_actions, bool) \
        or not isinstance(num_actions, (int, np.integer)) or num_actions < 1:
            raise RDDLInstantiationError(
                f'max-nondef-actions must be a positive integer or pos-inf, '
                f'got {num_actions}.')
        return int(num_actions)
