from typing import Any, Iterable, Tuple, Union

from pyRDDLSim.core.parser.cpf import CPF
from pyRDDLSim.core.parser.domain import Domain
from pyRDDLSim.core.parser.expr import Expression
from pyRDDLSim.core.parser.instance import Instance, NonFluents
from pyRDDLSim.core.parser.pvariable import PVariable
from pyRDDLSim.core.parser.rddl import RDDL

ExprLike = Union[Expression, bool, int, float]


# ===========================================================================
# expression construction
# ===========================================================================

def const(value: Union[bool, int, float]) -> Expression:
    if isinstance(value, bool):
        return Expression(('boolean', value))
    return Expression(('number', value))


def _wrap(arg: ExprLike) -> Expression:
    if isinstance(arg, Expression):
        return arg
    if isinstance(arg, (bool, int, float)):
        return const(arg)
    raise ValueError(f'Cannot convert <{arg}> of type {type(arg)} to an expression.')


def pvar(name: str, *params: str) -> Expression:
    '''Reference to a pvariable: params are variables (?x) or object names.
    Append a prime to the name to read a next-state value.'''
    return Expression(('pvar_expr', (name, list(params) if params else None)))


def _op(op: str, *args: ExprLike) -> Expression:
    return Expression((op, tuple(_wrap(arg) for arg in args)))


def land(*args: ExprLike) -> Expression:
    return _op('^', *args)


def lor(*args: ExprLike) -> Expression:
    return _op('|', *args)


def lnot(arg: ExprLike) -> Expression:
    return _op('~', arg)


def implies(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('=>', lhs, rhs)


def equiv(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('<=>', lhs, rhs)


def add(*args: ExprLike) -> Expression:
    return _op('+', *args)


def sub(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('-', lhs, rhs)


def neg(arg: ExprLike) -> Expression:
    return _op('-', arg)


def mul(*args: ExprLike) -> Expression:
    return _op('*', *args)


def div(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('/', lhs, rhs)


def eq(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('==', lhs, rhs)


def ne(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('~=', lhs, rhs)


def lt(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('<', lhs, rhs)


def le(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('<=', lhs, rhs)


def gt(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('>', lhs, rhs)


def ge(lhs: ExprLike, rhs: ExprLike) -> Expression:
    return _op('>=', lhs, rhs)


def aggregation(op: str, typed_vars: Iterable[Tuple[str, str]],
                body: ExprLike) -> Expression:
    '''Aggregation (sum, prod, avg, min, max, forall, exists) of body over
    the given (variable, type) pairs, e.g. [('?x', 'x_pos')].'''
    typed_vars = tuple(('typed_var', (var, ptype)) for (var, ptype) in typed_vars)
    return Expression((op, typed_vars + (_wrap(body),)))


def exists(typed_vars: Iterable[Tuple[str, str]], body: ExprLike) -> Expression:
    return aggregation('exists', typed_vars, body)


def forall(typed_vars: Iterable[Tuple[str, str]], body: ExprLike) -> Expression:
    return aggregation('forall', typed_vars, body)


def if_then_else(pred: ExprLike, if_true: ExprLike, if_false: ExprLike) -> Expression:
    return Expression(('if', (_wrap(pred), _wrap(if_true), _wrap(if_false))))


def func(name: str, *args: ExprLike) -> Expression:
    return Expression(('func', (name, [_wrap(arg) for arg in args])))


def _random(dist: str, *args: ExprLike) -> Expression:
    return Expression(('randomvar', (dist, tuple(_wrap(arg) for arg in args))))


def kron_delta(arg: ExprLike) -> Expression:
    return _random('KronDelta', arg)


def dirac_delta(arg: ExprLike) -> Expression:
    return _random('DiracDelta', arg)


def bernoulli(prob: ExprLike) -> Expression:
    return _random('Bernoulli', prob)


# ===========================================================================
# domain and instance construction
# ===========================================================================

class RDDLBuilder:
    '''A general class for building RDDL domain and instance ASTs
    programmatically. The builder records definitions as given: all
    validation takes place when the result is grounded.'''

    def __init__(self) -> None:

        # domain definitions
        self.object_types = []
        self.pvariable_defs = []
        self.cpf_defs = []
        self.reward_def = None
        self.termination_defs = []
        self.invariant_defs = []
        self.precondition_defs = []

        # instance definitions
        self.object_values = {}
        self.nonfluent_inits = []
        self.init_states = []
        self.maxnondef = 'pos-inf'
        self.horizon = None
        self.discount = 1.0

    # ===========================================================================
    # domain construction
    # ===========================================================================

    def add_object_type(self, name: str) -> None:
        self.object_types.append(name)

    def add_pvariable(self, name: str, params: Iterable[str], ptype: str,
                      prange: str, default: Any=None) -> None:
        params = list(params)
        if ptype in {'interm-fluent', 'observ-fluent'}:
            default = None
        self.pvariable_defs.append(
            PVariable(name, ptype, prange, params or None, default))

    def add_cpf(self, name: str, params: Iterable[str], expr: ExprLike) -> None:
        params = list(params)
        header = ('pvar_expr', (name, params or None))
        self.cpf_defs.append(CPF(header, _wrap(expr)))

    def add_reward(self, expr: ExprLike) -> None:
        self.reward_def = _wrap(expr)

    def add_termination(self, expr: ExprLike) -> None:
        self.termination_defs.append(_wrap(expr))

    def add_invariant(self, expr: ExprLike) -> None:
        self.invariant_defs.append(_wrap(expr))

    def add_precondition(self, expr: ExprLike) -> None:
        self.precondition_defs.append(_wrap(expr))

    def build_domain(self, name: str) -> Domain:
        sections = {
            'types': [(otype, 'object') for otype in self.object_types],
            'pvariables': list(self.pvariable_defs),
            'cpfs': ('cpfs', list(self.cpf_defs)),
            'reward': self.reward_def,
            'preconds': list(self.precondition_defs),
            'invariants': list(self.invariant_defs),
            'terminals': list(self.termination_defs)
        }
        return Domain(name, [], sections)

    # ===========================================================================
    # instance construction
    # ===========================================================================

    def add_object_values(self, name: str, values: Iterable[str]) -> None:
        self.object_values[name] = list(values)

    def add_nonfluent_init(self, pvar: str, params: Iterable[str], value: Any) -> None:
        params = list(params)
        self.nonfluent_inits.append(((pvar, params or None), value))

    def add_init_state(self, pvar: str, params: Iterable[str], value: Any) -> None:
        params = list(params)
        self.init_states.append(((pvar, params or None), value))

    def add_max_nondef_actions(self, value: Union[int, str]) -> None:
        self.maxnondef = value

    def add_discount(self, value: float) -> None:
        self.discount = value

    def add_horizon(self, value: int) -> None:
        self.horizon = value

    def build_nonfluents(self, domain_name: str, nonfluents_name: str) -> NonFluents:
        sections = {
            'domain': domain_name,
            'objects': [(name, list(values))
                        for (name, values) in self.object_values.items()],
            'init_non_fluent': list(self.nonfluent_inits)
        }
        return NonFluents(nonfluents_name, sections)

    def build_instance(self, domain_name: str, instance_name: str,
                       nonfluents_name: str) -> Instance:
        sections = {
            'domain': domain_name,
            'non_fluents': nonfluents_name,
            'init_state': list(self.init_states),
            'max_nondef_actions': self.maxnondef,
            'horizon': self.horizon,
            'discount': self.discount
        }
        return Instance(instance_name, sections)

    def build(self, domain_name: str, instance_name: str) -> RDDL:
        '''Builds the domain, non-fluents and instance blocks together.'''
        nonfluents_name = f'{instance_name}_nf'
        return RDDL({
            'domain': self.build_domain(domain_name),
            'non_fluents': self.build_nonfluents(domain_name, nonfluents_name),
            'instance': self.build_instance(domain_name, instance_name, nonfluents_name)
        })
