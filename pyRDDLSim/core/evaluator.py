import itertools
import math
from typing import Dict, Mapping, Optional

from pyRDDLSim.core.debug.exception import (
    print_stack_trace,
    RDDLNotImplementedError,
    RDDLTypeError,
    RDDLUndefinedVariableError,
    RDDLValueOutOfRangeError
)
from pyRDDLSim.core.parser.expr import Expression
from pyRDDLSim.core.sampler import (
    Bernoulli,
    check_bernoulli,
    DiracDelta,
    KronDelta,
    RDDLSampler
)

KNOWN_UNARY = {
    'abs': abs,
    'sgn': lambda x: (-1 if x < 0 else (1 if x > 0 else 0)),
    'round': round,
    'floor': math.floor,
    'ceil': math.ceil,
    'cos': math.cos,
    'sin': math.sin,
    'tan': math.tan,
    'exp': math.exp,
    'ln': math.log,
    'sqrt': math.sqrt
}

KNOWN_BINARY = {
    'div': lambda x, y: int(x) // int(y),
    'mod': lambda x, y: int(x) % int(y),
    'min': min,
    'max': max,
    'pow': math.pow
}


class RDDLExpressionEvaluator:
    '''Evaluates RDDL expressions against a substitution table that maps ground
    keys (name, args) to values, and a binding of free variables (?x) to
    objects.

    Quantified variables are enumerated in the declared order of the objects of
    their types, and exists/forall stop at the first binding that decides the
    result, so evaluating identical inputs always makes identical calls to the
    sampler.
    '''

    def __init__(self, type_to_objects: Mapping[str, tuple],
                 sampler: RDDLSampler) -> None:
        '''Creates a new evaluator.

        :param type_to_objects: the ordered objects of each type
        :param sampler: the sampler for distributions that do not appear at
        the root of a CPF
        '''
        self.type_to_objects = type_to_objects
        self.sampler = sampler
        self.objects = {obj for objects in type_to_objects.values()
                        for obj in objects}

    # ===========================================================================
    # main evaluation routines
    # ===========================================================================

    def evaluate(self, expr: Expression, subs: Mapping,
                 bindings: Optional[Dict[str, str]]=None):
        '''Evaluates the expression to a concrete value, sampling any
        distribution it contains.'''
        return self._evaluate(expr, subs, bindings or {}, False)

    def evaluate_cpf(self, expr: Expression, subs: Mapping,
                     bindings: Optional[Dict[str, str]]=None):
        '''Evaluates the expression of a CPF. If the expression, or the branch
        of an if statement taken at its root, is a distribution, returns the
        descriptor of that distribution instead of a sample.'''
        return self._evaluate(expr, subs, bindings or {}, True)

    def _evaluate(self, expr, subs, bindings, root):
        etype, op = expr.etype
        if etype == 'constant':
            return expr.args
        elif etype == 'pvar':
            return self._evaluate_pvar(expr, subs, bindings)
        elif etype == 'relational':
            return self._evaluate_relational(expr, op, subs, bindings)
        elif etype == 'arithmetic':
            return self._evaluate_arithmetic(expr, op, subs, bindings)
        elif etype == 'aggregation':
            return self._evaluate_aggregation(expr, op, subs, bindings)
        elif etype == 'func':
            return self._evaluate_func(expr, op, subs, bindings)
        elif etype == 'boolean':
            return self._evaluate_logical(expr, op, subs, bindings)
        elif etype == 'control':
            return self._evaluate_if(expr, subs, bindings, root)
        elif etype == 'randomvar':
            dist = self._evaluate_random(expr, op, subs, bindings)
            return dist if root else self.sampler.sample(dist)
        else:
            raise RDDLNotImplementedError(
                f'Expression type <{etype}> is not supported.\n' +
                print_stack_trace(expr))

    # ===========================================================================
    # leaves
    # ===========================================================================

    def _evaluate_pvar(self, expr, subs, bindings):
        name, params = expr.args

        # bound variable ?x evaluates to its object
        if name in bindings:
            return bindings[name]

        objects = tuple(bindings.get(param, param) for param in (params or ()))
        key = (name, objects)
        try:
            value = subs[key]
        except KeyError:
            if not params and name in self.objects:
                return name
            raise RDDLUndefinedVariableError(
                f'Variable <{name}{list(objects)}> is not defined.\n' +
                print_stack_trace(expr)) from None

        if value is None:
            raise RDDLUndefinedVariableError(
                f'Variable <{name}{list(objects)}> is referenced before it '
                f'has been assigned a value.\n' + print_stack_trace(expr))
        return value

    # ===========================================================================
    # arithmetic and relational
    # ===========================================================================

    def _evaluate_relational(self, expr, op, subs, bindings):
        arg1, arg2 = expr.args
        arg1 = 1 * self._evaluate(arg1, subs, bindings, False)  # bool -> int
        arg2 = 1 * self._evaluate(arg2, subs, bindings, False)
        if op == '>=':
            return arg1 >= arg2
        elif op == '<=':
            return arg1 <= arg2
        elif op == '<':
            return arg1 < arg2
        elif op == '>':
            return arg1 > arg2
        elif op == '==':
            return arg1 == arg2
        else:  # '~='
            return arg1 != arg2

    def _evaluate_arithmetic(self, expr, op, subs, bindings):
        args = expr.args

        if len(args) == 1 and op == '-':
            return -1 * self._evaluate(args[0], subs, bindings, False)
        elif op == '*':
            return self._evaluate_short_circuit_product(args, subs, bindings)
        elif op == '+':
            return sum(1 * self._evaluate(arg, subs, bindings, False)
                       for arg in args)  # bool -> int

        arg1 = 1 * self._evaluate(args[0], subs, bindings, False)
        arg2 = 1 * self._evaluate(args[1], subs, bindings, False)
        if op == '-':
            return arg1 - arg2
        else:  # '/'
            return self._safe_division(expr, arg1, arg2)

    @staticmethod
    def _safe_division(expr, arg1, arg2):
        if arg1 != arg1 or arg2 != arg2:
            raise RDDLValueOutOfRangeError(
                f'Invalid (NaN) values in quotient, got {arg1} and {arg2}.\n' +
                print_stack_trace(expr))
        elif arg2 == 0:
            raise RDDLValueOutOfRangeError(
                'Division by zero.\n' + print_stack_trace(expr))
        return arg1 / arg2  # int -> float

    def _evaluate_short_circuit_product(self, args, subs, bindings):
        product = 1
        for arg in args:
            product *= self._evaluate(arg, subs, bindings, False)  # bool -> int
            if product == 0:
                return product
        return product

    # ===========================================================================
    # boolean
    # ===========================================================================

    @staticmethod
    def _check_bool(expr, value):
        if not isinstance(value, bool):
            raise RDDLTypeError(
                f'Logical operator {expr.etype[1]} requires boolean operands, '
                f'got {value} of type {type(value).__name__}.\n' +
                print_stack_trace(expr))
        return value

    def _evaluate_logical(self, expr, op, subs, bindings):
        args = expr.args

        if op == '~':
            arg = self._evaluate(args[0], subs, bindings, False)
            return not self._check_bool(expr, arg)

        elif op == '^' or op == '&':
            for arg in args:
                value = self._evaluate(arg, subs, bindings, False)
                if not self._check_bool(expr, value):
                    return False
            return True

        elif op == '|':
            for arg in args:
                value = self._evaluate(arg, subs, bindings, False)
                if self._check_bool(expr, value):
                    return True
            return False

        lhs = self._check_bool(expr, self._evaluate(args[0], subs, bindings, False))
        if op == '=>':
            if not lhs:
                return True
            return self._check_bool(expr, self._evaluate(args[1], subs, bindings, False))
        else:  # '<=>'
            rhs = self._check_bool(expr, self._evaluate(args[1], subs, bindings, False))
            return lhs == rhs

    # ===========================================================================
    # aggregations
    # ===========================================================================

    def _bindings(self, pvars, bindings):
        variables = [var for (_, (var, _)) in pvars]
        objects = [self.type_to_objects[ptype] for (_, (_, ptype)) in pvars]
        for combo in itertools.product(*objects):
            new_bindings = dict(bindings)
            new_bindings.update(zip(variables, combo))
            yield new_bindings

    def _evaluate_aggregation(self, expr, op, subs, bindings):
        *pvars, body = expr.args
        groundings = self._bindings(pvars, bindings)

        if op == 'exists':
            for new_bindings in groundings:
                value = self._evaluate(body, subs, new_bindings, False)
                if self._check_bool(expr, value):
                    return True
            return False

        elif op == 'forall':
            for new_bindings in groundings:
                value = self._evaluate(body, subs, new_bindings, False)
                if not self._check_bool(expr, value):
                    return False
            return True

        terms = [1 * self._evaluate(body, subs, new_bindings, False)  # bool -> int
                 for new_bindings in groundings]
        if op == 'sum':
            return sum(terms)
        elif op == 'prod':
            return math.prod(terms)
        elif op == 'avg':
            return sum(terms) / len(terms)
        elif op == 'minimum':
            return min(terms)
        else:  # 'maximum'
            return max(terms)

    # ===========================================================================
    # functions
    # ===========================================================================

    def _evaluate_func(self, expr, name, subs, bindings):
        args = [1 * self._evaluate(arg, subs, bindings, False)  # bool -> int
                for arg in expr.args]
        func = KNOWN_UNARY.get(name) if len(args) == 1 else KNOWN_BINARY.get(name)
        try:
            return func(*args)
        except (ArithmeticError, ValueError) as error:
            raise RDDLValueOutOfRangeError(
                f'Function {name} could not be evaluated with args {args}: '
                f'{error}.\n' + print_stack_trace(expr)) from error

    # ===========================================================================
    # control flow
    # ===========================================================================

    def _evaluate_if(self, expr, subs, bindings, root):
        pred, if_true, if_false = expr.args
        value = self._evaluate(pred, subs, bindings, False)
        if not isinstance(value, bool):
            raise RDDLTypeError(
                f'If predicate must evaluate to bool, got {value}.\n' +
                print_stack_trace(expr))
        branch = if_true if value else if_false
        return self._evaluate(branch, subs, bindings, root)

    # ===========================================================================
    # random variables
    # ===========================================================================

    def _evaluate_random(self, expr, name, subs, bindings):
        arg = self._evaluate(expr.args[0], subs, bindings, False)

        if name == 'KronDelta':
            if not isinstance(arg, (bool, int)):
                raise RDDLTypeError(
                    f'KronDelta requires a bool or int argument, got {arg}.\n' +
                    print_stack_trace(expr))
            return KronDelta(arg)

        elif name == 'DiracDelta':
            if isinstance(arg, bool) or not isinstance(arg, (int, float)):
                raise RDDLTypeError(
                    f'DiracDelta requires a real argument, got {arg}.\n' +
                    print_stack_trace(expr))
            return DiracDelta(float(arg))

        elif name == 'Bernoulli':
            if isinstance(arg, bool) or not isinstance(arg, (int, float)):
                raise RDDLTypeError(
                    f'Bernoulli requires a real argument, got {arg}.\n' +
                    print_stack_trace(expr))
            try:
                return Bernoulli(check_bernoulli(float(arg)))
            except RDDLValueOutOfRangeError as error:
                raise RDDLValueOutOfRangeError(
                    f'{error}\n' + print_stack_trace(expr)) from None

        raise RDDLNotImplementedError(
            f'Distribution <{name}> is not supported.\n' + print_stack_trace(expr))
