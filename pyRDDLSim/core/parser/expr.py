# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import Set, Sequence, Tuple, Union

Value = Union[bool, int, float]
ExprArg = Union['Expression', Tuple, str]

ARITHMETIC_OPS = ('+', '-', '*', '/')
BOOLEAN_OPS = ('^', '&', '|', '~', '=>', '<=>')
RELATIONAL_OPS = ('>=', '<=', '<', '>', '==', '~=')
AGGREGATION_OPS = {
    'sum': 'sum',
    'prod': 'prod',
    'avg': 'avg',
    'max': 'maximum',
    'min': 'minimum',
    'forall': 'forall',
    'exists': 'exists'
}


class Expression(object):
    '''Expression class represents a RDDL expression as a nested tuple, in the
    same layout the RDDL parser produces:

        ('number', 1.0), ('boolean', True)
        ('pvar_expr', (name, None | [term, ...]))
        (op, (arg, ...)) for arithmetic, boolean and relational operators
        (agg, (('typed_var', ('?x', type)), ..., body)) for aggregations
        ('if', (condition, true_branch, false_branch))
        ('func', (name, [arg, ...]))
        ('randomvar', (distribution, (arg, ...)))

    Args:
        expr: nested tuple of Expressions.
    '''

    def __init__(self, expr: Tuple) -> None:
        self._expr = expr
        self.id = None

    def __getitem__(self, i):
        return self._expr[i]

    @property
    def etype(self) -> Tuple[str, str]:
        '''Returns the expression's type.'''
        op = self._expr[0]
        if op in ('number', 'boolean'):
            return ('constant', str(type(self._expr[1])))
        elif op == 'pvar_expr':
            return ('pvar', self._expr[1][0])
        elif op == 'randomvar':
            return ('randomvar', self._expr[1][0])
        elif op in ARITHMETIC_OPS:
            return ('arithmetic', op)
        elif op in BOOLEAN_OPS:
            return ('boolean', op)
        elif op in RELATIONAL_OPS:
            return ('relational', op)
        elif op == 'func':
            return ('func', self._expr[1][0])
        elif op in AGGREGATION_OPS:
            return ('aggregation', AGGREGATION_OPS[op])
        elif op == 'if':
            return ('control', 'if')
        else:
            return ('UNKNOWN', 'UNKNOWN')

    @property
    def args(self) -> Union[Value, Sequence[ExprArg]]:
        '''Returns the expression's arguments.'''
        op = self._expr[0]
        if op in ('randomvar', 'func'):
            return self._expr[1][1]
        elif op in ('number', 'boolean', 'pvar_expr', 'if') \
        or op in ARITHMETIC_OPS or op in BOOLEAN_OPS or op in RELATIONAL_OPS \
        or op in AGGREGATION_OPS:
            return self._expr[1]
        else:
            return []

    def is_constant_expression(self) -> bool:
        '''Returns True if constant expression. False, otherwise.'''
        return self.etype[0] == 'constant'

    def is_pvariable_expression(self) -> bool:
        '''Returns True if pvariable expression. False, otherwise.'''
        return self.etype[0] == 'pvar'

    @property
    def name(self) -> str:
        '''Returns the name of pvariable in the form name/arity.

        Raises:
            ValueError: If not a pvariable expression.
        '''
        if not self.is_pvariable_expression():
            raise ValueError('Expression is not a pvariable.')
        return self._pvar_to_name(self.args)

    @property
    def value(self):
        '''Returns the value of a constant expression.

        Raises:
            ValueError: If not a constant expression.
        '''
        if not self.is_constant_expression():
            raise ValueError('Expression is not a constant.')
        return self.args

    def __str__(self) -> str:
        return self.__expr_str(self, 0)

    @classmethod
    def __expr_str(cls, expr, level):
        ident = ' ' * level * 4
        if not isinstance(expr, Expression):
            return '{}{}'.format(ident, str(expr))

        if expr.etype[0] in ('constant', 'pvar'):
            return '{}Expression(etype={}, args={})'.format(
                ident, expr.etype, expr.args)

        args = '\n'.join(cls.__expr_str(arg, level + 1) for arg in expr.args)
        return '{}Expression(etype={}, args=\n{})'.format(ident, expr.etype, args)

    @property
    def scope(self) -> Set[str]:
        '''Returns the set of pvariable names (without arity) referenced
        anywhere in this expression, including primed names.'''
        return self.__get_scope(self)

    @classmethod
    def __get_scope(cls, expr) -> Set[str]:
        scope = set()
        if not isinstance(expr, Expression):
            return scope
        etype, _ = expr.etype
        if etype == 'constant':
            pass
        elif etype == 'pvar':
            name, params = expr.args
            if not name.startswith('?'):
                scope.add(name)
            for param in (params or []):
                scope.update(cls.__get_scope(param))
        elif etype == 'aggregation':
            for arg in expr.args:
                if isinstance(arg, Expression):
                    scope.update(cls.__get_scope(arg))
        else:
            for arg in expr.args:
                scope.update(cls.__get_scope(arg))
        return scope

    @classmethod
    def _pvar_to_name(cls, pvar_expr):
        functor = pvar_expr[0]
        arity = len(pvar_expr[1]) if pvar_expr[1] is not None else 0
        return '{}/{}'.format(functor, arity)
