# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import List, Optional, Tuple

from pyRDDLSim.core.parser.expr import Expression

PVarExpr = Tuple[str, Tuple[str, Optional[List[str]]]]


class CPF(object):
    '''Conditional Probability Function.

    Args:
        pvar: the CPF header as a pvar_expr tuple, e.g.
        ('pvar_expr', ("damaged'", ['?t']))
        expr: CPF's expression.
    '''

    def __init__(self, pvar: PVarExpr, expr: Expression) -> None:
        self.pvar = pvar
        self.expr = expr

    @property
    def name(self) -> str:
        '''Returns the CPF's pvariable name in the form name/arity.'''
        return Expression._pvar_to_name(self.pvar[1])

    @property
    def fluent(self) -> str:
        '''Returns the name of the fluent the CPF defines, including prime.'''
        return self.pvar[1][0]

    @property
    def params(self) -> List[str]:
        '''Returns the parameter variables of the CPF header.'''
        return list(self.pvar[1][1] or [])

    def __repr__(self) -> str:
        return '{} =\n{};'.format(str(self.pvar), str(self.expr))
