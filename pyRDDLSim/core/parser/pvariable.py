# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import List, Optional, Union

FluentValue = Union[bool, int, float]

FLUENT_TYPES = ('non-fluent', 'state-fluent', 'interm-fluent',
                'observ-fluent', 'action-fluent')


class PVariable(object):
    '''Parameterized Variable.

    Args:
        name (str): Name of fluent.
        fluent_type (str): Type of fluent, one of non-fluent, state-fluent,
        interm-fluent, observ-fluent or action-fluent.
        range_type (str): Range of fluent (bool, int or real).
        param_types (Optional[List[str]]): List of parameter types.
        default (Optional[FluentValue]): Default value of fluent.
    '''

    def __init__(self,
            name: str,
            fluent_type: str,
            range_type: str,
            param_types: Optional[List[str]]=None,
            default: Optional[FluentValue]=None) -> None:
        self.name = name
        self.fluent_type = fluent_type
        self.range = range_type
        self.param_types = param_types
        self.default = default

    @property
    def arity(self) -> int:
        '''Returns arity of fluent.'''
        return len(self.param_types) if self.param_types is not None else 0

    def is_state_fluent(self) -> bool:
        return self.fluent_type == 'state-fluent'

    def __str__(self) -> str:
        return '{}/{}'.format(self.name, self.arity)

    def __repr__(self) -> str:
        if self.arity == 0:
            return self.name
        return '{}({})'.format(self.name, ','.join(self.param_types))
