import itertools
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pyRDDLSim.core.debug.exception import (
    RDDLInvalidObjectError,
    RDDLUndefinedTypeError
)
from pyRDDLSim.core.parser.expr import Expression
from pyRDDLSim.core.parser.rddl import RDDL

Value = Union[bool, int, float]
GroundKey = Tuple[str, Tuple[str, ...]]


class RDDLGroundedModel:
    '''The grounded representation of a RDDL domain + instance.

    Every fluent is keyed by (name, args), where args is a tuple of object
    names. The model is produced once by RDDLGrounder and is not modified
    afterwards: all ground tables are exposed as read-only mappings, so a
    single model can be shared by any number of simulators.
    '''

    NEXT_STATE_SYM = '\''

    PRIMITIVE_TYPES = {
        'int': int,
        'real': float,
        'bool': bool
    }

    def __init__(self, ast: RDDL) -> None:
        self.ast = ast

        # objects
        self.type_to_objects: Dict[str, Tuple[str, ...]] = {}
        self.object_to_type: Dict[str, str] = {}

        # variable info, keyed by lifted name
        self.variable_types: Dict[str, str] = {}
        self.variable_ranges: Dict[str, str] = {}
        self.variable_params: Dict[str, Tuple[str, ...]] = {}
        self.variable_defaults: Dict[str, Optional[Value]] = {}
        self.next_state: Dict[str, str] = {}
        self.prev_state: Dict[str, str] = {}

        # ground tables, keyed by (name, args)
        self.non_fluents: Mapping[GroundKey, Value] = MappingProxyType({})
        self.state_fluents: Mapping[GroundKey, Value] = MappingProxyType({})
        self.interm_fluents: Mapping[GroundKey, Optional[Value]] = MappingProxyType({})
        self.observ_fluents: Mapping[GroundKey, Optional[Value]] = MappingProxyType({})
        self.action_fluents: Mapping[GroundKey, Value] = MappingProxyType({})

        # cpf info
        self.cpfs: Dict[str, Tuple[List[Tuple[str, str]], Expression]] = {}
        self.level_to_cpfs: Dict[int, List[str]] = {}
        self.ground_cpfs: Mapping[GroundKey, Tuple[Dict[str, str], Expression]] = \
            MappingProxyType({})
        self.interm_order: Tuple[GroundKey, ...] = ()
        self.next_state_order: Tuple[GroundKey, ...] = ()
        self.observ_order: Tuple[GroundKey, ...] = ()
        self.reward: Optional[Expression] = None

        # constraint info
        self.preconditions: List[Expression] = []
        self.invariants: List[Expression] = []
        self.terminations: List[Expression] = []

        # instance info
        self.horizon: Optional[int] = None
        self.discount: Optional[float] = None
        self.max_allowed_actions: Optional[int] = None

    # ===========================================================================
    # base properties
    # ===========================================================================

    @property
    def domain_name(self) -> str:
        return self.ast.domain.name

    @property
    def instance_name(self) -> str:
        return self.ast.instance.name

    @property
    def is_pomdp(self) -> bool:
        return len(self.observ_fluents) > 0

    # ===========================================================================
    # class methods for general RDDL syntax rules
    # ===========================================================================

    @staticmethod
    def is_free_object(name: str) -> bool:
        '''Determines whether the name is a free object (e.g., ?x).'''
        return name.startswith('?')

    @staticmethod
    def ground_var(name: str, objects: Iterable[str]) -> str:
        '''Given a variable name and list of objects as arguments, produces the
        grounded string representation <variable>(<obj1>,<obj2>,...).'''
        objects = tuple(objects or ())
        if not objects:
            return name
        return '{}({})'.format(name, ','.join(objects))

    @staticmethod
    def parse_grounded(expr: str) -> GroundKey:
        '''Parses a variable of the form <name>(<obj1>,<obj2>,...) into a key
        (<name>, (<obj1>, <obj2>, ...)).'''
        expr = expr.strip()
        if '(' not in expr:
            return (expr, ())
        if not expr.endswith(')'):
            raise RDDLInvalidObjectError(
                f'Grounded variable <{expr}> is not of the form name(obj, ...).')
        name, objects = expr[:-1].split('(', 1)
        objects = tuple(obj.strip() for obj in objects.split(',') if obj.strip())
        return (name.strip(), objects)

    @staticmethod
    def key_to_str(key: GroundKey) -> str:
        name, objects = key
        return RDDLGroundedModel.ground_var(name, objects)

    def ground_key(self, var: Union[str, Tuple]) -> GroundKey:
        '''Converts a string name(obj, ...) or a tuple (name, objects) to a
        canonical ground key.'''
        if isinstance(var, str):
            return self.parse_grounded(var)
        name, objects = var
        return (name, tuple(objects or ()))

    # ===========================================================================
    # utility methods
    # ===========================================================================

    def ground_types(self, ptypes: Iterable[str]) -> Iterable[Tuple[str, ...]]:
        '''Given a list of valid types in the domain, produces an iterator
        of all possible assignments of objects to the types (groundings) in the
        declared order of the objects.

        Raises an exception if a type is invalid.
        '''
        if ptypes is None or not ptypes:
            return [()]
        objects_by_type = []
        for ptype in ptypes:
            objects = self.type_to_objects.get(ptype, None)
            if objects is None:
                raise RDDLUndefinedTypeError(
                    f'Type <{ptype}> is not valid, '
                    f'must be one of {set(self.type_to_objects.keys())}.')
            objects_by_type.append(objects)
        return itertools.product(*objects_by_type)

    def range_of(self, key: GroundKey) -> str:
        '''Returns the range (bool, int, real) of the given ground fluent.'''
        name, _ = key
        name = self.prev_state.get(name, name)
        return self.variable_ranges[name]

    def ground_vars_with_value(self, values: Mapping[GroundKey, Value]) -> Dict[str, Value]:
        '''Converts a dictionary keyed by ground keys to one keyed by the
        grounded string representation.'''
        return {self.key_to_str(key): value for (key, value) in values.items()}
