# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import Dict, List, Tuple, Union

ObjectsList = List[Tuple[str, List[str]]]
PVarAssignmentList = List[Tuple[Tuple[str, List[str]], Union[bool, int, float]]]


class NonFluents(object):
    '''Non-Fluents class for accessing RDDL non-fluents sections.

    Args:
        name (str): Name of RDDL non-fluents.
        sections (Dict): Mapping from string to non-fluents section.

    Attributes:
        name (str): Name of RDDL non-fluents block.
        domain (str): Name of RDDL domain block.
        objects (:obj:`ObjectsList`): List of RDDL objects for each type.
        init_non_fluent (:obj:`PVarAssignmentList`): List of non-fluent
        initializations as ((name, params), value) pairs.
    '''

    def __init__(self, name: str, sections: Dict[str, Union[str, List]]) -> None:
        self.name = name
        self.domain = sections.get('domain')
        self.objects = sections.get('objects', [])
        self.init_non_fluent = sections.get('init_non_fluent', [])


class Instance(object):
    '''Instance class for accessing RDDL Instance sections.

    Args:
        name (str): Name of RDDL instance.
        sections (Dict): Mapping from string to instance section.

    Attributes:
        name (str): Name of RDDL instance block.
        domain (str): Name of RDDL domain block.
        non_fluents (str): Name of RDDL non-fluents block.
        objects (:obj:`ObjectsList`): Additional objects declared in the
        instance block.
        init_state (:obj:`PVarAssignmentList`): List of state fluent
        initializations as ((name, params), value) pairs.
        max_nondef_actions (Union[int, str]): Maximum number of non-default
        actions per step, or 'pos-inf'.
        horizon (int): Number of steps per episode.
        discount (float): Discount factor.
    '''

    def __init__(self, name: str, sections: Dict[str, Union[str, List]]) -> None:
        self.name = name
        self.domain = sections.get('domain')
        self.non_fluents = sections.get('non_fluents')
        self.objects = sections.get('objects', [])
        self.init_state = sections.get('init_state', [])
        self.max_nondef_actions = sections.get('max_nondef_actions', 'pos-inf')
        self.horizon = sections.get('horizon')
        self.discount = sections.get('discount', 1.0)
