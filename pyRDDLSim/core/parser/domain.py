# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import Dict, List, Sequence, Tuple

from pyRDDLSim.core.parser.cpf import CPF

Type = Tuple[str, str]


class Domain(object):
    '''Domain class for accessing RDDL domain sections.

    Args:
        name: Name of RDDL domain.
        requirements: List of RDDL requirements.
        sections: Mapping from string to domain section.

    Attributes:
        name (str): Domain identifier.
        requirements (List[str]): List of requirements.
        types (List[:obj:`Type`]): List of (type name, 'object') pairs.
        pvariables (List[:obj:`PVariable`]): List of parameterized variables.
        cpfs (Tuple[str, List[:obj:`CPF`]]): CPF block header and CPFs.
        reward (:obj:`Expression`): Reward function.
        preconds (List[:obj:`Expression`]): List of action preconditions.
        terminals (List[:obj:`Expression`]): List of termination conditions.
        constraints (List[:obj:`Expression`]): List of state-action constraints.
        invariants (List[:obj:`Expression`]): List of state invariants.
    '''

    def __init__(self, name: str,
                 requirements: List[str],
                 sections: Dict[str, Sequence]) -> None:
        self.name = name
        self.requirements = requirements

        self.pvariables = sections['pvariables']
        self.cpfs = sections['cpfs']
        self.reward = sections['reward']

        self.types = sections.get('types', [])
        self.preconds = sections.get('preconds', [])
        self.terminals = sections.get('terminals', [])
        self.invariants = sections.get('invariants', [])
        self.constraints = sections.get('constraints', [])

    @property
    def cpf_list(self) -> List[CPF]:
        '''Returns the list of CPFs without the block header.'''
        return list(self.cpfs[1])
