# This file is based on thiago pbueno's pyrddl.
# https://github.com/thiagopbueno/pyrddl
# it was adapted and extended for pyRDDLSim

from typing import Dict, Optional

from pyRDDLSim.core.parser.domain import Domain
from pyRDDLSim.core.parser.instance import Instance, NonFluents


class RDDL(object):
    '''RDDL class for accessing RDDL blocks.

    Args:
        blocks (Dict): Mapping from string to RDDL block.

    Attributes:
        domain (:obj:`Domain`): RDDL domain block.
        non_fluents (:obj:`NonFluents`): RDDL non-fluents block.
        instance (:obj:`Instance`): RDDL instance block.
    '''

    def __init__(self, blocks: Dict[str, object]) -> None:
        self.domain: Domain = blocks['domain']
        self.non_fluents: Optional[NonFluents] = blocks.get('non_fluents')
        self.instance: Instance = blocks['instance']

    @property
    def name(self) -> str:
        return f'{self.domain.name}_{self.instance.name}'
