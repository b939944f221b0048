from typing import Any, Dict

from pyRDDLSim.core.debug.exception import (
    RDDLEnvironmentNotExistError,
    RDDLInstanceNotExistError
)
from pyRDDLSim.core.parser.rddl import RDDL
from pyRDDLSim.examples import elevators, reconnaissance

EXP_DICT = {
    'Reconnaissance': {
        'description': 'Planetary reconnaissance POMDP with tool damage and repair',
        'module': reconnaissance,
        'instances': {
            '1': {'instance_name': 'recon_inst_pomdp__1'},
            '2': {'instance_name': 'recon_inst_pomdp__2', 'size': 4,
                  'objects': {'o1': (3, 3), 'o2': (0, 3), 'o3': (3, 0)},
                  'hazards': ((1, 1), (2, 2)),
                  'damage_prob': {'w1': 0.4, 'l1': 0.6, 'p1': 0.5},
                  'horizon': 60}
        }
    },
    'Elevators': {
        'description': 'Elevator control MDP with random passenger arrivals',
        'module': elevators,
        'instances': {
            '1': {'instance_name': 'elevators_inst_mdp__1'},
            '2': {'instance_name': 'elevators_inst_mdp__2', 'num_floors': 5,
                  'num_elevators': 2, 'max_nondef_actions': 2, 'horizon': 60}
        }
    }
}


class ExampleManager:
    '''Looks up the example domains and their instances by name.'''

    def __init__(self, env: str):
        self.env = env
        if env not in EXP_DICT:
            raise RDDLEnvironmentNotExistError(
                f'Environment <{env}> does not exist, '
                f'must be one of {set(EXP_DICT.keys())}.')
        self.info = EXP_DICT[env]

    def list_instances(self):
        return list(self.info['instances'].keys())

    def get_instance_kwargs(self, num: str) -> Dict[str, Any]:
        instances = self.info['instances']
        if str(num) not in instances:
            raise RDDLInstanceNotExistError(
                f'Instance <{num}> does not exist for example environment '
                f'<{self.env}>, must be one of {set(instances.keys())}.')
        return dict(instances[str(num)])

    def get_rddl(self, num: str) -> RDDL:
        '''Builds the domain and the instance with the given identifier.'''
        return self.info['module'].make_rddl(**self.get_instance_kwargs(num))

    @staticmethod
    def ListExamples():
        print('Available example environment(s):')
        for (key, values) in EXP_DICT.items():
            print(key + ' -> ' + values['description'])
