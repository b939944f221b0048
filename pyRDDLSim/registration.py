from typing import Type

from pyRDDLSim.core.env import RDDLEnv
from pyRDDLSim.examples.manager import ExampleManager


def make(domain: str, instance: str='1', base_class: Type[RDDLEnv]=RDDLEnv,
         **env_kwargs) -> RDDLEnv:
    '''Creates a new RDDLEnv gym environment for one of the example domains.

    :param domain: the domain identifier, e.g. Reconnaissance or Elevators
    :param instance: the instance identifier of the domain
    :param base_class: a subclass of RDDLEnv to load
    :param **env_kwargs: other arguments to pass to the RDDLEnv.
    '''
    rddl = ExampleManager(domain).get_rddl(instance)
    return base_class(rddl, **env_kwargs)
