from pyRDDLSim.registration import make

__version__ = '0.1.0'
