import abc
import time
from typing import Optional

MAX_INT_32 = 2 ** 31 - 1


class RDDLEnvSeeder(metaclass=abc.ABCMeta):
    '''Iterable source of seeds, one per call to RDDLEnv.reset().'''

    @abc.abstractmethod
    def __iter__(self):
        pass

    @abc.abstractmethod
    def __next__(self) -> Optional[int]:
        pass


class RDDLEnvSeederFibonacci(RDDLEnvSeeder):
    '''Yields the Fibonacci sequence 1, 2, 3, 5, 8, ... modulo 2^31 - 1.'''

    def __iter__(self):
        self.a = 1
        self.b = 2
        return self

    def __next__(self) -> int:
        v = self.a
        self.a, self.b = self.b, self.a + self.b
        if self.b > MAX_INT_32:
            self.a = self.a % MAX_INT_32
            self.b = self.b % MAX_INT_32
        return v


class RDDLEnvSeederTimestamp(RDDLEnvSeeder):
    '''Yields the current time in nanoseconds modulo 2^31 - 1.'''

    def __iter__(self):
        return self

    def __next__(self) -> int:
        time_millis = int(time.time_ns())
        return time_millis % MAX_INT_32


class RDDLEnvSeederFixed(RDDLEnvSeeder):
    '''Yields the same seed on every reset, so that every episode replays the
    same random numbers.'''

    def __init__(self, seed: int) -> None:
        self.value = seed

    def __iter__(self):
        return self

    def __next__(self) -> int:
        return self.value
