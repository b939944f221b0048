import warnings

import termcolor

from pyRDDLSim.core.debug.decompiler import RDDLDecompiler
from pyRDDLSim.core.parser.expr import Expression

ERROR_MESSAGE_DECOMPILER = RDDLDecompiler()


def print_stack_trace(expr):
    if isinstance(expr, Expression):
        trace = ERROR_MESSAGE_DECOMPILER.decompile_expr(expr)
    else:
        trace = str(expr)
    return f'>> {trace}'


def print_stack_trace_root(expr, root):
    return print_stack_trace(expr) + '\n' + f'Please check expression for {root}.'


def raise_warning(message, color='yellow'):
    warnings.warn(termcolor.colored(message, color))


# ===========================================================================
# malformed domain: raised while grounding, no simulator is created
# ===========================================================================

class RDDLModelError(SyntaxError):
    pass


class RDDLInvalidDependencyInCPFError(RDDLModelError):
    pass


class RDDLInvalidExpressionError(RDDLModelError):
    pass


class RDDLInvalidNumberOfArgumentsError(RDDLModelError):
    pass


class RDDLInvalidObjectError(RDDLModelError):
    pass


class RDDLMissingCPFDefinitionError(RDDLModelError):
    pass


class RDDLRepeatedVariableError(RDDLModelError):
    pass


class RDDLUndefinedTypeError(RDDLModelError):
    pass


class RDDLUndefinedVariableError(RDDLModelError):
    pass


# ===========================================================================
# malformed instance: raised while grounding, no simulator is created
# ===========================================================================

class RDDLInstantiationError(ValueError):
    pass


class RDDLInvalidValueError(RDDLInstantiationError):
    pass


# ===========================================================================
# recoverable step errors: committed state is left unchanged
# ===========================================================================

class RDDLInvalidActionError(ValueError):
    pass


class RDDLActionPreconditionNotSatisfiedError(RDDLInvalidActionError):
    pass


class RDDLValueOutOfRangeError(ValueError):
    pass


class RDDLStateInvariantNotSatisfiedError(ValueError):
    pass


# ===========================================================================
# misuse of the simulation lifecycle
# ===========================================================================

class RDDLEpisodeAlreadyEndedError(RuntimeError):
    pass


class RDDLConcurrentStepError(RuntimeError):
    pass


# ===========================================================================
# others
# ===========================================================================

class RDDLTypeError(TypeError):
    pass


class RDDLNotImplementedError(NotImplementedError):
    pass


class RDDLEnvironmentNotExistError(ValueError):
    pass


class RDDLInstanceNotExistError(ValueError):
    pass


class RDDLLogFolderError(ValueError):
    pass
