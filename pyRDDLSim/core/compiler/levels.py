from typing import Dict, List, Optional

from pyRDDLSim.core.compiler.model import RDDLGroundedModel
from pyRDDLSim.core.debug.exception import (
    RDDLInvalidDependencyInCPFError,
    RDDLMissingCPFDefinitionError,
    RDDLNotImplementedError,
    RDDLUndefinedVariableError
)
from pyRDDLSim.core.debug.logger import Logger
from pyRDDLSim.core.parser.expr import Expression


class RDDLLevelAnalysis:
    '''Performs graphical analysis of a RDDL domain, including dependency
    structure of CPFs, performs topological sort to figure out order of evaluation,
    and checks for cyclic dependencies and ensures dependencies are valid.

    Only reads that happen within a step are edges of the graph: interm-fluents
    and next-state values. Current state, action and non-fluent values come
    from the pre-step snapshot and never create an ordering constraint.
    '''

    # this specifies the valid dependencies that can occur between variable types
    VALID_DEPENDENCIES = {
        'interm-fluent': {'action-fluent', 'state-fluent', 'interm-fluent'},
        'next-state-fluent': {'action-fluent', 'state-fluent', 'interm-fluent'},
        'observ-fluent': {'action-fluent', 'interm-fluent', 'next-state-fluent'},
        'reward': {'action-fluent', 'state-fluent', 'interm-fluent'},
        'invariant': {'state-fluent'},
        'precondition': {'state-fluent', 'action-fluent'},
        'termination': {'state-fluent'}
    }

    # variable types that are computed during a step
    INTRA_STEP_TYPES = {'interm-fluent', 'next-state-fluent'}

    def __init__(self, rddl: RDDLGroundedModel,
                 logger: Optional[Logger]=None) -> None:
        '''Creates a new level analysis for the given RDDL domain.

        :param rddl: the RDDL domain to analyze
        :param logger: to log information about dependency analysis to file
        '''
        self.rddl = rddl
        self.logger = logger

    # ===========================================================================
    # call graph construction
    # ===========================================================================

    def build_call_graph(self) -> Dict[str, List[str]]:
        '''Builds a call graph for the current RDDL, where keys represent CPFs
        and values are the fluents each one reads. Also validates the call
        graph against the permitted dependencies between fluent types.
        '''
        rddl = self.rddl

        # compute call graph of CPs and check validity
        cpf_graph = {}
        for (name, (_, expr)) in rddl.cpfs.items():
            cpf_graph.setdefault(name, set())
            self._update_call_graph(cpf_graph, name, expr)
        self._validate_dependencies(cpf_graph)
        self._validate_cpf_definitions(cpf_graph)

        # check validity of reward, constraints, termination
        for (name, exprs) in (
            ('reward', [rddl.reward]),
            ('precondition', rddl.preconditions),
            ('invariant', rddl.invariants),
            ('termination', rddl.terminations)
        ):
            call_graph_expr = {}
            for expr in exprs:
                self._update_call_graph(call_graph_expr, name, expr)
            self._validate_dependencies(call_graph_expr)

        # keep only the edges that order evaluation within a step
        cpf_graph = {name: sorted(dep for dep in deps
                                  if rddl.variable_types[dep] in self.INTRA_STEP_TYPES)
                     for (name, deps) in cpf_graph.items()}
        return cpf_graph

    def _update_call_graph(self, graph, cpf, expr):
        if isinstance(expr, (tuple, list, set)):
            for arg in expr:
                self._update_call_graph(graph, cpf, arg)

        elif not isinstance(expr, Expression):
            pass

        elif expr.is_pvariable_expression():
            name, pvars = expr.args
            rddl = self.rddl

            # free objects (e.g., ?x) and object literals are ignored
            if RDDLGroundedModel.is_free_object(name):
                pass
            elif not pvars and name in rddl.object_to_type \
            and name not in rddl.variable_types:
                pass

            # variable defined in pvariables {..} scope
            else:
                var_type = rddl.variable_types.get(name, None)
                if var_type is None:
                    raise RDDLUndefinedVariableError(
                        f'Variable <{name}> is not defined in '
                        f'expression for <{cpf}>.')
                elif var_type != 'non-fluent':
                    graph.setdefault(cpf, set()).add(name)

        # scan compound expression
        elif not expr.is_constant_expression():
            self._update_call_graph(graph, cpf, expr.args)

    # ===========================================================================
    # call graph validation
    # ===========================================================================

    def _validate_dependencies(self, graph):
        for (cpf, deps) in graph.items():
            cpf_type = self.rddl.variable_types.get(cpf, cpf)

            # not a recognized type
            if cpf_type not in RDDLLevelAnalysis.VALID_DEPENDENCIES:
                if cpf_type == 'state-fluent':
                    PRIME = RDDLGroundedModel.NEXT_STATE_SYM
                    raise RDDLInvalidDependencyInCPFError(
                        f'CPF definition for state-fluent <{cpf}> is not valid, '
                        f'did you mean <{cpf}{PRIME}>?')
                else:
                    raise RDDLNotImplementedError(
                        f'Type <{cpf_type}> of CPF <{cpf}> is not valid.')

            # check that all dependencies are valid
            for dep in deps:
                dep_type = self.rddl.variable_types.get(dep, dep)
                if dep_type not in RDDLLevelAnalysis.VALID_DEPENDENCIES[cpf_type]:
                    raise RDDLInvalidDependencyInCPFError(
                        f'{cpf_type} <{cpf}> cannot depend on {dep_type} <{dep}>.')

    def _validate_cpf_definitions(self, graph):
        rddl = self.rddl
        for (name, var_type) in rddl.variable_types.items():
            if var_type == 'state-fluent':
                name = rddl.next_state[name]
                var_type = 'next-' + var_type
            elif var_type not in ('interm-fluent', 'observ-fluent'):
                continue
            if name not in graph:
                raise RDDLMissingCPFDefinitionError(
                    f'{var_type} CPF <{name}> is not defined '
                    f'in cpfs {{...}} block.')

    # ===========================================================================
    # topological sort
    # ===========================================================================

    def compute_levels(self) -> Dict[int, List[str]]:
        '''Constructs a call graph for the current RDDL, and then runs a
        topological sort to determine the order in which the CPFs in the
        RDDL should be evaluated.
        '''
        rddl = self.rddl
        graph = self.build_call_graph()
        order = _topological_sort(graph)

        # use the graph structure to group CPFs into levels 0, 1, 2, ...
        # two CPFs in the same level cannot depend on each other
        # a CPF can only depend on another CPF of a lower level than it
        levels, result = {}, {}
        for var in order:
            if var in rddl.cpfs:
                level = 0
                for child in graph[var]:
                    if child in rddl.cpfs:
                        level = max(level, levels[child] + 1)
                result.setdefault(level, set()).add(var)
                levels[var] = level

        # produce reproducible order of graph dependencies
        result = {level: sorted(cpfs)
                  for (level, cpfs) in sorted(result.items())}

        # log dependency graph information to file
        if self.logger is not None:
            graph_info = '\n\t'.join(f"{rddl.variable_types[k]} {k}: "
                                     f"{{{', '.join(v)}}}"
                                     for (k, v) in graph.items())
            self.logger.log(f'[info] computed fluent dependencies in CPFs:\n'
                            f'\t{graph_info}\n')

            levels_info = '\n\t'.join(f"{k}: {{{', '.join(v)}}}"
                                      for (k, v) in result.items())
            self.logger.log(f'[info] computed order of CPF evaluation:\n'
                            f'\t{levels_info}\n')

        return result

# ===========================================================================
# helper functions for performing topological sort
# ===========================================================================


def _topological_sort(graph):
    order = []
    unmarked = sorted(set(graph.keys()).union(*graph.values()))
    unmarked = dict.fromkeys(unmarked)
    temp = set()
    while unmarked:
        var = next(iter(unmarked))
        _sort_variables(order, graph, var, unmarked, temp)
    return order


def _sort_variables(order, graph, var, unmarked, temp):

    # var has already been visited
    if var not in unmarked:
        return

    # a cycle is detected
    elif var in temp:
        cycle = ', '.join(sorted(temp))
        raise RDDLInvalidDependencyInCPFError(
            f'Cyclic dependency detected among CPFs {{{cycle}}}.')

    # recursively sort all variables on which var depends
    else:
        temp.add(var)
        for dep in graph.get(var, ()):
            _sort_variables(order, graph, dep, unmarked, temp)
        temp.remove(var)
        del unmarked[var]
        order.append(var)
