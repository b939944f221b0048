import numpy as np

from pyRDDLSim.core.parser.expr import Expression


class RDDLDecompiler:
    '''Converts AST representation (e.g., Expression) to a string that represents
    the corresponding expression in RDDL.'''

    # ===========================================================================
    # main subroutines
    # ===========================================================================

    def decompile_expr(self, expr: Expression, level: int=0) -> str:
        '''Converts an AST expression to a string representing valid RDDL code.

        :param expr: the expression to convert
        :param level: indentation level
        '''
        return self._decompile(expr, False, level)

    # ===========================================================================
    # helper subroutines
    # ===========================================================================

    def _decompile(self, expr, enclose, level):
        if not isinstance(expr, Expression):
            return str(expr)
        etype, _ = expr.etype
        if etype == 'constant':
            return self._value_to_string(expr.args)
        elif etype == 'pvar':
            return self._decompile_pvar(expr, enclose, level)
        elif etype in {'arithmetic', 'relational', 'boolean'}:
            return self._decompile_math(expr, enclose, level)
        elif etype == 'aggregation':
            return self._decompile_aggregation(expr, enclose, level)
        elif etype == 'func':
            return self._decompile_func(expr, enclose, level)
        elif etype == 'control':
            return self._decompile_control(expr, enclose, level)
        elif etype == 'randomvar':
            return self._decompile_random(expr, enclose, level)
        else:
            return ''

    def _symbolic(self, value, params, aggregation):
        value = str(value)
        if params is not None and params:
            if aggregation:
                args = ', '.join(f'{k}: {v}' for (k, v) in params)
                value += f'_{{{args}}}'
            else:
                args = ', '.join(map(str, params))
                value += f'({args})'
        return value

    @staticmethod
    def _value_to_string(value):
        if value is None:
            return 'None'
        elif isinstance(value, float):
            value = np.format_float_positional(value)
            if value.endswith('.'):
                value += '0'
            return value
        else:
            value = str(value)
            if value == 'True':
                value = 'true'
            elif value == 'False':
                value = 'false'
            return value

    def _decompile_pvar(self, expr, enclose, level):
        _, name = expr.etype
        _, params = expr.args
        if params is not None:
            params = [self._decompile(arg, False, 0) for arg in params]
        return self._symbolic(name, params, aggregation=False)

    def _decompile_math(self, expr, enclose, level):
        _, op = expr.etype
        args = expr.args
        if len(args) == 1:
            arg, = args
            value = str(op) + self._decompile(arg, True, level)
        else:
            sep = ' ' + str(op) + ' '
            value = sep.join(self._decompile(arg, True, level) for arg in args)
        if enclose:
            value = f'( {value} )'
        return value

    def _decompile_aggregation(self, expr, enclose, level):
        op = expr[0]
        *pvars, arg = expr.args
        params = [pvar for (_, pvar) in pvars]
        agg = self._symbolic(op, params, aggregation=True)
        decompiled = self._decompile(arg, False, level)
        return f'( {agg} [ {decompiled} ] )'

    def _decompile_func(self, expr, enclose, level):
        _, op = expr.etype
        decompiled = ', '.join(self._decompile(arg, False, level)
                               for arg in expr.args)
        return f'{op}[{decompiled}]'

    def _decompile_control(self, expr, enclose, level):
        indent = '\t' * (level + 1)
        pred, if_true, if_false = expr.args
        pred = self._decompile(pred, False, level)
        if_true = self._decompile(if_true, True, level + 1)
        if_false = self._decompile(if_false, True, level + 1)
        value = f'if ({pred})\n{indent}then {if_true}\n{indent}else {if_false}'
        if enclose:
            value = f'( {value} )'
        return value

    def _decompile_random(self, expr, enclose, level):
        _, op = expr.etype
        value = ', '.join(self._decompile(arg, False, level)
                          for arg in expr.args)
        return f'{op}({value})'
