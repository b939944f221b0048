import pytest

from pyRDDLSim.core.builder import add, land, lnot, pvar, RDDLBuilder
from pyRDDLSim.core.compiler.model import RDDLGroundedModel
from pyRDDLSim.core.debug.exception import (
    RDDLInstantiationError,
    RDDLInvalidDependencyInCPFError,
    RDDLInvalidNumberOfArgumentsError,
    RDDLInvalidObjectError,
    RDDLInvalidValueError,
    RDDLMissingCPFDefinitionError,
    RDDLModelError,
    RDDLRepeatedVariableError,
    RDDLUndefinedTypeError,
    RDDLUndefinedVariableError
)
from pyRDDLSim.core.grounder import cast_value, RDDLGrounder
from pyRDDLSim.examples import elevators, reconnaissance

##################################################################################
# Helper functions
##################################################################################


def ground(builder):
    return RDDLGrounder(builder.build('lights', 'lights_inst')).ground()


def count(table, name):
    return sum(1 for (key, _) in table if key == name)

##################################################################################
# Grounding of the example domains
##################################################################################


def test_reconnaissance_counts():
    model = RDDLGrounder(reconnaissance.make_rddl()).ground()

    # 1 agent, 3 x 3 grid, 2 objects, 3 tools
    assert count(model.state_fluents, 'agentAt') == 9
    assert count(model.state_fluents, 'damaged') == 3
    for name in ('HAS_WATER', 'HAS_LIFE', 'waterDetected', 'lifeDetected', 'pictureTaken'):
        assert count(model.state_fluents, name) == 2
    assert len(model.state_fluents) == 9 + 3 + 5 * 2
    assert len(model.observ_fluents) == 9 + 3 + 2 + 2
    assert len(model.action_fluents) == 4 + 3 * 2 + 3
    assert len(model.interm_fluents) == 1
    assert count(model.non_fluents, 'ADJACENT-UP') == 81
    assert model.is_pomdp


def test_reconnaissance_defaults_and_overrides():
    model = RDDLGrounder(reconnaissance.make_rddl()).ground()

    # init-state and defaults
    assert model.state_fluents[('agentAt', ('a1', 'x0', 'y0'))] is True
    assert model.state_fluents[('agentAt', ('a1', 'x1', 'y0'))] is False
    assert all(value is False for ((name, _), value) in model.state_fluents.items()
               if name == 'damaged')
    assert all(value is None for value in model.observ_fluents.values())

    # non-fluent overrides
    assert model.non_fluents[('ADJACENT-UP', ('x0', 'y0', 'x0', 'y1'))] is True
    assert model.non_fluents[('ADJACENT-UP', ('x0', 'y2', 'x0', 'y0'))] is False
    assert model.non_fluents[('ADJACENT-DOWN', ('x0', 'y1', 'x0', 'y0'))] is True
    assert model.non_fluents[('HAZARD', ('x1', 'y1'))] is True
    assert model.non_fluents[('DAMAGE_PROB', ('p1',))] == 0.5
    assert model.non_fluents[('DETECT_PROB', ())] == 0.8
    assert model.non_fluents[('GOOD_PIC_WEIGHT', ())] == 1.0


def test_reconnaissance_evaluation_order():
    model = RDDLGrounder(reconnaissance.make_rddl()).ground()
    assert model.interm_order == (('moved', ('a1',)),)
    assert list(model.next_state_order) == sorted(model.next_state_order)
    assert all(name.endswith('\'') for (name, _) in model.next_state_order)
    assert len(model.next_state_order) == len(model.state_fluents)
    assert len(model.observ_order) == len(model.observ_fluents)

    # the interm fluent is evaluated before the position that reads it
    levels = {name: level for (level, names) in model.level_to_cpfs.items()
              for name in names}
    assert levels['moved'] < levels['agentAt\'']
    assert levels['agentAt\''] < levels['observedAt']


def test_elevators_counts():
    model = RDDLGrounder(elevators.make_rddl()).ground()
    assert len(model.state_fluents) == 3 + 3 + 1 + 1 + 1 + 1 + 3
    assert len(model.action_fluents) == 4
    assert not model.is_pomdp
    assert model.horizon == 40
    assert model.discount == 1.0
    assert model.max_allowed_actions == 1
    assert model.state_fluents[('elevator-at-floor', ('e0', 'f0'))] is True
    assert model.state_fluents[('elevator-closed', ('e0',))] is True


def test_grounded_tables_are_read_only(lights_builder):
    model = ground(lights_builder())
    with pytest.raises(TypeError):
        model.non_fluents[('REWARD-AT', ('c1',))] = 0.0
    with pytest.raises(TypeError):
        model.state_fluents[('count', ())] = 3


def test_pos_inf_actions(lights_builder):
    model = ground(lights_builder())
    assert model.max_allowed_actions == len(model.action_fluents) == 4


def test_ground_keys():
    assert RDDLGroundedModel.parse_grounded('agentAt(a1, x0,y1)') == \
        ('agentAt', ('a1', 'x0', 'y1'))
    assert RDDLGroundedModel.parse_grounded('count') == ('count', ())
    assert RDDLGroundedModel.key_to_str(('agentAt', ('a1', 'x0'))) == 'agentAt(a1,x0)'
    assert RDDLGroundedModel.key_to_str(('count', ())) == 'count'


def test_cast_value():
    assert cast_value(True, 'bool') is True
    assert cast_value(1, 'bool') is None
    assert cast_value(True, 'int') is None
    assert cast_value(3, 'real') == 3.0
    assert cast_value(2.5, 'int') is None

##################################################################################
# Malformed domains
##################################################################################


def test_undefined_param_type(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('bad', ['nope'], 'state-fluent', 'bool', False)
    with pytest.raises(RDDLUndefinedTypeError):
        ground(builder)


def test_wrong_default_type(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('bad', ['cell'], 'state-fluent', 'bool', 1.0)
    with pytest.raises(RDDLModelError):
        ground(builder)


def test_repeated_variable(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('on', ['cell'], 'non-fluent', 'bool', False)
    with pytest.raises(RDDLRepeatedVariableError):
        ground(builder)


@pytest.mark.parametrize('name', ['', '?x', "flag'"])
def test_invalid_variable_name(lights_builder, name):
    builder = lights_builder()
    builder.add_pvariable(name, [], 'non-fluent', 'bool', False)
    with pytest.raises(RDDLModelError):
        ground(builder)


def test_arity_mismatch(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('lit', [], 'interm-fluent', 'bool')
    builder.add_cpf('lit', [], pvar('on'))
    with pytest.raises(RDDLInvalidNumberOfArgumentsError):
        ground(builder)


def test_undefined_variable(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('lit', [], 'interm-fluent', 'bool')
    builder.add_cpf('lit', [], pvar('nope'))
    with pytest.raises(RDDLUndefinedVariableError):
        ground(builder)


def test_unbound_free_variable(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('lit', ['cell'], 'interm-fluent', 'bool')
    builder.add_cpf('lit', ['?c'], pvar('on', '?d'))
    with pytest.raises(RDDLUndefinedVariableError):
        ground(builder)


def test_object_of_wrong_type_in_expression(lights_builder):
    builder = lights_builder()
    builder.add_object_type('room')
    builder.add_object_values('room', ['r1'])
    builder.add_pvariable('lit', [], 'interm-fluent', 'bool')
    builder.add_cpf('lit', [], pvar('on', 'r1'))
    with pytest.raises(RDDLInvalidObjectError):
        ground(builder)


def test_cyclic_dependency(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('a', [], 'interm-fluent', 'bool')
    builder.add_pvariable('b', [], 'interm-fluent', 'bool')
    builder.add_cpf('a', [], lnot(pvar('b')))
    builder.add_cpf('b', [], land(pvar('a'), True))
    with pytest.raises(RDDLInvalidDependencyInCPFError):
        ground(builder)


def test_self_dependency(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('a', [], 'interm-fluent', 'int')
    builder.add_cpf('a', [], add(pvar('a'), 1))
    with pytest.raises(RDDLInvalidDependencyInCPFError):
        ground(builder)


def test_next_state_reads_next_state(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('twice', [], 'state-fluent', 'int', 0)
    builder.add_cpf('twice\'', [], add(pvar('count\''), 1))
    with pytest.raises(RDDLInvalidDependencyInCPFError):
        ground(builder)


def test_observation_reads_current_state(lights_builder):
    builder = lights_builder()
    builder.add_pvariable('seen', [], 'observ-fluent', 'int')
    builder.add_cpf('seen', [], pvar('count'))
    with pytest.raises(RDDLInvalidDependencyInCPFError):
        ground(builder)


def test_cpf_for_unprimed_state(lights_builder):
    builder = lights_builder()
    builder.add_cpf('count', [], 1)
    with pytest.raises(RDDLInvalidDependencyInCPFError, match='did you mean'):
        ground(builder)


def test_repeated_cpf(lights_builder):
    builder = lights_builder()
    builder.add_cpf('count\'', [], 1)
    with pytest.raises(RDDLRepeatedVariableError):
        ground(builder)


def test_missing_cpf():
    builder = RDDLBuilder()
    builder.add_pvariable('count', [], 'state-fluent', 'int', 0)
    builder.add_reward(pvar('count'))
    builder.add_horizon(3)
    with pytest.raises(RDDLMissingCPFDefinitionError):
        ground(builder)


def test_missing_reward():
    builder = RDDLBuilder()
    builder.add_pvariable('count', [], 'state-fluent', 'int', 0)
    builder.add_cpf('count\'', [], add(pvar('count'), 1))
    builder.add_horizon(3)
    with pytest.raises(RDDLMissingCPFDefinitionError):
        ground(builder)

##################################################################################
# Instances that cannot be bound to the domain
##################################################################################


def test_empty_object_domain(lights_builder):
    builder = lights_builder()
    builder.add_object_values('cell', [])
    with pytest.raises(RDDLInstantiationError):
        ground(builder)


def test_undefined_object_type(lights_builder):
    builder = lights_builder()
    builder.add_object_values('room', ['r1'])
    with pytest.raises(RDDLUndefinedTypeError):
        ground(builder)


def test_non_fluent_override_of_wrong_type(lights_builder):
    builder = lights_builder()
    builder.add_nonfluent_init('REWARD-AT', ['c1'], True)
    with pytest.raises(RDDLInvalidValueError):
        ground(builder)
    assert issubclass(RDDLInvalidValueError, RDDLInstantiationError)


def test_non_fluent_override_with_unknown_object(lights_builder):
    builder = lights_builder()
    builder.add_nonfluent_init('REWARD-AT', ['c9'], 2.0)
    with pytest.raises(RDDLInvalidObjectError):
        ground(builder)


def test_init_state_of_undeclared_fluent(lights_builder):
    builder = lights_builder()
    builder.add_init_state('nope', [], True)
    with pytest.raises(RDDLInstantiationError):
        ground(builder)


def test_init_state_of_non_fluent(lights_builder):
    builder = lights_builder()
    builder.add_init_state('REWARD-AT', ['c1'], 2.0)
    with pytest.raises(RDDLInstantiationError):
        ground(builder)


def test_init_state_with_unknown_object(lights_builder):
    builder = lights_builder()
    builder.add_init_state('on', ['c9'], True)
    with pytest.raises(RDDLInvalidObjectError):
        ground(builder)


def test_init_state_with_wrong_arity(lights_builder):
    builder = lights_builder()
    builder.add_init_state('on', [], True)
    with pytest.raises(RDDLInvalidNumberOfArgumentsError):
        ground(builder)


@pytest.mark.parametrize('horizon', [0, -3, 2.5, None])
def test_invalid_horizon(lights_builder, horizon):
    with pytest.raises(RDDLInstantiationError):
        ground(lights_builder(horizon=horizon))


@pytest.mark.parametrize('discount', [-0.1, 1.5, 'one'])
def test_invalid_discount(lights_builder, discount):
    with pytest.raises(RDDLInstantiationError):
        ground(lights_builder(discount=discount))


@pytest.mark.parametrize('num_actions', [-1, 0, 1.5])
def test_invalid_max_nondef_actions(lights_builder, num_actions):
    with pytest.raises(RDDLInstantiationError):
        ground(lights_builder(max_nondef_actions=num_actions))
