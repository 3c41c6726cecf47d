from __future__ import annotations

import numpy as np
import pytest

from factorops import (
    AllZero,
    Bernoulli,
    Buffer,
    BufferState,
    BufferStateError,
    Constant,
    DegenerateRatio,
    DegenerateRatioError,
    Discrete,
    FactorOpsError,
    Gaussian,
    ImproperMessageError,
    Message,
    Ok,
    ReplicateOpDivide,
    ShapeMismatchError,
    classify,
    classify_all,
    factor_operator,
    lookup,
    operator_info,
    operators_for,
    override_settings,
    settings,
    should_skip,
    try_ratio,
    unwrap,
)
from factorops.capabilities import (
    SettableToProduct,
    SettableToRatio,
    SettableToWeightedSum,
    all_uniform,
    is_message,
    is_proper_message,
)
from factorops.gibbs import GibbsMarginal


# -- capabilities -------------------------------------------------------------

@pytest.mark.parametrize("message", [
    Discrete([0.5, 0.5]),
    Gaussian.from_mean_and_variance(0.0, 1.0),
    Bernoulli.from_prob(0.3),
])
def test_messages_satisfy_capabilities(message) -> None:
    assert is_message(message)
    assert isinstance(message, SettableToProduct)
    assert isinstance(message, SettableToRatio)
    assert isinstance(message, SettableToWeightedSum)


@pytest.mark.parametrize("value", [True, 3, "abc", 1.5, np.zeros(2)])
def test_constants_are_not_messages(value) -> None:
    assert not is_message(value)


def test_uniform_and_proper_predicates() -> None:
    assert all_uniform([Discrete.uniform(3), Discrete.uniform(3)])
    assert all_uniform([])
    assert not all_uniform([Discrete.uniform(3), Discrete([1.0, 0.0, 0.0])])
    assert not is_proper_message(Gaussian.uniform())
    assert is_proper_message(Gaussian.from_mean_and_variance(0.0, 1.0))


# -- arguments ----------------------------------------------------------------

def test_classify_tags_constants_and_messages() -> None:
    assert classify(True) == Constant(True)
    message = Bernoulli(0.5)
    assert classify(message) == Message(message)
    # Already tagged arguments pass through
    assert classify(Constant(2)) == Constant(2)


def test_classify_all_rejects_mixed_lists() -> None:
    assert isinstance(classify_all([True, False]), Constant)
    assert isinstance(classify_all([Bernoulli(0.0)]), Message)
    with pytest.raises(ShapeMismatchError):
        classify_all([True, Bernoulli(0.0)])


# -- buffers ------------------------------------------------------------------

def test_buffer_lifecycle() -> None:
    buffer = Buffer("marginal")
    assert buffer.state is BufferState.UNINITIALIZED
    with pytest.raises(BufferStateError):
        _ = buffer.value
    with pytest.raises(BufferStateError):
        buffer.update(1)

    buffer.write(1)
    assert buffer.state is BufferState.INITIALIZED
    with pytest.raises(BufferStateError):
        buffer.initialize(2)

    buffer.write(2)
    assert buffer.state is BufferState.UPDATED
    assert buffer.value == 2
    assert buffer.updates == 1

    buffer.reset()
    assert not buffer.is_initialized


# -- outcomes -----------------------------------------------------------------

def test_try_ratio_reports_degenerate_denominator() -> None:
    outcome = try_ratio(Discrete([0.5, 0.5]), Discrete([1.0, 0.0]))
    assert isinstance(outcome, DegenerateRatio)
    with pytest.raises(DegenerateRatioError):
        unwrap(outcome)


def test_try_ratio_ok() -> None:
    outcome = try_ratio(Discrete([0.2, 0.8]), Discrete([0.5, 0.5]))
    assert isinstance(outcome, Ok)
    np.testing.assert_allclose(unwrap(outcome).probs, [0.2, 0.8])


def test_unwrap_attaches_context() -> None:
    with pytest.raises(FactorOpsError) as info:
        unwrap(AllZero("nothing left"), "GateExit", "exit")
    assert info.value.factor == "GateExit"
    assert "[GateExit.exit]" in str(info.value)


# -- settings -----------------------------------------------------------------

def test_override_settings_restores_values() -> None:
    assert settings.force_proper
    with override_settings(force_proper=False):
        assert not settings.force_proper
    assert settings.force_proper


def test_override_settings_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        with override_settings(no_such_setting=True):
            pass


# -- metadata -----------------------------------------------------------------

def test_registry_lookup() -> None:
    fn = lookup("ReplicateDivide", "uses_average_conditional")
    assert fn is ReplicateOpDivide.uses_average_conditional
    assert "to_def" in operators_for("ReplicateDivide")
    with pytest.raises(KeyError):
        lookup("ReplicateDivide", "no_such_operator")


def test_operator_info_records_hints() -> None:
    info = operator_info(ReplicateOpDivide.to_def_init)
    assert info.skip
    assert info.algorithm == "buffer"
    info = operator_info(ReplicateOpDivide.def_average_conditional)
    assert info.skip_if_uniform == ("to_def",)
    # A uniform marginal says nothing about the leave-one-out messages
    info = operator_info(ReplicateOpDivide.uses_average_conditional)
    assert info.skip_if_uniform == ()
    assert info.fresh == ("marginal",)


def test_should_skip_judges_buffer_contents() -> None:
    to_def = Buffer("to_def", Discrete.uniform(3))
    assert should_skip(ReplicateOpDivide.def_average_conditional, to_def=to_def)
    to_def.write(Discrete([0.2, 0.3, 0.5]))
    assert not should_skip(ReplicateOpDivide.def_average_conditional, to_def=to_def)
    assert not should_skip(ReplicateOpDivide.def_average_conditional, to_def=Buffer("to_def"))
    assert not should_skip(ReplicateOpDivide.uses_average_conditional,
                           marginal=Buffer("marginal", Discrete.uniform(3)))
    assert should_skip(ReplicateOpDivide.to_def, uses=[Discrete.uniform(2)])


def test_declared_hint_must_name_an_argument() -> None:
    with pytest.raises(ValueError):
        @factor_operator("Test", "x", skip_if_uniform=("missing",))
        def broken(a):
            return a


def test_proper_arguments_are_checked_and_errors_get_context() -> None:
    @factor_operator("TestProper", "x", "vmp", proper=("value",))
    def needs_proper(value):
        return value

    assert needs_proper(Gaussian.from_mean_and_variance(0.0, 1.0)).precision == 1.0
    with pytest.raises(ImproperMessageError) as info:
        needs_proper(Gaussian.uniform())
    assert info.value.factor == "TestProper"

    @factor_operator("TestContext", "y")
    def fails():
        raise ShapeMismatchError("bad")

    with pytest.raises(ShapeMismatchError) as info:
        fails()
    assert info.value.edge == "y"


# -- gibbs --------------------------------------------------------------------

def test_gibbs_marginal_burn_in_and_thinning(rng) -> None:
    marginal = GibbsMarginal(Discrete.uniform(3), burn_in=2, thin=2, rng=rng)
    for _ in range(7):
        marginal.post_update(Discrete([0.0, 1.0, 0.0]))
    # Kept draws are 3, 5 and 7
    assert marginal.samples == [1, 1, 1]
    assert marginal.last_sample == 1
    with pytest.raises(ValueError):
        GibbsMarginal(Discrete.uniform(3), thin=0)
