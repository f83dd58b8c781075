import datetime

from refresh_throttle.core.change_detection import (
    UNSET,
    ArgsChangePolicy,
    SerializedValue,
    ValueChangePolicy,
    is_same_value,
    normalise_value,
)


def test_scalars_compare_by_value_within_the_same_type():
    assert is_same_value(1, 1)
    assert is_same_value("a", "a")
    assert is_same_value(None, None)
    assert is_same_value(datetime.date(2013, 2, 2), datetime.date(2013, 2, 2))
    assert not is_same_value(1, 2)


def test_scalars_of_different_types_differ():
    assert not is_same_value("1", 1)
    assert not is_same_value(True, 1)
    assert not is_same_value(1, 1.0)


def test_containers_compare_by_identity():
    a = [1]
    assert is_same_value(a, a)
    assert not is_same_value([1], [1])
    assert not is_same_value({"value": "1"}, {"value": "1"})


def test_nan_differs_unless_identical():
    nan = float("nan")
    assert is_same_value(nan, nan)
    assert not is_same_value(float("nan"), float("nan"))


def test_normalise_containers_to_canonical_text():
    assert normalise_value({"b": 1, "a": [1, 2]}) == normalise_value({"a": [1, 2], "b": 1})
    assert isinstance(normalise_value([1, 2]), SerializedValue)
    assert normalise_value(5) == 5


def test_normalise_mixed_key_types():
    text = normalise_value({1: "a", "b": 2})
    assert isinstance(text, SerializedValue)


def test_normalise_keeps_tuple_keyed_dict_as_is():
    value = {(1, 2): "x"}
    assert normalise_value(value) is value


def test_normalise_keeps_circular_list_as_is():
    value: list = [1]
    value.append(value)
    assert normalise_value(value) is value


def test_value_policy_unserializable_containers_compare_by_identity():
    policy = ValueChangePolicy()
    tuple_keyed = {(1, 2): "x"}
    looped: list = []
    looped.append(looped)

    assert not policy.has_changed(policy.snapshot(tuple_keyed), tuple_keyed)
    assert policy.has_changed(policy.snapshot(tuple_keyed), {(1, 2): "x"})
    assert not policy.has_changed(policy.snapshot(looped), looped)
    assert policy.has_changed(policy.snapshot(looped), [1])
    assert policy.has_changed(policy.snapshot([1]), looped)


def test_serialized_value_never_equals_raw_string():
    assert normalise_value([1]) != "[1]"
    assert "[1]" != normalise_value([1])


def test_value_policy_first_call_is_changed():
    policy = ValueChangePolicy()
    assert policy.has_changed(UNSET, None) is True


def test_value_policy_structural_equality():
    policy = ValueChangePolicy()
    previous = policy.snapshot({"value": "1"})
    assert policy.has_changed(previous, {"value": "1"}) is False
    assert policy.has_changed(previous, {"value": "2"}) is True


def test_value_policy_detects_in_place_mutation():
    policy = ValueChangePolicy()
    items = [1, 2]
    previous = policy.snapshot(items)
    items.append(3)
    assert policy.has_changed(previous, items) is True


def test_value_policy_string_versus_number():
    policy = ValueChangePolicy()
    assert policy.has_changed(policy.snapshot(1), "1") is True
    assert policy.has_changed(policy.snapshot("[1]"), [1]) is True
    assert policy.has_changed(policy.snapshot([1]), "[1]") is True


def test_args_policy_elementwise():
    policy = ArgsChangePolicy()
    previous = policy.snapshot((1, "a"))
    assert policy.has_changed(previous, (1, "a")) is False
    assert policy.has_changed(previous, (1, "b")) is True
    assert policy.has_changed(previous, (1,)) is True


def test_args_policy_empty_call_is_always_changed():
    policy = ArgsChangePolicy()
    previous = policy.snapshot(())
    assert policy.has_changed(previous, ()) is True


def test_args_policy_uses_identity_for_containers():
    policy = ArgsChangePolicy()
    shared = {"value": "1"}
    previous = policy.snapshot((shared,))
    assert policy.has_changed(previous, (shared,)) is False
    assert policy.has_changed(previous, ({"value": "1"},)) is True
