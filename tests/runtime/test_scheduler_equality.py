import datetime

from refresh_throttle.runtime.scheduler import ArgsScheduler


def _call_count(first: tuple, second: tuple) -> int:
    calls = [0]

    def action(*args):
        calls[0] += 1

    scheduler = ArgsScheduler(action, {"throttle": 0})
    scheduler(*first)
    scheduler(*second)
    return calls[0]


def expect_different(first: tuple, second: tuple) -> None:
    assert _call_count(first, second) == 2, f"expected {first!r} and {second!r} to be considered different"


def expect_same(first: tuple, second: tuple) -> None:
    assert _call_count(first, second) == 1, f"expected {first!r} and {second!r} to be considered the same"


def test_numbers():
    expect_different((1,), (2,))
    expect_same((1,), (1,))


def test_strings():
    expect_different(("a",), ("b",))
    expect_same(("a",), ("a",))


def test_strings_are_different_to_numbers():
    expect_different(("1",), (1,))


def test_booleans():
    expect_different((True,), (False,))
    expect_same((True,), (True,))
    expect_different((True,), (1,))


def test_dates():
    expect_different((datetime.date(2013, 2, 2),), (datetime.date(2013, 2, 3),))
    d = datetime.date(2013, 2, 2)
    expect_same((d,), (d,))


def test_objects():
    expect_different(({"value": "1"},), ({"value": "1"},))
    obj = {"value": "1"}
    expect_same((obj,), (obj,))


def test_lists():
    expect_different(([1],), ([1],))
    a = [1]
    expect_same((a,), (a,))


def test_multiple_values():
    expect_different((1, 2), (1,))
    expect_different((1, 2), (1, 3))
    expect_same((1, 2), (1, 2))


def test_no_arguments_are_considered_different():
    # Calls without arguments always run, unlike every other input.
    expect_different((), ())


def test_none():
    expect_same((None,), (None,))
