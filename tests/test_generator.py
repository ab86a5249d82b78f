"""
Unit tests for `heelgun.generator`.
"""

from random import Random
import string

from pytest import mark, raises

from heelgun.generator import (
    MAGIC_GENERATORS,
    MAGIC_TOKENS,
    AlphaNumeric,
    Choice,
    Fixed,
    IntRange,
    Magic,
    Numeric,
    Union,
)

from utils import SeqRandom

TRIALS = 1000


@mark.parametrize("value", ("", "42", "hello world", "%20", "ünïcode"))
def test_fixed(value):
    """Test whether a fixed generator always produces its value."""
    rng = Random(1)
    gen = Fixed(value)
    for _ in range(100):
        assert gen.sample(rng) == value


def test_choice_values():
    """Test whether a choice generator only produces the given values."""
    rng = Random(2)
    values = ("a", "b", "c")
    gen = Choice(values)
    seen = {gen.sample(rng) for _ in range(TRIALS)}
    assert seen == set(values)


def test_choice_predetermined():
    """Test whether the random choice selects the value."""
    gen = Choice(["x", "y", "z"])
    assert gen.sample(SeqRandom(2)) == "z"
    assert gen.sample(SeqRandom(0)) == "x"


@mark.parametrize("gen", (Choice([]), Union([])))
def test_empty_is_empty_string(gen):
    """Test whether choosing from nothing produces the empty string."""
    rng = Random(3)
    for _ in range(100):
        assert gen.sample(rng) == ""


@mark.parametrize("low, high", ((0, 0), (-5, 5), (10, 13), (-100000, -99999)))
def test_int_range_bounds(low, high):
    """Test whether all integers in the range are produced, and only those."""
    rng = Random(4)
    gen = IntRange(low, high)
    seen = {int(gen.sample(rng)) for _ in range(TRIALS)}
    assert seen == set(range(low, high + 1))


def test_int_range_single():
    """Test whether a range with equal bounds produces that value."""
    assert IntRange(7, 7).sample(Random(5)) == "7"


def test_int_range_format():
    """Test whether negative numbers are formatted in decimal."""
    assert IntRange(-12, -12).sample(Random(5)) == "-12"


def test_int_range_invalid():
    """Test whether an empty range is rejected at construction."""
    with raises(ValueError):
        IntRange(2, 1)


@mark.parametrize("length", (0, 1, 8, 100))
def test_numeric(length):
    """Test whether numeric strings have the requested length and only digits."""
    rng = Random(6)
    gen = Numeric(length)
    for _ in range(100):
        value = gen.sample(rng)
        assert len(value) == length
        assert all(ch in string.digits for ch in value)


@mark.parametrize("length", (0, 1, 16, 100))
def test_alphanumeric(length):
    """Test whether alphanumeric strings have the requested length
    and only ASCII letters and digits.
    """
    rng = Random(7)
    gen = AlphaNumeric(length)
    for _ in range(100):
        value = gen.sample(rng)
        assert len(value) == length
        assert value.isascii()
        assert value.isalnum() or value == ""


def test_alphanumeric_coverage():
    """Test whether letters of both cases and digits are produced."""
    rng = Random(8)
    seen = set("".join(AlphaNumeric(100).sample(rng) for _ in range(100)))
    assert seen == set(string.ascii_letters + string.digits)


@mark.parametrize("gen_class", (Numeric, AlphaNumeric))
def test_negative_length(gen_class):
    """Test whether a negative length is rejected at construction."""
    with raises(ValueError):
        gen_class(-1)


def test_union_picks_child():
    """Test whether a union produces values from all of its children."""
    rng = Random(9)
    gen = Union([Fixed("a"), Fixed("b"), Union([Fixed("c")])])
    seen = {gen.sample(rng) for _ in range(TRIALS)}
    assert seen == {"a", "b", "c"}


def test_union_nested_predetermined():
    """Test whether a nested union recurses into the selected child."""
    gen = Union([Fixed("a"), Union([Choice(["b", "c"]), Fixed("d")])])
    assert gen.sample(SeqRandom(1, 0, 1)) == "c"
    assert gen.sample(SeqRandom(1, 1)) == "d"
    assert gen.sample(SeqRandom(0)) == "a"


def test_magic_generators():
    """Test the fixed set of generators used by the magic generator."""
    assert MAGIC_GENERATORS == (
        Choice(["", "false", "true", "null", "undefined", "NaN", "%20", "%27"]),
        AlphaNumeric(16),
        IntRange(-100000, 100000),
    )
    assert MAGIC_TOKENS[0] == ""


def test_magic_outputs():
    """Test whether the magic generator produces values of all kinds."""
    rng = Random(10)
    gen = Magic()
    tokens = numbers = words = 0
    for _ in range(TRIALS):
        value = gen.sample(rng)
        if value in MAGIC_TOKENS:
            tokens += 1
        elif value.lstrip("-").isdigit():
            assert -100000 <= int(value) <= 100000
            numbers += 1
        else:
            assert len(value) == 16 and value.isalnum()
            words += 1
    assert tokens and numbers and words


def test_deterministic():
    """Test whether equal seeds produce equal samples."""
    gen = Union([Magic(), Numeric(5), Choice(["a", "b"])])
    rng1 = Random(1234)
    rng2 = Random(1234)
    assert [gen.sample(rng1) for _ in range(50)] == [
        gen.sample(rng2) for _ in range(50)
    ]


def test_equality():
    """Test comparison of generator trees by value."""
    assert Union([Fixed("a"), Magic()]) == Union((Fixed("a"), Magic()))
    assert Fixed("a") != Fixed("b")
    assert Numeric(3) != AlphaNumeric(3)
    assert hash(IntRange(1, 2)) == hash(IntRange(1, 2))
    assert repr(Union([Fixed("a")])) == "Union([Fixed('a')])"
