# SPDX-License-Identifier: BSD-3-Clause

"""
Models argument generators.

This module contains the L{ArgGenerator} class and its subclasses, which
produce the (mostly random) strings that are used as path segments and
query parameters in test requests.

Generators can be nested: a L{Union} picks one of its child generators
for every sample. Generator trees are built once from the configuration
and never modified afterwards, so they can be shared between trials.
"""

from __future__ import annotations

import string
from random import Random
from typing import Sequence

_DIGITS = string.digits
_ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits


class ArgGenerator:
    """Abstract base class for argument generators."""

    def sample(self, rng: Random) -> str:
        """
        Produce a value for use in a test request.

        Sampling never fails: every generator can produce a value for
        every state of C{rng}.

        @param rng:
            Source of randomness. The result only depends on the state
            of this object.
        """
        raise NotImplementedError

    def _key(self) -> tuple[object, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArgGenerator):
            return type(self) is type(other) and self._key() == other._key()
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def __repr__(self) -> str:
        args = ", ".join(
            repr(list(arg) if isinstance(arg, tuple) else arg) for arg in self._key()
        )
        return f"{self.__class__.__name__}({args})"


class Fixed(ArgGenerator):
    """Generator that always provides the same string."""

    def __init__(self, value: str):
        ArgGenerator.__init__(self)
        self.value = value

    def sample(self, rng: Random) -> str:
        return self.value

    def _key(self) -> tuple[object, ...]:
        return (self.value,)


class Choice(ArgGenerator):
    """
    Generator that picks one of the given strings at random.

    If there are no strings to pick from, the empty string is produced.
    """

    def __init__(self, values: Sequence[str]):
        ArgGenerator.__init__(self)
        self.values = tuple(values)

    def sample(self, rng: Random) -> str:
        values = self.values
        return rng.choice(values) if values else ""

    def _key(self) -> tuple[object, ...]:
        return (self.values,)


class IntRange(ArgGenerator):
    """Generator that picks an integer from an inclusive range."""

    def __init__(self, low: int, high: int):
        """
        Initialize a generator for integers in C{[low, high]}.

        @raise ValueError:
            If C{low} is larger than C{high}.
        """
        if low > high:
            raise ValueError(f"empty integer range: low {low:d} > high {high:d}")
        ArgGenerator.__init__(self)
        self.low = low
        self.high = high

    def sample(self, rng: Random) -> str:
        return str(rng.randint(self.low, self.high))

    def _key(self) -> tuple[object, ...]:
        return (self.low, self.high)


class _CharSequence(ArgGenerator):
    """Generator for a fixed-length sequence of characters from an alphabet."""

    alphabet = ""

    def __init__(self, length: int):
        if length < 0:
            raise ValueError(f"negative length: {length:d}")
        ArgGenerator.__init__(self)
        self.length = length

    def sample(self, rng: Random) -> str:
        return "".join(rng.choices(self.alphabet, k=self.length))

    def _key(self) -> tuple[object, ...]:
        return (self.length,)


class Numeric(_CharSequence):
    """Generator for a string of random decimal digits."""

    alphabet = _DIGITS


class AlphaNumeric(_CharSequence):
    """Generator for a string of random ASCII letters and digits."""

    alphabet = _ALPHANUMERIC


class Union(ArgGenerator):
    """
    Generator that samples one of its child generators, picked at random.

    If there are no child generators, the empty string is produced.
    """

    def __init__(self, generators: Sequence[ArgGenerator]):
        ArgGenerator.__init__(self)
        self.generators = tuple(generators)

    def sample(self, rng: Random) -> str:
        generators = self.generators
        return rng.choice(generators).sample(rng) if generators else ""

    def _key(self) -> tuple[object, ...]:
        return (self.generators,)


MAGIC_TOKENS = ("", "false", "true", "null", "undefined", "NaN", "%20", "%27")
"""Values that commonly trip up argument parsing on the server side."""

MAGIC_GENERATORS: tuple[ArgGenerator, ...] = (
    Choice(MAGIC_TOKENS),
    AlphaNumeric(16),
    IntRange(-100000, 100000),
)
"""The generators that L{Magic} picks from."""


class Magic(ArgGenerator):
    """
    Generator that tries a bit of everything.

    This is the generator used when none is specified: it samples one
    of the L{MAGIC_GENERATORS}, picked at random.
    """

    def sample(self, rng: Random) -> str:
        return rng.choice(MAGIC_GENERATORS).sample(rng)
