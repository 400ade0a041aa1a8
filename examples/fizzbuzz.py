"""The classic counting game."""

from __future__ import annotations


def fizzbuzz(number: int) -> int | str:
    """Return ``Fizz``, ``Buzz``, ``FizzBuzz`` or *number* itself."""
    result = ""
    if number % 3 == 0:
        result += "Fizz"
    if number % 5 == 0:
        result += "Buzz"
    return result or number
