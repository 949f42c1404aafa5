import logging
import math
import re
from typing import Callable

from cuberoot.core.errors import NotInteger, OutOfRange, RequestError

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")


def parse_int32(text: str) -> int:
    """
    Parse a base-10 signed integer that must fit in 32 bits.

    Only an optional sign followed by ASCII digits is accepted: no
    surrounding whitespace, no digit separators.
    """
    if not _DECIMAL.fullmatch(text):
        raise NotInteger(text)

    try:
        value = int(text)
    except ValueError:
        # Too many digits for int(): certainly not a 32-bit value.
        raise OutOfRange(text) from None

    if value < INT32_MIN or value > INT32_MAX:
        raise OutOfRange(value)

    return value


def cube_root(value: int) -> float:
    return math.cbrt(value)


class IntegerProcessor:
    """
    Turns a request message into a response message by applying a pure
    function to a 32-bit integer.

    `template` is formatted with the keyword arguments `value` (the parsed
    integer) and `result` (the computed value).

    `handle` never raises on bad input: validation failures are answered with
    their diagnostic text, since the protocol has no separate error channel.
    """
    def __init__(self, compute: Callable[[int], object], template: str) -> None:
        self._compute = compute
        self._template = template
        self._logger = logging.getLogger("core.processing")

    def handle(self, message: str) -> str:
        try:
            value = parse_int32(message)
        except RequestError as exc:
            self._logger.debug(f"Rejected request: {exc}")
            return str(exc)

        result = self._compute(value)
        return self._template.format(value=value, result=result)
