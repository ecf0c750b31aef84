"""
Cell value coercion into RDF object terms.

Each declared XSD datatype maps to a coercer producing a canonical
lexical form. Coercion never raises: a malformed cell degrades to the
datatype's default ("0", "false", the Unix epoch) so one bad cell cannot
abort a run. The only path to a named-node object is xsd:anyURI with an
absolute http(s) IRI.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import Decimal
from typing import Callable, Dict, Optional

import pendulum

from table_nova.models import (
    XSD_ANYURI,
    XSD_BOOLEAN,
    XSD_DATETIME,
    XSD_DECIMAL,
    XSD_DOUBLE,
    XSD_FLOAT,
    XSD_INTEGER,
    Term,
    expand_xsd,
)
from table_nova.schema import encode_iri

logger = logging.getLogger(__name__)

EPOCH_LEXICAL = "1970-01-01T00:00:00.000Z"
INSTANT_FORMAT = "YYYY-MM-DD[T]HH:mm:ss.SSS[Z]"

_ABSOLUTE_IRI = re.compile(r"^https?://", re.IGNORECASE)
_LEADING_INTEGER = re.compile(r"^[+-]?\d+")
_DECIMAL_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_RADIX_NUMBER = re.compile(r"^0([xXoObB])([0-9A-Fa-f]+)$")
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}

_TRUE_WORDS = {"1", "true", "yes", "y"}
_FALSE_WORDS = {"0", "false", "no", "n"}


def looks_like_absolute_iri(value: str) -> bool:
    return bool(_ABSOLUTE_IRI.match(str(value or "")))


# =============================================================================
# Lexical coercers
# =============================================================================

def to_boolean_lexical(value: str) -> str:
    """1/true/yes/y -> true, 0/false/no/n -> false, other non-empty -> true."""
    v = str(value or "").strip().lower()
    if v in _TRUE_WORDS:
        return "true"
    if v in _FALSE_WORDS:
        return "false"
    return "true" if v else "false"


def to_integer_lexical(value: str) -> str:
    """Leading base-10 integer ("42abc" -> "42"); "0" when there is none."""
    v = str(value or "").strip()
    match = _LEADING_INTEGER.match(v)
    if not match:
        logger.debug(f"Integer coercion failed for {v!r}; using 0")
        return "0"
    return str(int(match.group(0)))


def parse_number(value: str) -> Optional[float]:
    """Parse a numeric string (decimal, exponent, 0x/0o/0b); None if not finite."""
    v = str(value or "").strip()
    if not v:
        return 0.0
    if v in ("Infinity", "+Infinity", "-Infinity"):
        return None

    radix = _RADIX_NUMBER.match(v)
    if radix:
        try:
            return float(int(radix.group(2), _RADIX_BASES[radix.group(1).lower()]))
        except ValueError:
            return None

    if not _DECIMAL_NUMBER.match(v):
        return None
    number = float(v)
    return number if math.isfinite(number) else None


def format_number(number: float) -> str:
    """
    Render a float as its shortest round-trip decimal string.

    Integral values drop the fractional part ("1.50" -> "1.5", "2.0" -> "2");
    exponent notation is used only below 1e-6 or from 1e21 upward.
    """
    if number == 0:
        return "0"
    if number < 0:
        return "-" + format_number(-number)

    _, digits, exponent = Decimal(repr(number)).as_tuple()
    s = "".join(str(d) for d in digits)
    stripped = s.rstrip("0")
    exponent += len(s) - len(stripped)
    s = stripped
    k = len(s)
    n = exponent + k  # position of the decimal point relative to the digits

    if k <= n <= 21:
        return s + "0" * (n - k)
    if 0 < n <= 21:
        return f"{s[:n]}.{s[n:]}"
    if -6 < n <= 0:
        return "0." + "0" * (-n) + s

    e = n - 1
    mantissa = s if k == 1 else f"{s[0]}.{s[1:]}"
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def to_number_lexical(value: str) -> str:
    """Lexical form for xsd:decimal / xsd:double / xsd:float; "0" on failure."""
    number = parse_number(value)
    if number is None:
        logger.debug(f"Numeric coercion failed for {value!r}; using 0")
        return "0"
    return format_number(number)


def format_instant(dt: pendulum.DateTime) -> str:
    """UTC ISO-8601 instant with millisecond precision and a Z suffix."""
    return dt.in_timezone("UTC").format(INSTANT_FORMAT)


def to_datetime_lexical(value: str) -> str:
    """
    Lexical form for xsd:dateTime.

    Only ISO 8601 is accepted, so the result never depends on the current
    clock. Values without an offset are read as UTC; date-only values
    become midnight UTC. Anything else (free text, bare times, durations)
    becomes the Unix epoch.
    """
    raw = str(value or "").strip()
    if not raw:
        return EPOCH_LEXICAL
    try:
        parsed = pendulum.parse(raw, tz="UTC")
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug(f"dateTime coercion failed for {raw!r} ({e}); using epoch")
        return EPOCH_LEXICAL

    if isinstance(parsed, pendulum.DateTime):
        return format_instant(parsed)
    if isinstance(parsed, pendulum.Date):
        return format_instant(pendulum.datetime(parsed.year, parsed.month, parsed.day, tz="UTC"))

    logger.debug(f"dateTime coercion got a {type(parsed).__name__} for {raw!r}; using epoch")
    return EPOCH_LEXICAL


# =============================================================================
# Term building
# =============================================================================

LEXICAL_COERCERS: Dict[str, Callable[[str], str]] = {
    XSD_BOOLEAN: to_boolean_lexical,
    XSD_INTEGER: to_integer_lexical,
    XSD_DECIMAL: to_number_lexical,
    XSD_DOUBLE: to_number_lexical,
    XSD_FLOAT: to_number_lexical,
    XSD_DATETIME: to_datetime_lexical,
}


def build_object_term(value: str, datatype: Optional[str] = None) -> Term:
    """
    Build the object term for a cell under its declared datatype.

    Args:
        value: Raw cell string (trimmed here)
        datatype: XSD datatype IRI or ``xsd:`` name; xsd:string when None

    Returns:
        A named-node Term for xsd:anyURI + absolute IRI, else a typed literal
    """
    v = str(value or "").strip()
    dt = expand_xsd(datatype)

    if dt == XSD_ANYURI and looks_like_absolute_iri(v):
        return Term.iri(encode_iri(v))

    coercer = LEXICAL_COERCERS.get(dt)
    lexical = coercer(v) if coercer else v
    return Term.literal(lexical, dt)
