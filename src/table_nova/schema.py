"""
Schema derivation and identifier building.

Turns a grid's header (or its width) into stable column keys, column
keys into predicate IRIs, and a filename into the run's named-graph IRI.
Everything here is pure except ``build_row_instance_iri``, which mints a
fresh UUID on every call.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from table_nova.models import PredicateCasing, PredicateOptions, WhenNoHeader


_DOT = re.compile(r"\.")
_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9_-]+")
_DASH_RUN = re.compile(r"-+")
_EXTENSION = re.compile(r"\.[^.]+$")
_WORD_SEPARATORS = re.compile(r"[_-]+")
_NON_WORD = re.compile(r"[^A-Za-z0-9 ]+")
_IRI_FORBIDDEN = set('<>"{}|^`\\')


# =============================================================================
# Slugs and run graph IRIs
# =============================================================================

def slugify(value: str) -> str:
    """
    Convert arbitrary text into a URL-safe slug.

    Dots are separators ("file.tar.gz" -> "file-tar-gz"), runs of
    separators collapse, and an empty result falls back to "file".
    """
    s = str(value or "").strip().lower()
    s = _DOT.sub("-", s)
    s = _WHITESPACE.sub("-", s)
    s = _NON_SLUG.sub("-", s)
    s = _DASH_RUN.sub("-", s)
    return s.strip("-") or "file"


def ensure_trailing_slash(iri: str) -> str:
    s = str(iri or "")
    return s if s.endswith("/") else f"{s}/"


def encode_iri(iri: str) -> str:
    """Percent-encode characters that may not appear inside an IRI reference."""
    return "".join(
        quote(ch, safe="") if ch in _IRI_FORBIDDEN or ord(ch) <= 0x20 else ch
        for ch in str(iri or "")
    )


def strip_extension(filename: str) -> str:
    return _EXTENSION.sub("", str(filename or ""))


def build_run_graph_iri(base_run_iri: str, filename: str, now: Optional[datetime] = None) -> str:
    """
    Build the run's named-graph IRI: ``<base>/<YYYY-MM-DD>/<slug>``.

    The date is the UTC calendar day of ``now``, so re-running the same
    file on the same day yields the same IRI. Naive datetimes are UTC.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    day = now.astimezone(timezone.utc).date().isoformat()
    return f"{ensure_trailing_slash(base_run_iri)}{day}/{slugify(strip_extension(filename))}"


def build_row_instance_iri(base_instance_iri: str, row_index: int) -> str:
    """Mint a fresh row subject IRI; the row index is only an ordering hint."""
    token = uuid.uuid4()
    return f"{ensure_trailing_slash(base_instance_iri)}{token}?row={quote(str(row_index), safe='')}"


# =============================================================================
# Column keys
# =============================================================================

def to_column_letters(index: int) -> str:
    """Zero-based index to spreadsheet letters: 0 -> A, 25 -> Z, 26 -> AA."""
    n = max(0, int(index))
    letters = ""
    while n >= 0:
        letters = chr(n % 26 + 65) + letters
        n = n // 26 - 1
    return letters


def dedupe_keys(keys: Sequence[str]) -> List[str]:
    """Suffix repeated keys with _2, _3, ... preserving order."""
    seen: Dict[str, int] = {}
    used = set()
    out: List[str] = []
    for key in keys:
        base = str(key or "").strip() or "Column"
        n = seen.get(base, 0) + 1
        candidate = base if n == 1 else f"{base}_{n}"
        while candidate in used:
            n += 1
            candidate = f"{base}_{n}"
        seen[base] = n
        used.add(candidate)
        out.append(candidate)
    return out


def build_column_keys(
    header: Optional[Sequence[str]],
    rows: Sequence[Sequence[str]],
    treat_first_row_as_header: bool,
    when_no_header: WhenNoHeader = WhenNoHeader.ORDINAL,
) -> List[str]:
    """
    Build the ordered column keys for a grid.

    With a header in use, labels become keys (blank -> "Column", deduped).
    Otherwise the key count is the widest row, header included, and keys
    are ColumnA, ColumnB, ... (or Column1, Column2, ... for INDEX).
    """
    if treat_first_row_as_header and header:
        return dedupe_keys([str(h or "").strip() or "Column" for h in header])

    widths = [len(header) if header else 0] + [len(r) for r in rows or []]
    width = max(widths)
    if when_no_header == WhenNoHeader.INDEX:
        return [f"Column{i + 1}" for i in range(width)]
    return [f"Column{to_column_letters(i)}" for i in range(width)]


# =============================================================================
# Predicates
# =============================================================================

def tokenize_words(phrase: str) -> List[str]:
    """Split a phrase into ASCII alphanumeric word tokens."""
    cleaned = _WORD_SEPARATORS.sub(" ", str(phrase or ""))
    cleaned = _NON_WORD.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned.split(" ") if cleaned else []


def capitalize(token: str) -> str:
    s = str(token or "")
    return s[:1].upper() + s[1:].lower()


def join_tokens(tokens: Sequence[str], casing: PredicateCasing) -> str:
    """Case-join word tokens with the given strategy."""
    if casing == PredicateCasing.SNAKE_CASE:
        return "_".join(t.lower() for t in tokens)
    if casing == PredicateCasing.SHOUT_CASE:
        return "_".join(t.upper() for t in tokens)
    if casing == PredicateCasing.PASCAL_CASE:
        return "".join(capitalize(t) for t in tokens)
    if not tokens:
        return ""
    return tokens[0].lower() + "".join(capitalize(t) for t in tokens[1:])


def build_predicate_local_name(column_key: str, options: Optional[PredicateOptions] = None) -> str:
    """
    Build a predicate local name from a column key.

    A pure function of (column_key, options): "email address" becomes
    hasEmailAddress / HasEmailAddress / has_email_address / HAS_EMAIL_ADDRESS.
    A key with no word characters falls back to "value" (after "has").
    """
    options = options or PredicateOptions()
    raw = str(column_key or "").strip() or "Column"
    phrase = f"has {raw}" if options.prefix_has else raw
    tokens = tokenize_words(phrase)
    if not tokens or (options.prefix_has and tokens == ["has"]):
        tokens = ["has", "value"] if options.prefix_has else ["value"]
    return join_tokens(tokens, options.casing)


def build_predicate_iris(
    column_keys: Sequence[str],
    options: Optional[PredicateOptions],
    base_predicate_iri: str,
) -> Dict[str, str]:
    """Map each column key to ``base_predicate_iri + local name``, in column order."""
    base = str(base_predicate_iri or "")
    return {key: f"{base}{build_predicate_local_name(key, options)}" for key in column_keys}
