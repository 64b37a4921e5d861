from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Mapping
from typing import Any, Callable

from .blanks import blank_keys
from .choices import option_list, resolve_choice
from .qtypes import (
    INDEX_TYPES,
    TF_NG_VALUES,
    QType,
    coerce_qtype,
    ensure_exhaustive,
    is_index,
    unanswered,
)

logger = logging.getLogger(__name__)

_QUOTE_MAP = {
    "’": "'",
    "‘": "'",
    "“": "\"",
    "”": "\"",
}


def _nfkc_normalize(s: str) -> str:
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s)
    for src, dst in _QUOTE_MAP.items():
        s = s.replace(src, dst)
    return s


def cmp_text(s: Any) -> str:
    """Comparison form for text answers: trimmed and case-folded."""
    if not isinstance(s, str):
        return ""
    return _nfkc_normalize(s).strip().casefold()


def blank_cmp_text(s: Any, *, case_sensitive: bool = False) -> str:
    """Comparison form for a fill-in blank: every whitespace run removed."""
    if not isinstance(s, str):
        return ""
    s = re.sub(r"\s+", "", _nfkc_normalize(s))
    return s if case_sensitive else s.casefold()


class _Malformed(Exception):
    pass


def _norm_tf(raw: Any, options: Mapping) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise _Malformed


def _norm_tf_ng(raw: Any, options: Mapping) -> str:
    if isinstance(raw, bool):
        return "TRUE" if raw else "FALSE"
    if isinstance(raw, str):
        value = re.sub(r"[\s\-]+", "_", raw.strip().upper())
        if value in TF_NG_VALUES:
            return value
    raise _Malformed


def _norm_index(raw: Any, options: Mapping) -> int:
    if is_index(raw):
        return raw
    if isinstance(raw, str):
        idx = resolve_choice(raw, option_list(options))
        if idx is not None:
            return idx
    raise _Malformed


def _norm_indices(raw: Any, options: Mapping) -> list[int]:
    if is_index(raw) or isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        raise _Malformed
    choices = option_list(options)
    out: set[int] = set()
    for entry in raw:
        if is_index(entry):
            out.add(entry)
            continue
        idx = resolve_choice(entry, choices)
        if idx is None:
            logger.warning("normalize_dropped_choice qtype=MCQ_MULTI entry=%r", entry)
            continue
        out.add(idx)
    return sorted(out)


def _norm_order(raw: Any, options: Mapping) -> list[int]:
    if not isinstance(raw, (list, tuple)):
        raise _Malformed
    tokens = option_list(options, "tokens")
    out: list[int] = []
    for entry in raw:
        if is_index(entry):
            out.append(entry)
            continue
        idx = resolve_choice(entry, tokens)
        if idx is None:
            raise _Malformed
        out.append(idx)
    return out


def _norm_mapping(raw: Any) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if not isinstance(value, str):
            logger.warning("normalize_dropped_blank key=%r value_type=%s", key, type(value).__name__)
            continue
        out[str(key)] = value
    return out


def _norm_dnd(raw: Any, options: Mapping) -> dict[str, str]:
    if isinstance(raw, Mapping):
        return _norm_mapping(raw)
    if isinstance(raw, (list, tuple)):
        keys = blank_keys(QType.DND_GAP, options, len(raw))
        return _norm_mapping(dict(zip(keys, raw)))
    raise _Malformed


def _norm_fill_in_blank(raw: Any, options: Mapping) -> dict[str, str]:
    if isinstance(raw, Mapping):
        return _norm_mapping(raw)
    raise _Malformed


def _norm_text(raw: Any, options: Mapping) -> str | None:
    if isinstance(raw, str):
        return raw or None
    raise _Malformed


def _norm_recording(raw: Any, options: Mapping) -> dict | None:
    if isinstance(raw, str):
        return {"audioUrl": raw} if raw.strip() else None
    if isinstance(raw, Mapping):
        url = raw.get("audioUrl")
        if isinstance(url, str) and url.strip():
            out: dict[str, Any] = {"audioUrl": url}
            duration = raw.get("durationSec")
            if isinstance(duration, (int, float)) and not isinstance(duration, bool):
                out["durationSec"] = duration
            return out
        if url is None or (isinstance(url, str) and not url.strip()):
            return None
    raise _Malformed


_NORMALIZERS: dict[QType, Callable[[Any, Mapping], Any]] = {
    QType.TF: _norm_tf,
    QType.TF_NG: _norm_tf_ng,
    QType.MCQ_SINGLE: _norm_index,
    QType.SELECT: _norm_index,
    QType.INLINE_SELECT: _norm_index,
    QType.MCQ_MULTI: _norm_indices,
    QType.ORDER_SENTENCE: _norm_order,
    QType.DND_GAP: _norm_dnd,
    QType.FILL_IN_BLANK: _norm_fill_in_blank,
    QType.SHORT_TEXT: _norm_text,
    QType.GAP: _norm_text,
    QType.ESSAY: _norm_text,
    QType.SPEAKING_RECORDING: _norm_recording,
}
ensure_exhaustive(_NORMALIZERS, "normalize")


def normalize(qtype: Any, raw: Any, options: Mapping | None = None) -> Any:
    """Canonical StudentAnswer for ``raw``.

    Accepts the shapes the submission and review surfaces produce (an index or
    the choice text for single-choice types, a positional list for DND gaps)
    and never raises for malformed input: anything unrecognised becomes the
    type's unanswered sentinel. Strings are kept verbatim; trimming happens
    only when grading.
    """
    qt = coerce_qtype(qtype)
    if raw is None:
        return unanswered(qt)
    if not isinstance(options, Mapping):
        options = {}
    try:
        return _NORMALIZERS[qt](raw, options)
    except _Malformed:
        if qt in INDEX_TYPES and isinstance(raw, str):
            logger.info("normalize_unresolved_choice qtype=%s value=%r", qt.value, raw)
        else:
            logger.warning("normalize_malformed qtype=%s raw_type=%s", qt.value, type(raw).__name__)
        return unanswered(qt)
