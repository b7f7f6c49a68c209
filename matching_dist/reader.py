"""Plain-text readers for modules and bifiltrations.

Two formats are understood, selected by the first non-comment line:

``intervals``
    one summand per line, ``bx by dx dy [dim]``; ``inf inf`` as the death
    makes the summand essential.

``bifiltration`` / ``bifiltration_phat_like``
    one simplex per line, ``dim x y [face ...]`` where faces are 0-based
    indices of previously listed simplices.  The ``phat_like`` variant has
    the number of simplices on the line after the header.

Lines starting with ``#`` and blank lines are ignored.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .bifiltration import Bifiltration, Simplex
from .logging_utils import apply_debug_logging
from .module import IntervalModule, Summand

logger = logging.getLogger(__name__)

_INTERVAL_HEADERS = {"intervals"}
_BIFILTRATION_HEADERS = {"bifiltration", "bifiltration_phat_like"}


class ReaderError(ValueError):
    pass


def _content_lines(text: str) -> Iterator[Tuple[int, List[str]]]:
    for lineno, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.split("#", 1)[0].strip()
        if stripped:
            yield lineno, stripped.split()


def _to_float(token: str, lineno: int) -> float:
    try:
        return float(token)
    except ValueError as exc:
        raise ReaderError(f"[line {lineno}] expected a number, got '{token}'") from exc


def _to_int(token: str, lineno: int) -> int:
    try:
        return int(token)
    except ValueError as exc:
        raise ReaderError(f"[line {lineno}] expected an integer, got '{token}'") from exc


def _parse_intervals(lines: List[Tuple[int, List[str]]]) -> IntervalModule:
    summands: List[Summand] = []
    for lineno, tokens in lines:
        if len(tokens) not in (4, 5):
            raise ReaderError(f"[line {lineno}] interval needs 'bx by dx dy [dim]', got {len(tokens)} fields")
        bx, by, dx, dy = (_to_float(tok, lineno) for tok in tokens[:4])
        dim = _to_int(tokens[4], lineno) if len(tokens) == 5 else 0
        if math.isinf(bx) or math.isinf(by):
            raise ReaderError(f"[line {lineno}] birth must be finite")
        death: Optional[Tuple[float, float]]
        if math.isinf(dx) and math.isinf(dy):
            death = None
        elif math.isinf(dx) or math.isinf(dy):
            raise ReaderError(f"[line {lineno}] death must be finite in both coordinates or 'inf inf'")
        else:
            death = (dx, dy)
        try:
            summands.append(Summand((bx, by), death, dim))
        except ValueError as exc:
            raise ReaderError(f"[line {lineno}] {exc}") from exc
    return IntervalModule(summands)


def _parse_bifiltration(lines: List[Tuple[int, List[str]]], phat_like: bool) -> Bifiltration:
    expected: Optional[int] = None
    if phat_like:
        if not lines:
            raise ReaderError("missing simplex count after 'bifiltration_phat_like' header")
        lineno, tokens = lines[0]
        if len(tokens) != 1:
            raise ReaderError(f"[line {lineno}] expected the number of simplices")
        expected = _to_int(tokens[0], lineno)
        lines = lines[1:]

    simplices: List[Simplex] = []
    for lineno, tokens in lines:
        if len(tokens) < 3:
            raise ReaderError(f"[line {lineno}] simplex needs 'dim x y [face ...]'")
        dim = _to_int(tokens[0], lineno)
        x = _to_float(tokens[1], lineno)
        y = _to_float(tokens[2], lineno)
        faces = tuple(_to_int(tok, lineno) for tok in tokens[3:])
        for face in faces:
            if face >= len(simplices):
                raise ReaderError(f"[line {lineno}] face {face} is not listed before its coface")
        try:
            simplices.append(Simplex(dim, (x, y), faces))
        except ValueError as exc:
            raise ReaderError(f"[line {lineno}] {exc}") from exc

    if expected is not None and expected != len(simplices):
        raise ReaderError(f"header announces {expected} simplices, found {len(simplices)}")
    try:
        return Bifiltration(simplices)
    except ValueError as exc:
        raise ReaderError(str(exc)) from exc


def parse_module(text: str) -> Union[IntervalModule, Bifiltration]:
    lines = list(_content_lines(text))
    if not lines:
        raise ReaderError("empty input")
    lineno, header = lines[0]
    kind = header[0].lower()
    if len(header) != 1 or kind not in _INTERVAL_HEADERS | _BIFILTRATION_HEADERS:
        raise ReaderError(
            f"[line {lineno}] unknown header '{' '.join(header)}', expected one of "
            f"{sorted(_INTERVAL_HEADERS | _BIFILTRATION_HEADERS)}"
        )
    if kind in _INTERVAL_HEADERS:
        module = _parse_intervals(lines[1:])
    else:
        module = _parse_bifiltration(lines[1:], phat_like=kind == "bifiltration_phat_like")
    logger.info("Parsed %s with %d position(s)", type(module).__name__, len(module.positions()))
    return module


def read_module(path: Union[str, Path]) -> Union[IntervalModule, Bifiltration]:
    path = Path(path)
    logger.info("Reading module from %s", path)
    return parse_module(path.read_text(encoding="utf-8"))


__all__ = ["ReaderError", "parse_module", "read_module"]


apply_debug_logging(globals(), logger=logger)
