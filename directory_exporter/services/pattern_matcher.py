import logging
import re
from typing import Iterable

from ..core.exceptions import InvalidPatternError
from ..models import PatternSet


def compile_pattern(pattern: str, directory: str = "") -> re.Pattern:
    """Compile one include/exclude regex, raising InvalidPatternError on bad syntax."""
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, directory, str(e)) from e


def compile_patterns(
    patterns: Iterable[str], directory: str = "", kind: str = "pattern"
) -> PatternSet:
    """
    Compile patterns for one directory, keeping the configured order.

    The whole set fails on the first invalid pattern so a typo surfaces
    at startup instead of silently matching nothing during scans.
    """
    patterns = list(patterns)
    if not patterns:
        return PatternSet()

    logging.info(
        f"Building {len(patterns)} {kind} regexes for dir '{directory}'"
    )
    return PatternSet(tuple(compile_pattern(p, directory) for p in patterns))
