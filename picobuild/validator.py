"""Checks assembled tabs against the runtime's constraint profile."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .errors import ConstraintViolation, ReservedMarkerError, TabTooLargeError, TooManyTabsError
from .logging import get_logger
from .models import DEFAULT_ENCODING, ConstraintProfile, TabUnit


class ConstraintValidator:
    """Evaluates every rule against every tab; an empty result means the cart is valid.

    ``reserved_lines`` are the section markers of the cart format. A tab line
    equal to one of them (ignoring trailing whitespace) is a violation.
    """

    def __init__(
        self,
        profile: ConstraintProfile,
        encoding: str = DEFAULT_ENCODING,
        reserved_lines: Iterable[str] = (),
    ) -> None:
        self.profile = profile
        self.encoding = encoding
        self.reserved_lines = frozenset(reserved_lines)
        self.logger = get_logger("validator")

    def validate(self, tabs: Sequence[TabUnit]) -> List[ConstraintViolation]:
        violations: List[ConstraintViolation] = []
        violations.extend(self._check_tab_count(tabs))
        violations.extend(self._check_tab_sizes(tabs))
        violations.extend(self._check_reserved_lines(tabs))
        self.logger.debug(
            "Validated %d tabs against max_tabs=%d max_tab_bytes=%s: %d violations",
            len(tabs),
            self.profile.max_tabs,
            self.profile.max_tab_bytes,
            len(violations),
        )
        return violations

    def _check_tab_count(self, tabs: Sequence[TabUnit]) -> List[ConstraintViolation]:
        if len(tabs) > self.profile.max_tabs:
            return [TooManyTabsError(found=len(tabs), limit=self.profile.max_tabs)]
        return []

    def _check_tab_sizes(self, tabs: Sequence[TabUnit]) -> List[ConstraintViolation]:
        limit = self.profile.max_tab_bytes
        if limit is None:
            return []
        oversized: List[ConstraintViolation] = []
        for tab in tabs:
            size = tab.size_bytes(self.encoding)
            if size > limit:
                oversized.append(TabTooLargeError(tab=tab.name, size=size, limit=limit))
        return oversized

    def _check_reserved_lines(self, tabs: Sequence[TabUnit]) -> List[ConstraintViolation]:
        if not self.reserved_lines:
            return []
        found: List[ConstraintViolation] = []
        for tab in tabs:
            # Split the encoded bytes the same way the cart reader does.
            data = (tab.assembled_text or "").encode(self.encoding)
            for number, raw in enumerate(data.splitlines(), start=1):
                line = raw.rstrip().decode(self.encoding, errors="replace")
                if line in self.reserved_lines:
                    found.append(ReservedMarkerError(tab=tab.name, line=number, marker=line))
        return found


__all__ = ["ConstraintValidator"]
