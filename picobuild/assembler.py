"""Concatenates each tab's fragment files into its assembled text."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .cancel import CancelToken, check_cancelled
from .errors import EncodingError, PicoBuildError
from .logging import get_logger
from .models import DEFAULT_ENCODING, TabUnit

FRAGMENT_SEPARATOR = "\n"


class TabAssembler:
    """Reads fragments and joins them with exactly one newline between files."""

    def __init__(self, encoding: str = DEFAULT_ENCODING) -> None:
        self.encoding = encoding
        self.logger = get_logger("assembler")

    def assemble(self, tab: TabUnit, cancel: Optional[CancelToken] = None) -> TabUnit:
        """Fill ``tab.assembled_text`` and return the tab.

        Contents are joined verbatim: no trimming, no newline normalisation,
        so a file that already ends in a newline produces a blank line at the
        seam.
        """
        texts: List[str] = []
        for fragment in tab.source_files:
            check_cancelled(cancel, tab.name)
            try:
                raw = fragment.path.read_bytes()
            except OSError as exc:
                raise EncodingError(
                    tab=tab.name,
                    path=fragment.path,
                    encoding=self.encoding,
                    reason=f"unreadable: {exc.strerror or exc}",
                ) from exc
            fragment.content = raw
            try:
                text = raw.decode(self.encoding)
            except UnicodeDecodeError as exc:
                fragment.valid_encoding = False
                raise EncodingError(
                    tab=tab.name,
                    path=fragment.path,
                    encoding=self.encoding,
                    reason=f"invalid byte at offset {exc.start}",
                ) from exc
            fragment.valid_encoding = True
            texts.append(text)

        tab.assembled_text = FRAGMENT_SEPARATOR.join(texts)
        self.logger.debug(
            "Assembled tab %d '%s' from %d files", tab.ordinal, tab.name, len(tab.source_files)
        )
        return tab

    def assemble_all(
        self,
        tabs: Sequence[TabUnit],
        *,
        workers: int = 1,
        cancel: Optional[CancelToken] = None,
    ) -> List[TabUnit]:
        """Assemble every tab, in parallel when ``workers > 1``.

        All workers are joined before returning. When several tabs fail, the
        error of the lowest-ordinal tab is raised.
        """
        if workers <= 1 or len(tabs) <= 1:
            for tab in tabs:
                check_cancelled(cancel, tab.name)
                self.assemble(tab, cancel)
            return list(tabs)

        failures: List[tuple[int, PicoBuildError]] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="picobuild-assemble") as executor:
            futures = {tab.ordinal: executor.submit(self._assemble_guarded, tab, cancel) for tab in tabs}
            for ordinal, future in futures.items():
                error = future.result()
                if error is not None:
                    failures.append((ordinal, error))

        if failures:
            failures.sort(key=lambda item: item[0])
            raise failures[0][1]
        return list(tabs)

    def _assemble_guarded(self, tab: TabUnit, cancel: Optional[CancelToken]) -> Optional[PicoBuildError]:
        try:
            check_cancelled(cancel, tab.name)
            self.assemble(tab, cancel)
        except PicoBuildError as exc:
            return exc
        return None


__all__ = ["FRAGMENT_SEPARATOR", "TabAssembler"]
