"""Renders assembled tabs into cart bytes and writes them atomically."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from .cart import ParsedCart
from .errors import IoError
from .logging import get_logger
from .models import DEFAULT_ENCODING, CartArtifact, CartFormat, TabUnit


def _replacement_mode(path: Path) -> int:
    """Mode for the new file: the existing cart's, else the default for a new file under the umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_atomic(path: Path, payload: bytes) -> None:
    """Write ``payload`` to a sibling temp file, fsync it, then replace ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _replacement_mode(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class CartSerializer:
    """Turns validated tabs into a CartArtifact without reordering or renaming them."""

    def __init__(self, cart_format: CartFormat | None = None, encoding: str = DEFAULT_ENCODING) -> None:
        self.format = cart_format or CartFormat()
        self.encoding = encoding
        self.logger = get_logger("serializer")

    def render(self, tabs: Sequence[TabUnit], base: Optional[ParsedCart] = None) -> CartArtifact:
        """Build the artifact; ``base`` supplies the header and asset sections to keep."""
        for expected, tab in enumerate(tabs):
            if tab.ordinal != expected:
                raise ValueError(
                    f"Tab '{tab.name}' has ordinal {tab.ordinal}, expected {expected}"
                )
            if tab.assembled_text is None:
                raise ValueError(f"Tab '{tab.name}' has not been assembled")

        if base is not None and self.format.preserve_assets:
            header = base.header
            trailer = base.trailer
        else:
            header = "".join(f"{line}\n" for line in self.format.header).encode("utf-8")
            trailer = b""

        return CartArtifact(
            format=self.format,
            tabs=[(tab.name, tab.assembled_text.encode(self.encoding)) for tab in tabs],
            header=header,
            trailer=trailer,
        )

    def write(self, artifact: CartArtifact, path: Path, previous: Optional[bytes] = None) -> Path:
        """Write the artifact, skipping the replace when ``previous`` already matches."""
        payload = artifact.to_bytes()
        if previous is not None and previous == payload:
            self.logger.debug("Cart at %s is already up to date", path)
            return path
        try:
            write_atomic(path, payload)
        except OSError as exc:
            raise IoError(path=path, reason=exc.strerror or str(exc)) from exc
        self.logger.info("Wrote %d bytes (%d tabs) to %s", len(payload), len(artifact.tabs), path)
        return path


__all__ = ["CartSerializer", "write_atomic"]
