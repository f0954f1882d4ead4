"""Error types for cosmovisor.

Every error raised by this package derives from ``CosmovisorError`` so
that the CLI can render any failure as a single ``[cosmovisor]`` line.
Configuration loading reports *all* problems it finds at once; several
problems are aggregated into a ``MultiError``.
"""
from __future__ import annotations

from dataclasses import dataclass, field


class CosmovisorError(Exception):
    """Base class for all cosmovisor errors."""


class ConfigError(CosmovisorError):
    """A single configuration validation failure."""


class BinaryError(CosmovisorError):
    """The managed binary could not be located, validated or executed."""


@dataclass(eq=False)
class MultiError(CosmovisorError):
    """Aggregates several independent errors from a single operation.

    Parameters
    ----------
    errors:
        Ordered list of the errors encountered.
    """

    errors: list[Exception] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def get_errors(self) -> list[Exception]:
        """Return the contained errors in their original order."""
        return list(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __str__(self) -> str:
        parts = [f"{i}: {err}" for i, err in enumerate(self.errors, start=1)]
        return f"{len(self.errors)} errors: " + ", ".join(parts)


def flatten_errors(*errs: Exception | None) -> Exception | None:
    """Combine ``errs`` into a single error value.

    ``None`` entries are dropped and the members of any ``MultiError`` are
    inlined.  Returns ``None`` when nothing is left, the error itself when
    exactly one is left, and a ``MultiError`` otherwise.
    """
    collected: list[Exception] = []
    for err in errs:
        if err is None:
            continue
        if isinstance(err, MultiError):
            collected.extend(err.errors)
        else:
            collected.append(err)

    if not collected:
        return None
    if len(collected) == 1:
        return collected[0]
    return MultiError(collected)
