"""
Error taxonomy for loading and exploring networks.

Load errors (``DecodeError``, ``ParseError``, ``IntegrityError``) abort network
construction before any visual graph exists. Interactive errors
(``UnknownCellError``, ``InvalidParameterError``) are raised before any state
changes, so the current view is left as it was.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:  # pragma: no cover
    from .network import IntegrityReport


class NurvizError(Exception):
    """Base class for all errors raised by the viewer core."""


class DecodeError(NurvizError):
    """The input's compression framing is malformed or truncated."""


class ParseError(NurvizError):
    """The decompressed payload is not valid UTF-8 JSON of the expected shape."""


class IntegrityError(NurvizError):
    """
    Cells and synapses reference each other inconsistently.

    Attributes:
        report: The full integrity report that triggered the error
        cell_ids: Ids of cells that reference missing synapses
        synapse_ids: Ids of synapses that reference missing cells
    """

    def __init__(self, report: "IntegrityReport"):
        self.report = report
        self.cell_ids = report.offending_cell_ids
        self.synapse_ids = report.offending_synapse_ids
        super().__init__(
            "network has dangling references: "
            f"synapses={_fmt_ids(self.synapse_ids)} cells={_fmt_ids(self.cell_ids)}"
        )


class UnknownCellError(NurvizError, KeyError):
    """A walk was requested from a cell id that is not in the network."""

    def __init__(self, cell_id: Any):
        self.cell_id = cell_id
        super().__init__(f"unknown cell id: {cell_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidParameterError(NurvizError, ValueError):
    """An interactive or configuration parameter is out of range or unrecognized."""

    def __init__(self, name: str, value: Any, reason: str = ""):
        self.name = name
        self.value = value
        message = f"invalid {name}: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


def _fmt_ids(ids: Iterable[str]) -> str:
    return "[" + ", ".join(sorted(ids)) + "]"
