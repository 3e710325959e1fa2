"""
Network model for the nurviz viewer.

This module defines the typed, read-only representation of a decoded network:
- Cell: a neuron-like unit with its outgoing (axon) and incoming (dendrite) synapses
- Synapse: a directed, weighted connection from one cell's axon to another's dendrite
- Network: container for cells and synapses with read-only query helpers
- IntegrityReport: enumerable diagnostics for dangling cell/synapse references
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

import networkx as nx

from .enums import Direction, Role
from .errors import IntegrityError, UnknownCellError

DEFAULT_INPUT_PREFIX = "in-"


@dataclass(frozen=True)
class Cell:
    """
    A cell in the network.

    Attributes:
        id: Unique identifier for this cell
        tag: Optional label; its prefix decides the cell's role
        axon_synapses: Ids of synapses leaving this cell
        dendrite_synapses: Ids of synapses arriving at this cell
    """

    id: str
    """Unique identifier for this cell in the network."""

    tag: Optional[str] = None
    """Role label; absent for interior (hidden) cells."""

    axon_synapses: FrozenSet[str] = frozenset()
    """Outgoing synapse ids (this cell's outputs)."""

    dendrite_synapses: FrozenSet[str] = frozenset()
    """Incoming synapse ids (this cell's inputs)."""

    @property
    def degree(self) -> int:
        """Total number of synapses touching this cell."""
        return len(self.axon_synapses) + len(self.dendrite_synapses)


@dataclass(frozen=True)
class Synapse:
    """
    A directed connection: ``from_cell`` axon -> ``to_cell`` dendrite.

    Attributes:
        id: Unique identifier for this synapse
        from_cell: Id of the cell whose axon fires this synapse
        to_cell: Id of the cell whose dendrite receives it
        millivolts: Signed weight; positive excites, negative inhibits
    """

    id: str
    from_cell: str
    to_cell: str
    millivolts: float = 0.0


def classify_role(tag: Optional[str], input_prefix: str = DEFAULT_INPUT_PREFIX) -> Role:
    """Classify a cell by its tag: input prefix, other tag, or no tag."""
    if not tag:
        return Role.INTERIOR
    if tag.startswith(input_prefix):
        return Role.INPUT
    return Role.OUTPUT


_NUMERIC_ID = re.compile(r"-?\d+")


def id_sort_key(item_id: str):
    """Natural ordering for ids: numeric ids by value, before any other id."""
    if _NUMERIC_ID.fullmatch(item_id):
        return (0, int(item_id), "")
    return (1, 0, item_id)


def canonical_order(ids: Iterable[str]) -> List[str]:
    """Return ids in a content-defined order, independent of mapping order."""
    return sorted(ids, key=id_sort_key)


@dataclass
class IntegrityReport:
    """
    Every bad connection found in a set of cells and synapses.

    Attributes:
        cell_missing_axon_synapses: cell id -> axon synapse ids that do not exist
        cell_missing_dendrite_synapses: cell id -> dendrite synapse ids that do not exist
        synapse_missing_axon_cell: synapse id -> missing source cell id
        synapse_missing_dendrite_cell: synapse id -> missing target cell id
    """

    cell_missing_axon_synapses: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    cell_missing_dendrite_synapses: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    synapse_missing_axon_cell: Dict[str, str] = field(default_factory=dict)
    synapse_missing_dendrite_cell: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not (
            self.cell_missing_axon_synapses
            or self.cell_missing_dendrite_synapses
            or self.synapse_missing_axon_cell
            or self.synapse_missing_dendrite_cell
        )

    @property
    def offending_cell_ids(self) -> FrozenSet[str]:
        """Cells that list synapses which do not exist."""
        return frozenset(self.cell_missing_axon_synapses) | frozenset(
            self.cell_missing_dendrite_synapses
        )

    @property
    def offending_synapse_ids(self) -> FrozenSet[str]:
        """Synapses whose source or target cell does not exist."""
        return frozenset(self.synapse_missing_axon_cell) | frozenset(
            self.synapse_missing_dendrite_cell
        )

    @property
    def missing_synapse_ids(self) -> FrozenSet[str]:
        """Synapse ids referenced by cells but absent from the network."""
        missing = set()
        for ids in self.cell_missing_axon_synapses.values():
            missing.update(ids)
        for ids in self.cell_missing_dendrite_synapses.values():
            missing.update(ids)
        return frozenset(missing)

    def issues(self) -> List[str]:
        """Human-readable list of every problem, in canonical id order."""
        lines = []
        for cell_id in canonical_order(self.cell_missing_axon_synapses):
            for syn_id in canonical_order(self.cell_missing_axon_synapses[cell_id]):
                lines.append(f"Cell '{cell_id}' has missing axon synapse '{syn_id}'")
        for cell_id in canonical_order(self.cell_missing_dendrite_synapses):
            for syn_id in canonical_order(self.cell_missing_dendrite_synapses[cell_id]):
                lines.append(f"Cell '{cell_id}' has missing dendrite synapse '{syn_id}'")
        for syn_id in canonical_order(self.synapse_missing_axon_cell):
            lines.append(
                f"Synapse '{syn_id}' has missing axon cell '{self.synapse_missing_axon_cell[syn_id]}'"
            )
        for syn_id in canonical_order(self.synapse_missing_dendrite_cell):
            lines.append(
                f"Synapse '{syn_id}' has missing dendrite cell "
                f"'{self.synapse_missing_dendrite_cell[syn_id]}'"
            )
        return lines

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """JSON-friendly view of the report; empty categories are dropped."""
        result = {
            "cell_missing_axon_synapses": {
                k: canonical_order(v) for k, v in self.cell_missing_axon_synapses.items()
            },
            "cell_missing_dendrite_synapses": {
                k: canonical_order(v) for k, v in self.cell_missing_dendrite_synapses.items()
            },
            "synapse_missing_axon_cell": dict(self.synapse_missing_axon_cell),
            "synapse_missing_dendrite_cell": dict(self.synapse_missing_dendrite_cell),
        }
        return {k: v for k, v in result.items() if v}


def check_integrity(
    cells: Mapping[str, Cell], synapses: Mapping[str, Synapse]
) -> IntegrityReport:
    """
    Cross-check cell and synapse references in both directions.

    Returns:
        IntegrityReport listing every dangling reference; ``report.ok`` is True
        when there are none
    """
    report = IntegrityReport()

    for cell_id, cell in cells.items():
        missing_axon = frozenset(s for s in cell.axon_synapses if s not in synapses)
        if missing_axon:
            report.cell_missing_axon_synapses[cell_id] = missing_axon
        missing_dendrite = frozenset(s for s in cell.dendrite_synapses if s not in synapses)
        if missing_dendrite:
            report.cell_missing_dendrite_synapses[cell_id] = missing_dendrite

    for syn_id, synapse in synapses.items():
        if synapse.from_cell not in cells:
            report.synapse_missing_axon_cell[syn_id] = synapse.from_cell
        if synapse.to_cell not in cells:
            report.synapse_missing_dendrite_cell[syn_id] = synapse.to_cell

    return report


class Network:
    """
    Read-only container for the cells and synapses of one loaded network.

    A Network is built once per load and never mutated afterwards; every
    derived value (roles, degrees, neighbors) is computed on request.
    Construction refuses dangling references.

    Attributes:
        cells: Read-only mapping of cell id -> Cell
        synapses: Read-only mapping of synapse id -> Synapse
        integrity: Report of the payload this network was built from; it is
            non-empty only when dangling entities were excluded during load
    """

    __slots__ = ("_cells", "_synapses", "_integrity")

    def __init__(
        self,
        cells: Mapping[str, Cell],
        synapses: Mapping[str, Synapse],
        integrity: Optional[IntegrityReport] = None,
    ):
        cells = dict(cells)
        synapses = dict(synapses)
        report = check_integrity(cells, synapses)
        if not report.ok:
            raise IntegrityError(report)
        self._cells = MappingProxyType(cells)
        self._synapses = MappingProxyType(synapses)
        self._integrity = integrity or report

    @classmethod
    def build(cls, cells: Iterable[Cell], synapses: Iterable[Synapse]) -> "Network":
        """Build a network from cell and synapse objects keyed by their ids."""
        return cls({c.id: c for c in cells}, {s.id: s for s in synapses})

    @property
    def cells(self) -> Mapping[str, Cell]:
        return self._cells

    @property
    def synapses(self) -> Mapping[str, Synapse]:
        return self._synapses

    @property
    def integrity(self) -> IntegrityReport:
        return self._integrity

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._cells

    def cell(self, cell_id: str) -> Cell:
        """
        Look up a cell.

        Raises:
            UnknownCellError: If the id is not in the network
        """
        try:
            return self._cells[cell_id]
        except KeyError:
            raise UnknownCellError(cell_id) from None

    def role_of(self, cell_id: str, input_prefix: str = DEFAULT_INPUT_PREFIX) -> Role:
        return classify_role(self.cell(cell_id).tag, input_prefix)

    def degree(self, cell_id: str) -> int:
        return self.cell(cell_id).degree

    def neighbors(self, cell_id: str, direction: Direction = Direction.FORWARD) -> List[str]:
        """
        Ids of cells one synapse away in the given direction.

        Forward follows axon synapses to their dendrite cells; backward
        follows dendrite synapses to their axon cells. Synapses are visited in
        canonical id order, so the result order is stable.
        """
        cell = self.cell(cell_id)
        result: List[str] = []
        if direction.forward:
            for syn_id in canonical_order(cell.axon_synapses):
                result.append(self._synapses[syn_id].to_cell)
        if direction.backward:
            for syn_id in canonical_order(cell.dendrite_synapses):
                result.append(self._synapses[syn_id].from_cell)
        return result

    def outgoing_millivolts(self, cell_id: str) -> float:
        """Sum of the weights of the cell's axon synapses."""
        cell = self.cell(cell_id)
        return sum(self._synapses[s].millivolts for s in cell.axon_synapses)

    def totals(self, input_prefix: str = DEFAULT_INPUT_PREFIX) -> Dict[str, Any]:
        """
        Basic counts for the network.

        Returns:
            Dictionary with cell/synapse counts, average synapses per cell,
            counts per role and synapse counts per polarity
        """
        n_cells = len(self._cells)
        n_synapses = len(self._synapses)
        roles = {role.name.lower(): 0 for role in Role}
        for cell in self._cells.values():
            roles[classify_role(cell.tag, input_prefix).name.lower()] += 1
        polarity = {"excitatory": 0, "inhibitory": 0, "neutral": 0}
        for synapse in self._synapses.values():
            if synapse.millivolts > 0:
                polarity["excitatory"] += 1
            elif synapse.millivolts < 0:
                polarity["inhibitory"] += 1
            else:
                polarity["neutral"] += 1
        return {
            "cells": n_cells,
            "synapses": n_synapses,
            "avg_synapses_per_cell": round(n_synapses / n_cells, 3) if n_cells else 0.0,
            "roles": roles,
            "synapses_by_polarity": polarity,
        }

    def to_networkx(self, input_prefix: str = DEFAULT_INPUT_PREFIX) -> "nx.MultiDiGraph":
        """
        Convert the network to a NetworkX MultiDiGraph for export/analysis.

        Two cells may be joined by several synapses, so parallel edges are
        kept, keyed by synapse id.
        """
        G = nx.MultiDiGraph()
        for cell_id in canonical_order(self._cells):
            cell = self._cells[cell_id]
            G.add_node(
                cell_id,
                tag=cell.tag or "",
                role=classify_role(cell.tag, input_prefix).name,
                degree=cell.degree,
            )
        for syn_id in canonical_order(self._synapses):
            synapse = self._synapses[syn_id]
            G.add_edge(
                synapse.from_cell,
                synapse.to_cell,
                key=syn_id,
                synapse=syn_id,
                millivolts=float(synapse.millivolts),
            )
        return G

    def export_graphml(self, filepath: str) -> None:
        """
        Export the network to GraphML.

        GraphML preserves node and edge attributes, so the file opens in graph
        analysis tools such as Gephi or Cytoscape.
        """
        nx.write_graphml(self.to_networkx(), filepath)
