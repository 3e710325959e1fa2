"""
Network file codec.

This is the only place the network file format is interpreted. A network file
is a gzip stream (``.nur``) or plain text (``.json``) holding a UTF-8 JSON
document of the form::

    {
      "Cells": {
        "1": {"ID": 1, "Tag": "in-a", "AxonSynapses": {"7": true}, "DendriteSynapses": {}},
        "2": {"ID": 2, "AxonSynapses": {}, "DendriteSynapses": {"7": true}}
      },
      "Synapses": {
        "7": {"ID": 7, "FromNeuronAxon": 1, "ToNeuronDendrite": 2, "Millivolts": 5}
      }
    }

Notes:
- The network writer emits integer ids; every id is normalized to a string.
- Synapse id collections may be mappings (ids are the keys) or lists.
- Extra fields written by the trainer (``Voltage``, ``ActivationHistory``, ...)
  are ignored.
- Dangling references are reported through `IntegrityReport`; by default they
  abort the load with `IntegrityError`.
"""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import DecodeError, IntegrityError, InvalidParameterError, ParseError
from .network import Cell, IntegrityReport, Network, Synapse, canonical_order, check_integrity

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

ON_DANGLING_RAISE = "raise"
ON_DANGLING_EXCLUDE = "exclude"


def _coerce_id(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)):
        return str(value)
    return value


def _coerce_id_set(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [_coerce_id(k) for k in value.keys()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce_id(v) for v in value]
    return value


class CellRecord(BaseModel):
    """One entry of the ``Cells`` mapping as written on disk."""

    model_config = ConfigDict(extra="ignore")

    ID: Optional[str] = None
    Tag: Optional[str] = None
    AxonSynapses: FrozenSet[str] = frozenset()
    DendriteSynapses: FrozenSet[str] = frozenset()

    @field_validator("ID", mode="before")
    @classmethod
    def normalize_id(cls, v):
        return _coerce_id(v)

    @field_validator("AxonSynapses", "DendriteSynapses", mode="before")
    @classmethod
    def normalize_synapse_ids(cls, v):
        return _coerce_id_set(v)


class SynapseRecord(BaseModel):
    """One entry of the ``Synapses`` mapping as written on disk."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    ID: Optional[str] = None
    FromNeuronAxon: str
    ToNeuronDendrite: str
    Millivolts: float = 0.0

    @field_validator("ID", "FromNeuronAxon", "ToNeuronDendrite", mode="before")
    @classmethod
    def normalize_ids(cls, v):
        return _coerce_id(v)


class NetworkPayload(BaseModel):
    """The decoded document: cells and synapses keyed by id."""

    model_config = ConfigDict(extra="ignore")

    Cells: Dict[str, CellRecord]
    Synapses: Dict[str, SynapseRecord]

    @field_validator("Cells", "Synapses", mode="before")
    @classmethod
    def null_is_empty(cls, v):
        return {} if v is None else v


def decode_container(data: bytes) -> bytes:
    """
    Strip the compression layer, if any.

    Gzip streams are decompressed; anything else is taken to be the raw JSON
    document already.

    Raises:
        DecodeError: If a gzip stream is malformed or truncated
    """
    if not data.startswith(GZIP_MAGIC):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"malformed gzip stream: {exc}") from exc


def parse_payload(raw: Union[bytes, str]) -> NetworkPayload:
    """
    Parse a decompressed document into validated records.

    Raises:
        ParseError: If the text is not UTF-8, not JSON, or not shaped like a network
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"payload is not valid UTF-8: {exc}") from exc
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"payload is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise ParseError(f"expected a JSON object at top level, got {type(doc).__name__}")
    try:
        return NetworkPayload.model_validate(doc)
    except ValidationError as exc:
        raise ParseError(f"payload does not describe a network: {exc}") from exc


def payload_to_entities(
    payload: NetworkPayload,
) -> Tuple[Dict[str, Cell], Dict[str, Synapse]]:
    """
    Convert wire records to model objects.

    Raises:
        ParseError: If an entry's ``ID`` disagrees with its key
    """
    cells: Dict[str, Cell] = {}
    for key, rec in payload.Cells.items():
        if rec.ID is not None and rec.ID != key:
            raise ParseError(f"cell keyed {key!r} has ID {rec.ID!r}")
        cells[key] = Cell(
            id=key,
            tag=rec.Tag or None,
            axon_synapses=frozenset(rec.AxonSynapses),
            dendrite_synapses=frozenset(rec.DendriteSynapses),
        )

    synapses: Dict[str, Synapse] = {}
    for key, rec in payload.Synapses.items():
        if rec.ID is not None and rec.ID != key:
            raise ParseError(f"synapse keyed {key!r} has ID {rec.ID!r}")
        synapses[key] = Synapse(
            id=key,
            from_cell=rec.FromNeuronAxon,
            to_cell=rec.ToNeuronDendrite,
            millivolts=rec.Millivolts,
        )
    return cells, synapses


def exclude_dangling(
    cells: Dict[str, Cell], synapses: Dict[str, Synapse], report: IntegrityReport
) -> Tuple[Dict[str, Cell], Dict[str, Synapse]]:
    """
    Drop only the entities named in ``report``.

    Synapses with a missing endpoint are removed, then every cell forgets the
    synapse ids that no longer exist. Cells themselves are always kept.
    """
    kept_synapses = {
        sid: s for sid, s in synapses.items() if sid not in report.offending_synapse_ids
    }
    kept_cells: Dict[str, Cell] = {}
    for cid, cell in cells.items():
        axon = frozenset(s for s in cell.axon_synapses if s in kept_synapses)
        dendrite = frozenset(s for s in cell.dendrite_synapses if s in kept_synapses)
        if axon != cell.axon_synapses or dendrite != cell.dendrite_synapses:
            cell = Cell(id=cell.id, tag=cell.tag, axon_synapses=axon, dendrite_synapses=dendrite)
        kept_cells[cid] = cell
    return kept_cells, kept_synapses


def load_network(data: bytes, on_dangling: str = ON_DANGLING_RAISE) -> Network:
    """
    Decode, parse and validate a network file's bytes.

    Args:
        data: Raw file contents (gzip-compressed or plain JSON)
        on_dangling: ``"raise"`` to refuse networks with dangling references,
            ``"exclude"`` to drop the affected synapses and keep the rest

    Returns:
        Network: The loaded, read-only network

    Raises:
        DecodeError: Bad compression framing
        ParseError: Invalid UTF-8/JSON or unexpected document shape
        IntegrityError: Dangling references with ``on_dangling="raise"``
        InvalidParameterError: Unknown ``on_dangling`` policy
    """
    if on_dangling not in (ON_DANGLING_RAISE, ON_DANGLING_EXCLUDE):
        raise InvalidParameterError("on_dangling", on_dangling, "expected 'raise' or 'exclude'")

    payload = parse_payload(decode_container(data))
    cells, synapses = payload_to_entities(payload)

    report = check_integrity(cells, synapses)
    if not report.ok:
        if on_dangling == ON_DANGLING_RAISE:
            raise IntegrityError(report)
        logger.warning(
            "Excluding dangling references: synapses=%s cells=%s",
            canonical_order(report.offending_synapse_ids | report.missing_synapse_ids),
            canonical_order(report.offending_cell_ids),
        )
        cells, synapses = exclude_dangling(cells, synapses, report)

    network = Network(cells, synapses, integrity=report)
    logger.info("Loaded network: %d cells, %d synapses", len(cells), len(synapses))
    return network


def load_network_file(filepath: str, on_dangling: str = ON_DANGLING_RAISE) -> Network:
    """Read a ``.nur`` or ``.json`` network file and load it."""
    logger.info("Reading network from %s", filepath)
    with open(filepath, "rb") as f:
        data = f.read()
    return load_network(data, on_dangling=on_dangling)


def network_to_document(network: Network) -> Dict[str, Any]:
    """Plain document for ``network`` in the on-disk shape, in canonical id order."""
    cells = {}
    for cid in canonical_order(network.cells):
        cell = network.cells[cid]
        entry: Dict[str, Any] = {"ID": cid}
        if cell.tag:
            entry["Tag"] = cell.tag
        entry["AxonSynapses"] = {s: True for s in canonical_order(cell.axon_synapses)}
        entry["DendriteSynapses"] = {s: True for s in canonical_order(cell.dendrite_synapses)}
        cells[cid] = entry

    synapses = {}
    for sid in canonical_order(network.synapses):
        synapse = network.synapses[sid]
        millivolts = synapse.millivolts
        if float(millivolts).is_integer():
            millivolts = int(millivolts)
        synapses[sid] = {
            "ID": sid,
            "FromNeuronAxon": synapse.from_cell,
            "ToNeuronDendrite": synapse.to_cell,
            "Millivolts": millivolts,
        }
    return {"Cells": cells, "Synapses": synapses}


def dump_network(network: Network, compress: bool = True) -> bytes:
    """
    Serialize ``network`` to file bytes.

    With ``compress`` the JSON is gzipped at best compression with a zero
    timestamp, so equal networks produce equal bytes; otherwise the JSON is
    indented for reading.
    """
    doc = network_to_document(network)
    if compress:
        body = json.dumps(doc, separators=(",", ":")).encode("utf-8")
        return gzip.compress(body, compresslevel=9, mtime=0)
    return json.dumps(doc, indent=2).encode("utf-8")
