"""
Layout refinement: a thin controller over a force-directed layout engine.

The controller validates refinement options and forwards them to the engine;
it never interprets them. It owns the run loop: with ``worker`` enabled the
engine runs batches on a background thread until stopped, otherwise the host
drives one batch per render by calling `LayoutRefinementController.tick`.

The engine writes node positions only, through
`VisualGraph.update_positions`; visibility, colors and sizes are never
touched, so refinement can run alongside path exploration.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Union

import networkx as nx
import numpy as np

from .config import RefinementOptions
from .view import VisualGraph

logger = logging.getLogger(__name__)


class RefinementEngine(ABC):
    """Black-box iterative layout refiner."""

    @abstractmethod
    def configure(self, options: RefinementOptions) -> None:
        ...

    @abstractmethod
    def step(self, graph: VisualGraph) -> None:
        """Run one batch of iterations and write the new positions into ``graph``."""
        ...


class ForceAtlas2Engine(RefinementEngine):
    """
    ForceAtlas2 refinement backed by `networkx.forceatlas2_layout`.

    Each batch runs ``iterations_per_render`` iterations starting from the
    graph's current positions. Synapses become undirected attraction springs;
    with ``edge_weight_influence`` > 0 a synapse pulls with
    ``|millivolts| ** edge_weight_influence``.
    """

    def __init__(self, options: Optional[RefinementOptions] = None):
        self.options = options or RefinementOptions()

    def configure(self, options: RefinementOptions) -> None:
        self.options = options

    def _to_networkx(self, graph: VisualGraph, positions) -> nx.Graph:
        G = nx.Graph()
        G.add_nodes_from(positions)
        influence = self.options.edge_weight_influence
        for edge in graph.edges.values():
            if edge.source == edge.target:
                continue
            w = abs(edge.millivolts) ** influence if influence > 0 else 1.0
            if G.has_edge(edge.source, edge.target):
                G[edge.source][edge.target]["weight"] += w
            else:
                G.add_edge(edge.source, edge.target, weight=w)
        return G

    def step(self, graph: VisualGraph) -> None:
        positions = graph.positions()
        if not positions:
            return
        opts = self.options
        G = self._to_networkx(graph, positions)
        kwargs: dict = dict(
            max_iter=opts.iterations_per_render,
            gravity=float(opts.gravity),
            scaling_ratio=float(opts.scaling_ratio),
            linlog=opts.lin_log_mode,
            dissuade_hubs=opts.outbound_attraction_distribution,
            seed=opts.seed,
        )
        if opts.edge_weight_influence > 0:
            kwargs["weight"] = "weight"
        if opts.adjust_sizes:
            kwargs["node_size"] = {nid: float(node.size) for nid, node in graph.nodes.items()}

        pos = {nid: np.array(xy, dtype=float) for nid, xy in positions.items()}
        new_pos = nx.forceatlas2_layout(G, pos=pos, **kwargs)
        graph.update_positions({nid: (float(p[0]), float(p[1])) for nid, p in new_pos.items()})


class LayoutRefinementController:
    """
    Start/stop/configure façade over a `RefinementEngine`.

    Attributes:
        graph: Visual graph whose positions are refined
        engine: The refinement engine receiving options and batches
        options: Options last accepted by `configure`
        batches: Number of batches run since construction
        error: Exception that ended the background worker, if any
    """

    def __init__(
        self,
        graph: VisualGraph,
        engine: Optional[RefinementEngine] = None,
        options: Union[RefinementOptions, Mapping[str, Any], None] = None,
        on_batch: Optional[Callable[[], None]] = None,
        worker_interval: float = 0.01,
    ):
        self.graph = graph
        self.engine = engine or ForceAtlas2Engine()
        self.on_batch = on_batch
        self.worker_interval = worker_interval
        self.batches = 0
        self.error: Optional[BaseException] = None
        self._running = False
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._worker_mode = False
        self.options = RefinementOptions()
        self.configure(options if options is not None else self.options)

    @property
    def running(self) -> bool:
        return self._running

    def configure(self, options: Union[RefinementOptions, Mapping[str, Any]]) -> RefinementOptions:
        """
        Validate options and forward them to the engine.

        A change of ``worker`` takes effect on the next `start`.

        Raises:
            InvalidParameterError: For unknown keys or badly typed values
        """
        opts = RefinementOptions.from_mapping(options)
        opts.validate()
        self.options = opts
        self.engine.configure(opts)
        return opts

    def start(self) -> bool:
        """
        Start refining.

        On a running refinement this is a no-op, unless ``restart_on_start`` is
        set, in which case the refinement is stopped and started again.

        Returns:
            True if a new run was started
        """
        if self._running:
            if not self.options.restart_on_start:
                return False
            self.stop()

        self.error = None
        self._stop_event = threading.Event()
        self._running = True
        self._worker_mode = self.options.worker
        if self._worker_mode:
            self._worker = threading.Thread(
                target=self._run_worker,
                args=(self._stop_event,),
                name="nurviz-refinement",
                daemon=True,
            )
            self._worker.start()
        logger.info("Layout refinement started (worker=%s)", self.options.worker)
        return True

    def stop(self, timeout: float = 0.5) -> None:
        """
        Stop refining; safe to call when not running.

        The worker is signalled and given ``timeout`` seconds to finish its
        current batch; it is not waited on beyond that.
        """
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        worker, self._worker = self._worker, None
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        logger.info("Layout refinement stopped after %d batches", self.batches)

    def tick(self) -> bool:
        """
        Run one batch when refining without a background worker.

        Whether a worker runs is fixed by the options in effect at `start`.

        Returns:
            True if a batch ran
        """
        if not self._running or self._worker_mode:
            return False
        self._run_batch()
        return True

    def _run_batch(self) -> None:
        self.engine.step(self.graph)
        self.batches += 1
        if self.on_batch is not None:
            self.on_batch()

    def _run_worker(self, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                self._run_batch()
                stop_event.wait(self.worker_interval)
        except Exception as exc:
            logger.exception("Layout refinement worker failed")
            self.error = exc
            self._running = False
