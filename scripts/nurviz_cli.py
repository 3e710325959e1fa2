#!/usr/bin/env python3
"""
nurviz CLI

Usage modes:
- Totals: load a network and print cell/synapse counts
- Integrity: report every dangling cell/synapse reference
- Walk: focus a cell and print the cells reachable within a depth
- Export: write GraphML, renderer elements, or a converted network file
- Utility: show version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List

from nurviz_core import (  # type: ignore
    ExplorerSession,
    IntegrityError,
    NurvizError,
    SessionConfig,
    dump_network,
    load_config,
    load_network_file,
    resolve_network_source,
)
from nurviz_core.codec import ON_DANGLING_EXCLUDE, ON_DANGLING_RAISE  # type: ignore
from nurviz_core.network import canonical_order  # type: ignore


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Inspect a .nur network: totals, integrity, path walks and exports",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")

    # Primary input
    p.add_argument("network", nargs="?", help="Path to a .nur or .json network (default: $NETWORK_FILE)")
    p.add_argument("--config", type=str, default="", help="YAML viewer configuration")
    p.add_argument("--exclude-dangling", action="store_true",
                   help="Drop synapses with missing cells instead of refusing the network")

    # Analysis
    p.add_argument("--totals", action="store_true", help="Print cell and synapse totals")
    p.add_argument("--integrity", action="store_true", help="Report dangling references")

    # Path walk
    p.add_argument("--focus", type=str, default=None, help="Cell id to walk from")
    p.add_argument("--depth", type=int, default=None, help="Maximum number of synapses walked")
    p.add_argument("--direction", type=str, default=None, help="forward/fwd, backward/back or both")

    # Export
    p.add_argument("--export-graphml", type=str, default="", help="Export the network to GraphML at given path")
    p.add_argument("--export-elements", type=str, default="", help="Write Cytoscape elements JSON at given path")
    p.add_argument("--convert", type=str, default="", help="Write the network back out as a .nur file")
    p.add_argument("--readable", action="store_true", help="With --convert, write indented JSON instead of gzip")

    return p.parse_args(argv)


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def run_integrity(path: str, on_dangling: str) -> int:
    """Print the integrity report; non-zero exit when anything dangles."""
    try:
        report = load_network_file(path, on_dangling=on_dangling).integrity
    except IntegrityError as exc:
        report = exc.report
    print(json.dumps({"ok": report.ok, "issues": report.issues(), "report": report.to_dict()}, indent=2))
    return 0 if report.ok else 1


def main(argv: List[str] | None = None) -> int:
    from nurviz_core import __version__ as nurviz_version  # type: ignore

    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(nurviz_version)
        return 0

    path = args.network or resolve_network_source()
    if not path:
        print("error: missing network path (or set NETWORK_FILE)", file=sys.stderr)
        return 2

    on_dangling = ON_DANGLING_EXCLUDE if args.exclude_dangling else ON_DANGLING_RAISE

    if args.integrity:
        try:
            return run_integrity(path, on_dangling)
        except (OSError, NurvizError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    try:
        cfg = load_config(args.config) if args.config else SessionConfig()
    except (OSError, NurvizError) as exc:
        print(f"error: bad config {args.config}: {exc}", file=sys.stderr)
        return 2

    logging.info("Loading network from %s", path)
    try:
        session = ExplorerSession.from_file(path, config=cfg, on_dangling=on_dangling)
    except (OSError, NurvizError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output: Dict[str, Any] = {}

    if args.totals:
        output["totals"] = session.network.totals(cfg.layout.input_tag_prefix)

    try:
        if args.depth is not None or args.direction is not None:
            session.set_parameters(max_depth=args.depth, direction=args.direction)
        if args.focus is not None:
            session.select_focus(args.focus)
    except NurvizError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.focus is not None:
        output["walk"] = {
            "focus": session.describe_focus(),
            "max_depth": session.max_depth,
            "direction": session.direction.value,
            "visited": canonical_order(session.visited),
            "total": len(session.network),
        }

    if args.export_graphml:
        logging.info("Exporting GraphML to %s", args.export_graphml)
        session.network.export_graphml(args.export_graphml)

    if args.export_elements:
        from viz.utils import build_cytoscape_elements  # type: ignore

        logging.info("Writing renderer elements to %s", args.export_elements)
        with open(args.export_elements, "w", encoding="utf-8") as f:
            json.dump(build_cytoscape_elements(session.graph), f, indent=2)

    if args.convert:
        logging.info("Writing network to %s", args.convert)
        with open(args.convert, "wb") as f:
            f.write(dump_network(session.network, compress=not args.readable))

    if not output and not (args.export_graphml or args.export_elements or args.convert):
        # Default to a minimal summary
        output["totals"] = session.network.totals(cfg.layout.input_tag_prefix)

    if output:
        print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
