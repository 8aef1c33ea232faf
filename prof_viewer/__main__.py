"""
Headless demo of the viewer core.

Opens a random data source, expands a few entries, zooms with a simulated
drag and prints what each layout pass visits and fetches.

Usage:
    python -m prof_viewer --nodes 32 --viewport 600
"""

import argparse
import logging
import sys

from PyQt5.QtCore import QCoreApplication

from prof_viewer.config import ViewerConfig
from prof_viewer.data.entry import EntryID
from prof_viewer.data.random_source import RandomDataSource
from prof_viewer.session import ViewerSession
from prof_viewer.utils.error_handler import setup_logging

logger = logging.getLogger("prof_viewer.demo")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prof_viewer", description="Headless profile viewer demo")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--seed", type=int, default=0, help="Random data seed")
    parser.add_argument("--nodes", type=int, default=32, help="Number of nodes to generate")
    parser.add_argument("--procs", type=int, default=4, help="Processors per kind")
    parser.add_argument("--items", type=int, default=50, help="Items per row per tile")
    parser.add_argument("--viewport", type=float, default=600.0, help="Viewport height in pixels")
    parser.add_argument("--width", type=float, default=1000.0, help="Timeline width in pixels")
    parser.add_argument("--background", action="store_true", help="Fetch tiles on worker threads")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_pass(title: str, layout_pass, tile_cache):
    stats = tile_cache.get_cache_stats()
    print(f"\n{title}")
    print("-" * 80)
    print(f"  total height: {layout_pass.total_height:.1f}px, visited: {len(layout_pass.visits)}, "
          f"culled: {layout_pass.culled}, stopped early: {layout_pass.stopped_early}")
    for visit in layout_pass.visits:
        indent = "  " * visit.level
        tiles = f" tiles={len(visit.tiles)} pending={visit.pending_tiles}" if visit.tiles else ""
        print(f"  {indent}{visit.entry_id} {visit.kind.value} "
              f"[{visit.y_top:.0f}, {visit.y_bottom:.0f}){tiles}")
    print(f"  cache: {stats['cached_tiles']} tiles, {stats['cache_hits']} hits, "
          f"{stats['cache_misses']} misses, {stats['failures']} failures")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = ViewerConfig(args.config)
    if args.background:
        config.config['cache']['background_fetch'] = True
    setup_logging(logging.DEBUG if args.verbose else config.log_level(), args.log_file)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("prof-viewer")

    source = RandomDataSource(seed=args.seed, nodes=args.nodes, procs=args.procs,
                              items_per_row=args.items)
    session = ViewerSession(config)
    window = session.add_source(source)

    print("=" * 80)
    print("Profile Viewer Core Demo")
    print("=" * 80)
    print(f"  total interval: {session.controller.total_interval}")
    print(f"  nodes: {window.nodes()}, kinds: {', '.join(window.kinds())}")

    try:
        first = session.frame(0, args.viewport)[0]
        print_pass("Frame 1 (all collapsed)", first, window.tile_cache)

        # Expand the first node and its first kind; visible on the next frame
        node = EntryID.root().child(0)
        window.toggle_expanded(node)
        window.toggle_expanded(node.child(0))
        session.frame(0, args.viewport)
        window.tile_cache.wait_for_pending()
        second = session.frame(0, args.viewport)[0]
        print_pass("Frame 3 (node 0 and its first kind expanded)", second, window.tile_cache)

        # Drag-select the middle of the timeline
        session.controller.begin_drag(0.25 * args.width, args.width)
        session.controller.end_drag(0.75 * args.width, args.width)
        print(f"\n  zoomed to: {session.view_interval}")
        session.frame(0, args.viewport)
        window.tile_cache.wait_for_pending()
        third = session.frame(0, args.viewport)[0]
        print_pass("Frame 5 (after drag zoom)", third, window.tile_cache)
    finally:
        session.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
