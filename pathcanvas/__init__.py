"""Interactive shortest-path canvas: graph store, cost model and Dijkstra engine."""

__version__ = "0.1.0"
