"""Node-graph image processing: image operations, processing nodes and the graph that links them."""

__version__ = "0.1.0"
__all__ = ["imaging", "nodes", "graph"]