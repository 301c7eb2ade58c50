"""depgraph: line-range impact analysis for Swift projects."""

__version__ = "0.3.0"
