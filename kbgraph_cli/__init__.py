"""kbgraph CLI: dependency, impact, and health analysis for Kibana saved objects."""

__version__ = "0.1.0"
