"""Cluster-wide Cilium status aggregation and reporting."""

__version__ = "0.1.0"
