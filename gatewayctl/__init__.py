"""Status conditions, reconciliation helpers, xDS route building and a snapshot cache for a gateway control plane."""

__version__ = "0.1.0"