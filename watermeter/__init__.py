"""Water meter simulator: flow model, rollover counter, supply outages and a periodic reading loop."""

__version__ = "0.1.0"
