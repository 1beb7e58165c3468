"""nodeflow - node-based workflow orchestration engine."""

__version__ = "0.1.0"
