"""
Entry point for running Synapse as a module.

Usage:
    python -m synapse.delivery queue <graph-id>
    python -m synapse.delivery progress <graph-id>
    python -m synapse.delivery --help
"""
from .cli import main

if __name__ == "__main__":
    main()
