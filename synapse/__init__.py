"""
Synapse: adaptive study orchestration.

Decides what to study and when, from a knowledge graph and a learner's
review history:

- core: domain models, mastery model, XP ledger, graph validation
- delivery: SM-2 scheduler, daily review queue, state store, CLI
- adaptive: pedagogical orchestration engine, weak-node detection
- generation: item generation collaborators
- anki: study set export
- api: FastAPI service
"""

__version__ = "0.1.0"
