"""Exceptions raised at the edges of the system (import, lookup, export)."""


class SynapseError(Exception):
    """Base class for all Synapse errors."""


class GraphValidationError(SynapseError):
    """Raised when an imported knowledge graph is structurally invalid."""

    def __init__(self, message: str, node_ids: list[str] | None = None):
        super().__init__(message)
        self.node_ids = node_ids or []


class GraphNotFoundError(SynapseError, KeyError):
    """Raised when no graph is stored under the requested id."""

    def __init__(self, graph_id: str):
        super().__init__(f"Graph not found: {graph_id}")
        self.graph_id = graph_id

    def __str__(self) -> str:
        return self.args[0]


class ItemNotFoundError(SynapseError, KeyError):
    """Raised when a study item id is unknown for a graph."""

    def __init__(self, graph_id: str, item_id: str):
        super().__init__(f"Item not found: {item_id} (graph {graph_id})")
        self.graph_id = graph_id
        self.item_id = item_id

    def __str__(self) -> str:
        return self.args[0]


class ExportFormatError(SynapseError, ValueError):
    """Raised when an exported study set cannot be read back."""
