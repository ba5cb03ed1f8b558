"""
Exceptions raised by the graph/document engine.
"""


class ComposeFlowError(Exception):
    """
    Base class for all errors raised by composeflow.
    """


class MalformedDocumentError(ComposeFlowError, ValueError):
    """
    Raised when a compose document cannot be turned into a graph at all:
    it is not a mapping, has no ``services`` mapping, or is not valid YAML.
    """


class NodeNotFoundError(ComposeFlowError, KeyError):
    """
    Raised when an editor operation names a node id that is not in the graph.
    """

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node {self.node_id!r} not found"
