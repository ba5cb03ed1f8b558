"""
Models for the editor graph: typed nodes, handle-qualified edges and the
graph that holds them.
"""
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """
    The four kinds of node that can be placed on the canvas.
    """
    SERVICE = "service"
    PORT = "port"
    VOLUME = "volume"
    NETWORK = "network"


class Handle(str, Enum):
    """
    Named attachment points on a node.
    """
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class EdgeKind(str, Enum):
    """
    How a legal edge is interpreted when the document is generated.
    """
    DEPENDENCY = "dependency"  # service -> service, target depends on source
    ATTACHMENT = "attachment"  # port/volume/network -> owning service


# Handles each node type exposes. The top handle of attachment nodes is
# rendered but never accepts an inbound connection.
NODE_HANDLES: Dict[NodeType, Tuple[Handle, ...]] = {
    NodeType.SERVICE: (Handle.TOP, Handle.BOTTOM, Handle.LEFT, Handle.RIGHT),
    NodeType.PORT: (Handle.TOP, Handle.RIGHT),
    NodeType.VOLUME: (Handle.TOP, Handle.RIGHT),
    NodeType.NETWORK: (Handle.TOP, Handle.RIGHT),
}

ATTACHMENT_TYPES = (NodeType.PORT, NodeType.VOLUME, NodeType.NETWORK)


class VolumeMode(str, Enum):
    """
    Access mode of a volume mount.
    """
    RW = "rw"
    RO = "ro"


class Position(BaseModel):
    """
    Canvas coordinates of a node.
    """
    x: float = 0.0
    y: float = 0.0


class ServiceData(BaseModel):
    """
    Payload of a service node.
    """
    name: str
    image: str
    environment: Dict[str, str] = {}


class PortData(BaseModel):
    """
    Payload of a port node. Port numbers may be NaN after a lenient import.
    """
    model_config = ConfigDict(populate_by_name=True)

    host_port: Union[int, float] = Field(alias="hostPort")
    container_port: Union[int, float] = Field(alias="containerPort")
    protocol: Optional[str] = None


class VolumeData(BaseModel):
    """
    Payload of a volume node. ``source`` is a host path or a named volume.
    """
    source: str
    target: str
    mode: Optional[VolumeMode] = None

    @property
    def effective_mode(self) -> VolumeMode:
        return self.mode or VolumeMode.RW


class NetworkData(BaseModel):
    """
    Payload of a network node.
    """
    name: str
    driver: Optional[str] = None


class _NodeBase(BaseModel):
    id: str
    position: Position = Field(default_factory=Position)


class ServiceNode(_NodeBase):
    type: Literal["service"] = "service"
    data: ServiceData


class PortNode(_NodeBase):
    type: Literal["port"] = "port"
    data: PortData


class VolumeNode(_NodeBase):
    type: Literal["volume"] = "volume"
    data: VolumeData


class NetworkNode(_NodeBase):
    type: Literal["network"] = "network"
    data: NetworkData


Node = Annotated[
    Union[ServiceNode, PortNode, VolumeNode, NetworkNode],
    Field(discriminator="type"),
]

NODE_CLASSES = {
    NodeType.SERVICE: ServiceNode,
    NodeType.PORT: PortNode,
    NodeType.VOLUME: VolumeNode,
    NodeType.NETWORK: NetworkNode,
}


class Edge(BaseModel):
    """
    A directed connection between two node handles.

    Handles are kept as plain strings so that edges coming from the canvas
    with missing or unknown handles still load; they are simply ignored when
    the document is generated.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")


class ComposeGraph(BaseModel):
    """
    Snapshot of the canvas: the nodes and the edges between them.
    """
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def node_index(self) -> Dict[str, Node]:
        """
        Maps node ids to nodes. If an id repeats, the first node wins.
        """
        index: Dict[str, Node] = {}
        for node in self.nodes:
            index.setdefault(node.id, node)
        return index

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.node_index().get(node_id)

    def to_canvas(self) -> dict:
        """
        Returns the camelCase JSON-ready structure the canvas works with.
        """
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_canvas(cls, data: dict) -> "ComposeGraph":
        return cls.model_validate(data)


def coerce_enum(enum_cls, value):
    """
    Returns ``enum_cls(value)``, or None when the value is not a member.
    """
    try:
        return enum_cls(value)
    except ValueError:
        return None


def classify_edge(source_type, target_type, source_handle, target_handle) -> Optional[EdgeKind]:
    """
    Classifies a connection by its endpoint types and handles.

    Only two shapes carry meaning: service -> service from ``bottom`` to
    ``top`` (a dependency) and port/volume/network -> service from ``right``
    to ``left`` (an attachment). Every other combination returns None.
    """
    source_type = coerce_enum(NodeType, source_type)
    target_type = coerce_enum(NodeType, target_type)
    source_handle = coerce_enum(Handle, source_handle)
    target_handle = coerce_enum(Handle, target_handle)

    if target_type != NodeType.SERVICE:
        return None
    if source_type == NodeType.SERVICE:
        if source_handle == Handle.BOTTOM and target_handle == Handle.TOP:
            return EdgeKind.DEPENDENCY
        return None
    if source_type in ATTACHMENT_TYPES:
        if source_handle == Handle.RIGHT and target_handle == Handle.LEFT:
            return EdgeKind.ATTACHMENT
    return None
