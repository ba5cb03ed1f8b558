# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Editing session over a compose graph: the controller the canvas calls to
add, edit, connect and delete nodes, and to import or export documents.
"""
import logging
from typing import Any, Callable, Dict, Optional, Union

from ..CONVERTERS.to_compose import ComposeGenerator
from ..MODELS.errors import NodeNotFoundError
from ..MODELS.graph import NODE_CLASSES, ComposeGraph, Edge, Node, NodeType, Position
from ..MODELS.layout import LayoutConfig
from ..PARSERS.compose_parser import ComposeParser
from ..UTILS.yaml_io import dump_document, load_document_text, save_document_text
from ..VALIDATION.connection_rules import is_valid_connection

logger = logging.getLogger(__name__)

INITIAL_DATA: Dict[NodeType, Dict[str, Any]] = {
    NodeType.SERVICE: {"name": "new-service", "image": "nginx:latest", "environment": {}},
    NodeType.PORT: {"hostPort": 80, "containerPort": 80},
    NodeType.VOLUME: {"source": "./data", "target": "/data"},
    NodeType.NETWORK: {"name": "new-network"},
}


class GraphEditor:
    """
    Owns the current graph while it is being edited.

    Every mutation is a direct method call; after a mutation the optional
    ``on_change`` callback receives the updated graph.
    """

    def __init__(
        self,
        graph: Optional[ComposeGraph] = None,
        layout: Optional[LayoutConfig] = None,
        on_change: Optional[Callable[[ComposeGraph], None]] = None,
    ):
        """
        Initializes the editor.

        :param graph: Graph to start from; empty when omitted.
        :param layout: Placement settings for new and imported nodes.
        :param on_change: Callback invoked after each mutation.
        """
        self.graph = graph or ComposeGraph()
        self.layout = layout or LayoutConfig()
        self.on_change = on_change
        self.generator = ComposeGenerator()

    @property
    def nodes(self):
        return self.graph.nodes

    @property
    def edges(self):
        return self.graph.edges

    def add_node(self, node_type: Union[NodeType, str], position: Optional[Position] = None) -> Node:
        """
        Adds a node with the type's initial data.

        :param node_type: Kind of node to add.
        :param position: Where to place it; new nodes cascade from a base
            point per type when omitted.
        :return: The new node.
        """
        node_type = NodeType(node_type)
        if position is None:
            same_type = sum(1 for node in self.graph.nodes if node.type == node_type)
            position = self.layout.editor_position(node_type, same_type)

        node = NODE_CLASSES[node_type].model_validate({
            "id": self._next_node_id(node_type),
            "position": position,
            "data": INITIAL_DATA[node_type],
        })
        self.graph.nodes.append(node)
        logger.debug("Added %s node %s", node_type.value, node.id)
        self._changed()
        return node

    def update_node_data(self, node_id: str, data: Union[Dict[str, Any], Any]) -> Node:
        """
        Replaces the payload of a node.

        :param node_id: Node to edit.
        :param data: New payload, as a mapping or a payload model.
        :return: The updated node.
        :raises NodeNotFoundError: If no node has that id.
        """
        for position, node in enumerate(self.graph.nodes):
            if node.id == node_id:
                payload_cls = type(node).model_fields["data"].annotation
                if not isinstance(data, payload_cls):
                    data = payload_cls.model_validate(data)
                updated = node.model_copy(update={"data": data})
                self.graph.nodes[position] = updated
                logger.debug("Updated data of node %s", node_id)
                self._changed()
                return updated
        raise NodeNotFoundError(node_id)

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        """
        Sets the canvas position of a node.

        :raises NodeNotFoundError: If no node has that id.
        """
        for position, node in enumerate(self.graph.nodes):
            if node.id == node_id:
                updated = node.model_copy(update={"position": Position(x=x, y=y)})
                self.graph.nodes[position] = updated
                self._changed()
                return updated
        raise NodeNotFoundError(node_id)

    def connect(self, source: str, target: str, source_handle: str, target_handle: str) -> Optional[Edge]:
        """
        Creates an edge between two node handles if the connection is legal.

        :return: The new edge, or None when an endpoint is missing, the
            connection is rejected, or the same connection already exists.
        """
        index = self.graph.node_index()
        source_node = index.get(source)
        target_node = index.get(target)
        if source_node is None or target_node is None:
            return None

        if not is_valid_connection(source_node.type, target_node.type, source_handle, target_handle):
            logger.debug("Rejected connection %s/%s -> %s/%s", source, source_handle, target, target_handle)
            return None

        source_handle = getattr(source_handle, "value", source_handle)
        target_handle = getattr(target_handle, "value", target_handle)
        for edge in self.graph.edges:
            if (edge.source, edge.source_handle, edge.target, edge.target_handle) == \
                    (source, source_handle, target, target_handle):
                return None

        edge = Edge(
            id=f"edge-{source}{source_handle}-{target}{target_handle}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.graph.edges.append(edge)
        logger.debug("Connected %s", edge.id)
        self._changed()
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """
        Removes an edge.

        :return: True if an edge was removed.
        """
        remaining = [edge for edge in self.graph.edges if edge.id != edge_id]
        if len(remaining) == len(self.graph.edges):
            return False
        self.graph.edges = remaining
        self._changed()
        return True

    def delete_node(self, node_id: str) -> bool:
        """
        Removes a node together with every edge that references it.

        :return: True if a node was removed.
        """
        remaining = [node for node in self.graph.nodes if node.id != node_id]
        if len(remaining) == len(self.graph.nodes):
            return False
        self.graph.nodes = remaining
        self.graph.edges = [
            edge for edge in self.graph.edges
            if edge.source != node_id and edge.target != node_id
        ]
        logger.debug("Deleted node %s", node_id)
        self._changed()
        return True

    def load_document(self, document: Any, resolve_forward_dependencies: bool = False) -> ComposeGraph:
        """
        Replaces the current graph with one unfolded from a compose document.
        The current graph is kept if the document is malformed.

        :raises MalformedDocumentError: If the document cannot be imported.
        """
        parser = ComposeParser(self.layout, resolve_forward_dependencies=resolve_forward_dependencies)
        self.graph = parser.parse_document(document)
        self._changed()
        return self.graph

    def load_text(self, content: Union[bytes, str], resolve_forward_dependencies: bool = False) -> ComposeGraph:
        """
        Replaces the current graph with one parsed from uploaded YAML.

        :raises MalformedDocumentError: If the text cannot be imported.
        """
        parser = ComposeParser(self.layout, resolve_forward_dependencies=resolve_forward_dependencies)
        self.graph = parser.parse_from_string(load_document_text(content))
        self._changed()
        return self.graph

    def export_document(self) -> Dict[str, Any]:
        return self.generator.generate_dict(self.graph.nodes, self.graph.edges)

    def export_yaml(self) -> str:
        return dump_document(self.export_document())

    def save(self, directory: str = ".") -> str:
        """
        Writes the generated document as ``docker-compose.yml``.

        :param directory: Target directory.
        :return: Path of the written file.
        """
        return save_document_text(self.export_yaml(), directory)

    def _next_node_id(self, node_type: NodeType) -> str:
        taken = {node.id for node in self.graph.nodes}
        n = len(self.graph.nodes) + 1
        while f"{node_type.value}-{n}" in taken:
            n += 1
        return f"{node_type.value}-{n}"

    def _changed(self):
        if self.on_change is not None:
            self.on_change(self.graph)
