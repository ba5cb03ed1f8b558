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
Converter folding an editor graph into a docker-compose document.
"""
import logging
import math
from typing import Any, Dict, Iterable, Optional

from ..MODELS.compose_document import ComposeDocument, ComposeService, NamedVolumeConfig, NetworkConfig
from ..MODELS.graph import (
    ComposeGraph,
    Edge,
    EdgeKind,
    NetworkNode,
    Node,
    NodeType,
    PortNode,
    VolumeNode,
    classify_edge,
)
from ..UTILS.yaml_io import dump_document

logger = logging.getLogger(__name__)

VOLUME_ID_PREFIX = "volume-"
VOLUME_NAME_PREFIX = "volume_"


def format_port(node: PortNode) -> str:
    """
    Formats a port node as ``host:container[/protocol]``.
    """
    data = node.data
    mapping = f"{_format_number(data.host_port)}:{_format_number(data.container_port)}"
    if data.protocol:
        mapping += f"/{data.protocol}"
    return mapping


def volume_name_for(node: VolumeNode) -> str:
    """
    Named volume synthesized for a volume node. The name embeds the node id,
    so distinct volume nodes never share a top-level entry.
    """
    return VOLUME_NAME_PREFIX + node.id.replace(VOLUME_ID_PREFIX, "", 1)


def _format_number(value) -> str:
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ComposeGenerator:
    """
    Builds a compose document from the nodes and edges of the canvas.

    Generation never fails: edges with missing endpoints or with a shape
    other than a dependency or an attachment are skipped.
    """

    def generate(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> ComposeDocument:
        """
        Folds a graph into a compose document.

        :param nodes: Canvas nodes. Services sharing a name collapse into one
            entry; the last one in iteration order wins.
        :param edges: Canvas edges, processed in order.
        :return: The generated document.
        """
        nodes = list(nodes)
        index: Dict[str, Node] = {}
        for node in nodes:
            index.setdefault(node.id, node)

        document = ComposeDocument()
        for node in nodes:
            if node.type == NodeType.SERVICE:
                document.services[node.data.name] = ComposeService(
                    image=node.data.image,
                    environment=dict(node.data.environment),
                )

        for edge in edges:
            source = index.get(edge.source)
            target = index.get(edge.target)
            if source is None or target is None:
                logger.debug("Skipping edge %s: dangling endpoint", edge.id)
                continue

            kind = classify_edge(source.type, target.type, edge.source_handle, edge.target_handle)
            if kind is None:
                logger.debug("Skipping edge %s: %s/%s -> %s/%s is not a known connection",
                             edge.id, source.type, edge.source_handle, target.type, edge.target_handle)
                continue

            service = document.services[target.data.name]
            if kind == EdgeKind.DEPENDENCY:
                service.depends_on.append(source.data.name)
            elif source.type == NodeType.PORT:
                service.ports.append(format_port(source))
            elif source.type == NodeType.VOLUME:
                self._attach_volume(document, service, source)
            elif source.type == NodeType.NETWORK:
                self._attach_network(document, service, source)

        return document

    def generate_dict(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> Dict[str, Any]:
        return self.generate(nodes, edges).to_dict()

    def generate_yaml(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> str:
        """
        Folds a graph into compose YAML text.
        """
        return dump_document(self.generate_dict(nodes, edges))

    def _attach_volume(self, document: ComposeDocument, service: ComposeService, node: VolumeNode):
        name = volume_name_for(node)
        mapping = f"{name}:{node.data.target}"
        if node.data.mode:
            mapping += f":{node.data.mode.value}"
        service.volumes.append(mapping)
        document.volumes[name] = NamedVolumeConfig.bind(node.data.source)

    def _attach_network(self, document: ComposeDocument, service: ComposeService, node: NetworkNode):
        service.networks.append(node.data.name)
        document.networks[node.data.name] = NetworkConfig(driver=node.data.driver or "bridge")


def graph_to_document(nodes: Iterable[Node], edges: Iterable[Edge]) -> Dict[str, Any]:
    """
    Folds a graph into a compose document mapping.
    """
    return ComposeGenerator().generate_dict(nodes, edges)


def graph_to_yaml(graph: ComposeGraph, generator: Optional[ComposeGenerator] = None) -> str:
    """
    Serializes a whole graph snapshot as compose YAML.
    """
    generator = generator or ComposeGenerator()
    return generator.generate_yaml(graph.nodes, graph.edges)
