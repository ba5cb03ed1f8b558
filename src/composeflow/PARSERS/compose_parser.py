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
Parsers turning Docker Compose documents into editor graphs.
"""
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from ..MODELS.errors import MalformedDocumentError
from ..MODELS.graph import (
    ComposeGraph,
    Edge,
    Handle,
    NetworkData,
    NetworkNode,
    Position,
    PortNode,
    ServiceData,
    ServiceNode,
    VolumeData,
    VolumeNode,
)
from ..MODELS.layout import LayoutConfig
from ..UTILS.yaml_io import load_document_text
from .env_parser import EnvParser
from .short_syntax import is_path_volume, parse_port, parse_volume

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "latest"


class ComposeParser:
    """
    Parser for docker-compose.yml files, producing a node/edge graph with
    deterministic ids and positions.
    """
    def __init__(self, layout: Optional[LayoutConfig] = None, resolve_forward_dependencies: bool = False):
        """
        Initializes the parser.

        :param layout: Placement settings for the generated nodes.
        :param resolve_forward_dependencies: Wire ``depends_on`` entries in a
            second pass, after every service node exists. By default the
            document is read in a single pass and a dependency on a service
            listed later produces no edge.
        """
        self.layout = layout or LayoutConfig()
        self.resolve_forward_dependencies = resolve_forward_dependencies

    def parse(self, compose_path: str) -> ComposeGraph:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed graph.
        """
        with open(compose_path, 'rb') as f:
            content = f.read()
        return self.parse_from_string(load_document_text(content))

    def parse_from_string(self, content: str) -> ComposeGraph:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed graph.
        :raises MalformedDocumentError: If the YAML is invalid or the document
            has no ``services`` mapping.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise MalformedDocumentError(f"Invalid YAML: {e}") from e
        return self.parse_document(data)

    def parse_document(self, document: Any) -> ComposeGraph:
        """
        Unfolds an already loaded compose document into a graph.

        :param document: The document mapping.
        :return: Parsed graph.
        :raises MalformedDocumentError: If the document is not a mapping or
            lacks a ``services`` mapping.
        """
        if not isinstance(document, dict):
            raise MalformedDocumentError("Compose document must be a mapping")
        services = document.get('services')
        if not isinstance(services, dict):
            raise MalformedDocumentError("Compose document has no services section")

        builder = _GraphBuilder(document, self.layout)
        pending: List[Tuple[str, Any]] = []
        for index, (name, spec) in enumerate(services.items()):
            if not isinstance(spec, dict):
                spec = {}
            service_id = builder.add_service(index, str(name), spec)
            builder.add_ports(index, service_id, spec.get('ports'))
            builder.add_volumes(index, service_id, spec.get('volumes'))
            builder.add_networks(index, service_id, spec.get('networks'))
            if self.resolve_forward_dependencies:
                pending.append((service_id, spec.get('depends_on')))
            else:
                builder.add_dependencies(service_id, spec.get('depends_on'))

        for service_id, depends_on in pending:
            builder.add_dependencies(service_id, depends_on)

        return builder.graph()


class _GraphBuilder:
    """
    Accumulates nodes and edges while a document is read.
    """
    def __init__(self, document: Dict[str, Any], layout: LayoutConfig):
        self.layout = layout
        self.top_volumes = _as_mapping(document.get('volumes'))
        self.top_networks = _as_mapping(document.get('networks'))
        self.nodes: list = []
        self.edges: List[Edge] = []
        self._edge_ids: Set[str] = set()
        self._services: Dict[str, ServiceNode] = {}
        self._networks: Dict[str, NetworkNode] = {}

    def graph(self) -> ComposeGraph:
        return ComposeGraph(nodes=self.nodes, edges=self.edges)

    def add_service(self, index: int, name: str, spec: Dict[str, Any]) -> str:
        image = spec.get('image')
        node = ServiceNode(
            id=f"service-{index + 1}",
            position=self.layout.service_position(index),
            data=ServiceData(
                name=name,
                image=str(image) if image else DEFAULT_IMAGE,
                environment=EnvParser.parse(spec.get('environment')),
            ),
        )
        self.nodes.append(node)
        self._services.setdefault(name, node)
        return node.id

    def add_ports(self, index: int, service_id: str, ports: Any):
        if not isinstance(ports, list):
            return
        origin = self._position_of(service_id)
        for port_index, entry in enumerate(ports):
            data = parse_port(entry)
            if data is None:
                logger.debug("Dropping port entry %r of %s", entry, service_id)
                continue
            node = PortNode(
                id=f"port-{index + 1}-{port_index + 1}",
                position=self.layout.attachment_position(origin, port_index),
                data=data,
            )
            self.nodes.append(node)
            self._attach(node.id, service_id)

    def add_volumes(self, index: int, service_id: str, volumes: Any):
        if not isinstance(volumes, list):
            return
        origin = self._position_of(service_id)
        for volume_index, entry in enumerate(volumes):
            data = parse_volume(entry)
            if data is None:
                logger.debug("Dropping volume entry %r of %s", entry, service_id)
                continue
            if is_path_volume(data.source):
                logger.debug("Path volume %s of %s has no graph node", data.source, service_id)
                continue
            data = self._resolve_bind_device(data)
            node = VolumeNode(
                id=f"volume-{index + 1}-{volume_index + 1}",
                position=self.layout.attachment_position(
                    origin, self.layout.volume_row_offset + volume_index),
                data=data,
            )
            self.nodes.append(node)
            self._attach(node.id, service_id)

    def add_networks(self, index: int, service_id: str, networks: Any):
        origin = self._position_of(service_id)
        for network_index, name in enumerate(_names(networks)):
            node = self._networks.get(name)
            if node is None:
                node = NetworkNode(
                    id=f"network-{index + 1}-{network_index + 1}",
                    position=self.layout.attachment_position(
                        origin, self.layout.network_row_offset + network_index),
                    data=NetworkData(name=name, driver=self._network_driver(name)),
                )
                self.nodes.append(node)
                self._networks[name] = node
            self._attach(node.id, service_id)

    def add_dependencies(self, service_id: str, depends_on: Any):
        for name in _names(depends_on):
            dependency = self._services.get(name)
            if dependency is None:
                logger.debug("Dependency %s of %s is not defined yet; no edge", name, service_id)
                continue
            self._add_edge(Edge(
                id=f"edge-dependency-{dependency.id}-{service_id}",
                source=dependency.id,
                target=service_id,
                source_handle=Handle.BOTTOM.value,
                target_handle=Handle.TOP.value,
            ))

    def _attach(self, source_id: str, service_id: str):
        self._add_edge(Edge(
            id=f"edge-{source_id}-{service_id}",
            source=source_id,
            target=service_id,
            source_handle=Handle.RIGHT.value,
            target_handle=Handle.LEFT.value,
        ))

    def _add_edge(self, edge: Edge):
        if edge.id in self._edge_ids:
            return
        self._edge_ids.add(edge.id)
        self.edges.append(edge)

    def _position_of(self, service_id: str) -> Position:
        for node in reversed(self.nodes):
            if node.id == service_id:
                return node.position
        return Position()

    def _network_driver(self, name: str) -> Optional[str]:
        driver = _as_mapping(self.top_networks.get(name)).get('driver')
        return str(driver) if driver is not None else None

    def _resolve_bind_device(self, data: VolumeData) -> VolumeData:
        """
        A named volume declared at the top level as a local bind mount is
        shown with the bound host path as its source.
        """
        options = _as_mapping(_as_mapping(self.top_volumes.get(data.source)).get('driver_opts'))
        device = options.get('device')
        if options.get('o') == 'bind' and isinstance(device, str) and device:
            return data.model_copy(update={"source": device})
        return data


def _as_mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _names(value: Any) -> List[str]:
    """
    Names listed by a ``networks``/``depends_on`` section, which may be a
    list of names or a mapping keyed by name.
    """
    if isinstance(value, dict):
        value = list(value.keys())
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int)) and not isinstance(item, bool)]


def document_to_graph(document: Any) -> ComposeGraph:
    """
    Unfolds a compose document mapping into a graph.
    """
    return ComposeParser().parse_document(document)
