"""
Unit tests for unfolding compose documents into graphs.
"""
import math

import pytest
import yaml

from composeflow.MODELS.errors import MalformedDocumentError
from composeflow.PARSERS.compose_parser import ComposeParser, document_to_graph


def nodes_of(graph, node_type):
    return [n for n in graph.nodes if n.type == node_type]


def test_parse(tmp_path):
    compose_content = {
        'version': '3.8',
        'services': {
            'web': {
                'image': 'nginx:latest',
                'ports': ['80:80'],
                'environment': {
                    'DEBUG': 'true'
                },
                'depends_on': ['db'],
            },
            'db': {
                'image': 'postgres:13',
                'volumes': ['db_data:/var/lib/postgresql/data']
            }
        },
        'volumes': {
            'db_data': {}
        }
    }

    compose_file = tmp_path / "docker-compose.yml"
    with open(compose_file, 'w') as f:
        yaml.dump(compose_content, f, sort_keys=False)

    parser = ComposeParser()
    graph = parser.parse(str(compose_file))

    services = nodes_of(graph, "service")
    assert [s.data.name for s in services] == ['web', 'db']
    assert services[0].data.image == 'nginx:latest'
    assert services[0].data.environment == {'DEBUG': 'true'}

    volumes = nodes_of(graph, "volume")
    assert len(volumes) == 1
    assert volumes[0].data.source == 'db_data'
    assert volumes[0].data.target == '/var/lib/postgresql/data'

    # web lists db before db exists: single pass leaves no dependency edge
    assert not [e for e in graph.edges if e.source_handle == "bottom"]


class TestServices:
    """Tests for service nodes."""

    def test_ids_and_positions(self):
        """Test deterministic ids and row layout."""
        graph = document_to_graph({"services": {"a": {"image": "x"}, "b": {"image": "y"}, "c": {}}})
        services = nodes_of(graph, "service")
        assert [s.id for s in services] == ["service-1", "service-2", "service-3"]
        assert [(s.position.x, s.position.y) for s in services] == [(150, 100), (450, 100), (750, 100)]

    def test_image_defaults_to_latest(self):
        """Test the image default."""
        graph = document_to_graph({"services": {"a": {}, "b": None}})
        assert [s.data.image for s in graph.nodes] == ["latest", "latest"]

    def test_environment_list(self):
        """Test KEY=VALUE environment entries."""
        graph = document_to_graph({"services": {"a": {"environment": ["A=1", "URL=x=y", "BROKEN"]}}})
        assert graph.nodes[0].data.environment == {"A": "1", "URL": "x=y"}

    def test_environment_mapping(self):
        """Test mapping environment values."""
        graph = document_to_graph({"services": {"a": {"environment": {"PORT": 8080, "EMPTY": None}}}})
        assert graph.nodes[0].data.environment == {"PORT": "8080", "EMPTY": ""}

    def test_empty_services(self):
        """Test a document with an empty services mapping."""
        graph = document_to_graph({"services": {}})
        assert graph.nodes == []
        assert graph.edges == []


class TestPorts:
    """Tests for port nodes."""

    def test_port_with_protocol(self):
        """Test host:container/protocol."""
        graph = document_to_graph({"services": {"web": {"ports": ["80:8080/tcp"]}}})
        port = nodes_of(graph, "port")[0]
        assert port.data.host_port == 80
        assert port.data.container_port == 8080
        assert port.data.protocol == "tcp"

    def test_single_port(self):
        """Test that a single value maps host and container alike."""
        graph = document_to_graph({"services": {"web": {"ports": ["80"]}}})
        port = nodes_of(graph, "port")[0]
        assert (port.data.host_port, port.data.container_port, port.data.protocol) == (80, 80, None)

    def test_long_syntax(self):
        """Test published/target/protocol objects."""
        doc = {"services": {"web": {"ports": [{"published": 5353, "target": 53, "protocol": "udp"}]}}}
        port = nodes_of(document_to_graph(doc), "port")[0]
        assert (port.data.host_port, port.data.container_port, port.data.protocol) == (5353, 53, "udp")

    def test_unparseable_port_is_nan(self):
        """Test that bad numbers become NaN instead of failing."""
        graph = document_to_graph({"services": {"web": {"ports": ["http:web"]}}})
        port = nodes_of(graph, "port")[0]
        assert math.isnan(port.data.host_port)
        assert math.isnan(port.data.container_port)

    def test_layout_and_edges(self):
        """Test port placement and attachment edges."""
        graph = document_to_graph({"services": {"a": {}, "web": {"ports": ["80:80", "443:443"]}}})
        ports = nodes_of(graph, "port")
        assert [p.id for p in ports] == ["port-2-1", "port-2-2"]
        assert [(p.position.x, p.position.y) for p in ports] == [(200, 100), (200, 220)]
        edge = graph.edges[0]
        assert (edge.id, edge.source, edge.target) == ("edge-port-2-1-service-2", "port-2-1", "service-2")
        assert (edge.source_handle, edge.target_handle) == ("right", "left")


class TestVolumes:
    """Tests for volume nodes."""

    def test_path_volume_dropped(self):
        """Test that path-style volumes produce no node."""
        graph = document_to_graph({"services": {"web": {"volumes": ["./data:/var/lib/data:ro", "/srv:/srv"]}}})
        assert nodes_of(graph, "volume") == []
        assert graph.edges == []

    def test_named_volume(self):
        """Test that a named volume becomes a node with rw mode."""
        graph = document_to_graph({"services": {"web": {"volumes": ["mydata:/var/lib/data"]}}})
        volume = nodes_of(graph, "volume")[0]
        assert volume.data.source == "mydata"
        assert volume.data.target == "/var/lib/data"
        assert volume.data.mode == "rw"

    def test_read_only(self):
        """Test the ro mode in both syntaxes."""
        doc = {"services": {"web": {"volumes": [
            "logs:/var/log:ro",
            {"source": "cache", "target": "/cache", "type": "ro"},
            {"source": "tmp", "target": "/tmp", "type": "volume"},
        ]}}}
        volumes = nodes_of(document_to_graph(doc), "volume")
        assert [v.data.mode for v in volumes] == ["ro", "ro", "rw"]

    def test_volume_index_counts_dropped_entries(self):
        """Test that positions and ids use the entry index."""
        doc = {"services": {"web": {"volumes": ["./a:/a", "named:/b"]}}}
        volume = nodes_of(document_to_graph(doc), "volume")[0]
        assert volume.id == "volume-1-2"
        assert (volume.position.x, volume.position.y) == (-100, 340)

    def test_bind_declaration_resolves_source(self):
        """Test that a top-level local bind volume shows its device."""
        doc = {
            "services": {"db": {"volumes": ["volume_3:/data:ro"]}},
            "volumes": {"volume_3": {"driver": "local",
                                     "driver_opts": {"type": "none", "device": "./pgdata", "o": "bind"}}},
        }
        volume = nodes_of(document_to_graph(doc), "volume")[0]
        assert volume.data.source == "./pgdata"

    def test_entries_without_source_skipped(self):
        """Test that unusable entries are dropped."""
        doc = {"services": {"web": {"volumes": [{"type": "tmpfs", "target": "/run"}, 42]}}}
        assert nodes_of(document_to_graph(doc), "volume") == []


class TestNetworks:
    """Tests for network nodes."""

    def test_shared_network(self):
        """Test that a network listed by two services is created once."""
        doc = {"services": {"a": {"networks": ["net1"]}, "b": {"networks": ["net1"]}}}
        graph = document_to_graph(doc)
        networks = nodes_of(graph, "network")
        assert len(networks) == 1
        assert networks[0].data.name == "net1"
        edges = [e for e in graph.edges if e.source == networks[0].id]
        assert [e.target for e in edges] == ["service-1", "service-2"]

    def test_mapping_form_and_driver(self):
        """Test networks given as a mapping with a top-level driver."""
        doc = {
            "services": {"a": {"networks": {"front": None, "back": {"aliases": ["x"]}}}},
            "networks": {"back": {"driver": "overlay"}},
        }
        networks = nodes_of(document_to_graph(doc), "network")
        assert [(n.data.name, n.data.driver) for n in networks] == [("front", None), ("back", "overlay")]
        assert [(n.position.x, n.position.y) for n in networks] == [(-100, 340), (-100, 460)]

    def test_network_ids_unique(self):
        """Test that distinct networks of different services get distinct ids."""
        doc = {"services": {"a": {"networks": ["x"]}, "b": {"networks": ["y"]}}}
        networks = nodes_of(document_to_graph(doc), "network")
        assert len({n.id for n in networks}) == 2


class TestDependencies:
    """Tests for dependency edges."""

    def test_dependency_edge(self):
        """Test a dependency on an earlier service."""
        graph = document_to_graph({"services": {"db": {}, "web": {"depends_on": ["db"]}}})
        edge = graph.edges[0]
        assert (edge.source, edge.target) == ("service-1", "service-2")
        assert (edge.source_handle, edge.target_handle) == ("bottom", "top")
        assert edge.id == "edge-dependency-service-1-service-2"

    def test_mapping_form(self):
        """Test depends_on given as a mapping."""
        doc = {"services": {"db": {}, "web": {"depends_on": {"db": {"condition": "service_started"}}}}}
        assert len(document_to_graph(doc).edges) == 1

    def test_forward_reference_dropped(self):
        """Test that a dependency on a later service yields no edge."""
        graph = document_to_graph({"services": {"web": {"depends_on": ["db"]}, "db": {}}})
        assert graph.edges == []

    def test_forward_reference_two_pass(self):
        """Test that the two-pass option wires forward references."""
        parser = ComposeParser(resolve_forward_dependencies=True)
        graph = parser.parse_document({"services": {"web": {"depends_on": ["db"]}, "db": {}}})
        assert [(e.source, e.target) for e in graph.edges] == [("service-2", "service-1")]

    def test_unknown_dependency_dropped(self):
        """Test that a dependency on an undefined service is ignored."""
        graph = document_to_graph({"services": {"web": {"depends_on": ["ghost"]}}})
        assert graph.edges == []


class TestMalformedDocuments:
    """Tests for documents that cannot be imported."""

    @pytest.mark.parametrize("document", [None, [], "text", 3, {}, {"services": None}, {"services": ["a"]}])
    def test_rejected(self, document):
        """Test that non-mappings and missing services raise."""
        with pytest.raises(MalformedDocumentError):
            document_to_graph(document)

    def test_invalid_yaml(self):
        """Test that YAML syntax errors are reported as malformed documents."""
        with pytest.raises(MalformedDocumentError):
            ComposeParser().parse_from_string("services: [unclosed")

    def test_subfields_degrade(self):
        """Test that odd sub-fields do not abort the import."""
        doc = {"services": {"web": {"ports": "80:80", "volumes": {"a": "b"}, "networks": 5, "depends_on": 7}}}
        graph = document_to_graph(doc)
        assert len(graph.nodes) == 1
        assert graph.edges == []


def test_custom_layout():
    from composeflow.MODELS.layout import LayoutConfig

    layout = LayoutConfig(service_origin_x=0, service_origin_y=0, service_spacing=100, row_height=50)
    graph = ComposeParser(layout=layout).parse_document(
        {"services": {"a": {}, "b": {"ports": ["1:1"], "networks": ["n"]}}})
    positions = {n.id: (n.position.x, n.position.y) for n in graph.nodes}
    assert positions == {
        "service-1": (0, 0),
        "service-2": (100, 0),
        "port-2-1": (-150, 0),
        "network-2-1": (-150, 100),
    }


def test_parse_invalid_utf8(tmp_path):
    compose_file = tmp_path / "docker-compose.yml"
    compose_file.write_bytes(b"services:\n  web:\n    image: \xff\xfe\n")

    with pytest.raises(MalformedDocumentError, match="not valid UTF-8"):
        ComposeParser().parse(str(compose_file))
