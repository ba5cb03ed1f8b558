"""
Models for the generated docker-compose document.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field

COMPOSE_VERSION = "3"


class ComposeService(BaseModel):
    """
    One entry of the ``services`` section. List fields are derived from the
    graph's edges each time the document is generated.
    """
    image: str
    environment: Dict[str, str] = {}
    ports: List[str] = []
    volumes: List[str] = []
    networks: List[str] = []
    depends_on: List[str] = []

    def to_dict(self) -> Dict[str, Any]:
        """
        Returns the service as a plain mapping, leaving out empty sections.
        """
        result: Dict[str, Any] = {"image": self.image}
        if self.environment:
            result["environment"] = dict(self.environment)
        for key in ("ports", "volumes", "networks", "depends_on"):
            values = getattr(self, key)
            if values:
                result[key] = list(values)
        return result


class NamedVolumeConfig(BaseModel):
    """
    A top-level named volume.
    """
    driver: str = "local"
    driver_opts: Dict[str, str] = {}

    @classmethod
    def bind(cls, device: str) -> "NamedVolumeConfig":
        """
        A local named volume bound to a host path.
        """
        return cls(driver="local", driver_opts={"type": "none", "device": device, "o": "bind"})


class NetworkConfig(BaseModel):
    """
    A top-level network.
    """
    driver: str = "bridge"


class ComposeDocument(BaseModel):
    """
    The complete compose document built from a graph.
    """
    version: str = COMPOSE_VERSION
    services: Dict[str, ComposeService] = Field(default_factory=dict)
    volumes: Dict[str, NamedVolumeConfig] = Field(default_factory=dict)
    networks: Dict[str, NetworkConfig] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """
        Returns the document as a plain mapping ready for YAML serialization.
        Empty ``volumes``/``networks`` sections are omitted.
        """
        result: Dict[str, Any] = {
            "version": self.version,
            "services": {name: svc.to_dict() for name, svc in self.services.items()},
        }
        if self.volumes:
            result["volumes"] = {name: vol.model_dump() for name, vol in self.volumes.items()}
        if self.networks:
            result["networks"] = {name: net.model_dump() for name, net in self.networks.items()}
        return result
