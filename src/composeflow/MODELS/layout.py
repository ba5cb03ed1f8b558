"""
Placement settings for imported graphs and for nodes added in the editor.
"""
from typing import Dict, Tuple

from pydantic import BaseModel

from .graph import NodeType, Position


class LayoutConfig(BaseModel):
    """
    Coordinates used when nodes are created without user placement.

    Imported services are laid out in a row; the port, volume and network
    nodes attached to a service stack in a column to its left. Nodes added
    from the toolbar cascade from a base point, offset by type.
    """
    service_origin_x: float = 150.0
    service_origin_y: float = 100.0
    service_spacing: float = 300.0
    attachment_offset_x: float = -250.0
    row_height: float = 120.0
    volume_row_offset: int = 1
    network_row_offset: int = 2

    editor_base_x: float = 150.0
    editor_base_y: float = 150.0
    editor_cascade_step: float = 15.0
    editor_type_offsets: Dict[NodeType, Tuple[float, float]] = {
        NodeType.SERVICE: (0.0, 0.0),
        NodeType.PORT: (-200.0, 0.0),
        NodeType.VOLUME: (-200.0, 100.0),
        NodeType.NETWORK: (-200.0, 200.0),
    }

    def service_position(self, index: int) -> Position:
        return Position(
            x=self.service_origin_x + self.service_spacing * index,
            y=self.service_origin_y,
        )

    def attachment_position(self, service: Position, row: int) -> Position:
        """
        Position of the ``row``-th attachment slot to the left of a service.
        """
        return Position(
            x=service.x + self.attachment_offset_x,
            y=service.y + self.row_height * row,
        )

    def editor_position(self, node_type: NodeType, existing_of_type: int) -> Position:
        dx, dy = self.editor_type_offsets.get(node_type, (0.0, 0.0))
        step = self.editor_cascade_step * existing_of_type
        return Position(x=self.editor_base_x + dx + step, y=self.editor_base_y + dy + step)
