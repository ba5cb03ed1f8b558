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
Rules deciding which connections the editor allows between node handles.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

from ..MODELS.graph import ATTACHMENT_TYPES, Handle, NodeType, coerce_enum


@dataclass(frozen=True)
class ConnectionRule:
    """
    Capabilities of a node type: which types it may connect to as a source,
    and which types it accepts as a target.
    """
    accepts: Tuple[NodeType, ...] = ()
    connects_to: Tuple[NodeType, ...] = ()


CONNECTION_RULES: Dict[NodeType, ConnectionRule] = {
    NodeType.SERVICE: ConnectionRule(accepts=(NodeType.SERVICE,), connects_to=(NodeType.SERVICE,)),
    NodeType.PORT: ConnectionRule(connects_to=(NodeType.SERVICE,)),
    NodeType.VOLUME: ConnectionRule(connects_to=(NodeType.SERVICE,)),
    NodeType.NETWORK: ConnectionRule(connects_to=(NodeType.SERVICE,)),
}


def is_valid_connection(source_type, target_type, source_handle, target_handle,
                        rules: Dict[NodeType, ConnectionRule] = CONNECTION_RULES) -> bool:
    """
    Decides whether an edge between two node handles is legal.

    Rules are checked in order:

    1. service -> service is legal only from ``bottom`` to ``top``.
    2. port/volume/network -> service is legal only from ``right`` to ``left``.
    3. Otherwise the capability table decides: the source must list the
       target type in ``connects_to``, or the target must list the source
       type in ``accepts``.

    :param source_type: Type of the node the edge starts from.
    :param target_type: Type of the node the edge ends at.
    :param source_handle: Handle on the source node.
    :param target_handle: Handle on the target node.
    :param rules: Capability table consulted by rule 3.
    :return: True if the editor should create the edge.
    """
    source_type = coerce_enum(NodeType, source_type)
    target_type = coerce_enum(NodeType, target_type)
    if source_type is None or target_type is None:
        return False

    source_handle = coerce_enum(Handle, source_handle)
    target_handle = coerce_enum(Handle, target_handle)

    if source_type == NodeType.SERVICE and target_type == NodeType.SERVICE:
        return source_handle == Handle.BOTTOM and target_handle == Handle.TOP

    if source_type in ATTACHMENT_TYPES and target_type == NodeType.SERVICE:
        return source_handle == Handle.RIGHT and target_handle == Handle.LEFT

    source_rule = rules.get(source_type, ConnectionRule())
    target_rule = rules.get(target_type, ConnectionRule())
    return target_type in source_rule.connects_to or source_type in target_rule.accepts
