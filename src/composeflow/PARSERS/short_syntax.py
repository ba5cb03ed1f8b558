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
Parsing of compose port and volume entries in their string and object forms.
"""
import math
import re
from typing import Any, Optional, Union

from ..MODELS.graph import PortData, VolumeData, VolumeMode

NAN = float("nan")
_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')

Number = Union[int, float]


def parse_port_number(value: Any) -> Number:
    """
    Reads a port number leniently: the leading integer of a string is used
    and trailing text ignored. Anything unreadable becomes NaN instead of
    raising.

    :param value: A string, number or anything else from the document.
    :return: The port number, or NaN.
    """
    if isinstance(value, bool):
        return NAN
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else NAN
    if isinstance(value, str):
        match = _INT_PREFIX.match(value)
        if match:
            return int(match.group(1))
    return NAN


def parse_port(entry: Any) -> Optional[PortData]:
    """
    Parses one entry of a service's ``ports`` list.

    String entries look like ``[host:]container[/protocol]``. The last
    colon-separated segment may carry the protocol; with a single segment
    the host port equals the container port. Object entries use
    ``published``, ``target`` and ``protocol``.

    :param entry: The list entry.
    :return: Port payload, or None if the entry has an unusable shape.
    """
    if isinstance(entry, (int, float)) and not isinstance(entry, bool):
        entry = str(entry)

    if isinstance(entry, str):
        parts = entry.split(':')
        last = parts[-1].split('/')
        host_port = parse_port_number(parts[0])
        container_port = parse_port_number(last[0])
        protocol = last[1] if len(last) > 1 and last[1] else None
        if len(parts) == 1:
            container_port = host_port
        return PortData(host_port=host_port, container_port=container_port, protocol=protocol)

    if isinstance(entry, dict):
        protocol = entry.get('protocol')
        return PortData(
            host_port=parse_port_number(entry.get('published')),
            container_port=parse_port_number(entry.get('target')),
            protocol=str(protocol) if protocol else None,
        )

    return None


def parse_volume(entry: Any) -> Optional[VolumeData]:
    """
    Parses one entry of a service's ``volumes`` list.

    String entries look like ``source:target[:mode]``; the mode is read-only
    only when the third segment is exactly ``ro``. Object entries use
    ``source``, ``target`` and ``type`` (read-only iff ``type`` is ``ro``).

    :param entry: The list entry.
    :return: Volume payload, or None if the entry has no usable source.
    """
    if isinstance(entry, str):
        parts = entry.split(':')
        source = parts[0]
        target = parts[1] if len(parts) > 1 else ''
        read_only = len(parts) > 2 and parts[2] == 'ro'
    elif isinstance(entry, dict):
        source = entry.get('source')
        target = entry.get('target') or ''
        read_only = entry.get('type') == 'ro'
    else:
        return None

    if not isinstance(source, str) or not source:
        return None
    return VolumeData(
        source=source,
        target=str(target),
        mode=VolumeMode.RO if read_only else VolumeMode.RW,
    )


def is_path_volume(source: str) -> bool:
    """
    True for bind-mount sources written as paths (``./...`` or ``/...``);
    anything else names a volume.
    """
    return source.startswith('./') or source.startswith('/')
