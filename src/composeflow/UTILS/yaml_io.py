"""
Reading and writing compose documents as YAML text.
"""
import os
from typing import Any, Dict, Union

import yaml

from ..MODELS.errors import MalformedDocumentError

COMPOSE_FILENAME = "docker-compose.yml"


def load_document_text(content: Union[bytes, str]) -> str:
    """
    Decodes uploaded file content into text.

    :param content: Raw bytes from an upload, or already-decoded text.
    :return: The document text with any UTF-8 byte order mark removed.
    :raises MalformedDocumentError: If the bytes are not valid UTF-8.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"Document is not valid UTF-8: {e}") from e
    return content.lstrip("\ufeff")


def dump_document(document: Dict[str, Any]) -> str:
    """
    Serializes a compose document mapping to YAML, keeping key order.
    """
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, allow_unicode=True)


def save_document_text(text: str, directory: str = ".") -> str:
    """
    Writes the document text as ``docker-compose.yml`` inside a directory.

    :param text: YAML text to write.
    :param directory: Target directory, created if missing.
    :return: Path of the written file.
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, COMPOSE_FILENAME)
    with open(path, 'w', encoding="utf-8") as f:
        f.write(text)
    return path
