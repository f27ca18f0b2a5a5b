"""YAML serialization helpers for stored documents."""

from pathlib import Path
from typing import Any, Dict

import yaml


class YAMLError(Exception):
    """YAML processing error."""

    pass


def serialize_document(data: Dict[str, Any]) -> str:
    """Serialize a JSON-compatible document to a YAML string.

    Raises:
        YAMLError: If serialization fails
    """
    try:
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    except Exception as e:
        raise YAMLError(f"Failed to serialize document: {e}") from e


def deserialize_document(yaml_str: str) -> Dict[str, Any]:
    """Parse a YAML string into a document mapping.

    Raises:
        YAMLError: If the content is empty, malformed, or not a mapping
    """
    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise YAMLError(f"Invalid YAML format: {e}") from e

    if data is None:
        raise YAMLError("YAML content is empty")
    if not isinstance(data, dict):
        raise YAMLError(f"Expected a mapping, got {type(data).__name__}")

    return data


def load_document_from_file(file_path: Path) -> Dict[str, Any]:
    """Load a document from a YAML file.

    Raises:
        YAMLError: If file reading or parsing fails
    """
    try:
        if not file_path.exists():
            raise YAMLError(f"File not found: {file_path}")

        return deserialize_document(file_path.read_text(encoding="utf-8"))

    except YAMLError:
        raise
    except Exception as e:
        raise YAMLError(f"Failed to load document from {file_path}: {e}") from e


def save_document_to_file(data: Dict[str, Any], file_path: Path) -> None:
    """Write a document to a YAML file, replacing it atomically.

    Raises:
        YAMLError: If file writing fails
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = file_path.with_suffix(file_path.suffix + ".tmp")
        tmp_path.write_text(serialize_document(data), encoding="utf-8")
        tmp_path.replace(file_path)

    except YAMLError:
        raise
    except Exception as e:
        raise YAMLError(f"Failed to save document to {file_path}: {e}") from e
