"""
Public-input extraction strategies.

The proving backend may leave public inputs in several shapes. The
strategies below are tried in a fixed order and the first one that yields
a value wins:

1. ``fields_json``  - pre-formatted ``public_inputs_fields.json``
2. ``raw_text``     - ``public_inputs`` when it is printable text
3. ``raw_binary``   - ``public_inputs`` split into 32-byte field elements
"""

import json
import logging
from typing import Callable, Optional

from .artifact_store import ArtifactStore
from .exceptions import ArtifactDecodeError, MissingArtifactError

logger = logging.getLogger(__name__)

FIELD_ELEMENT_SIZE = 32

FIELDS_JSON_ARTIFACT = "public_inputs_fields.json"
RAW_ARTIFACT = "public_inputs"


def format_field_elements(data: bytes) -> str:
    """
    Render raw public-input bytes as hex.

    A buffer that is a whole number of 32-byte field elements becomes a JSON
    array of ``0x``-prefixed 64-digit strings; anything else becomes a
    single ``0x`` hex string.
    """
    if data and len(data) % FIELD_ELEMENT_SIZE == 0:
        elements = [
            f"0x{data[i:i + FIELD_ELEMENT_SIZE].hex()}"
            for i in range(0, len(data), FIELD_ELEMENT_SIZE)
        ]
        return json.dumps(elements, separators=(",", ":"))
    return f"0x{data.hex()}"


def _is_printable_text(text: str) -> bool:
    return all(ch.isprintable() or ch.isspace() for ch in text)


def from_fields_json(store: ArtifactStore, target_dir: str) -> Optional[str]:
    name = f"{target_dir}/{FIELDS_JSON_ARTIFACT}"
    if not store.exists(name):
        return None
    return store.read_text(name).strip()


def from_raw_text(store: ArtifactStore, target_dir: str) -> Optional[str]:
    name = f"{target_dir}/{RAW_ARTIFACT}"
    if not store.exists(name):
        return None
    try:
        text = store.read_text(name)
    except ArtifactDecodeError:
        logger.debug(f"{name} is not UTF-8, deferring to binary decoding")
        return None
    # Field elements with small values decode as UTF-8 full of NULs
    if not _is_printable_text(text):
        logger.debug(f"{name} is not printable text, deferring to binary decoding")
        return None
    if not text.strip():
        raise MissingArtifactError(f"Public inputs file {store.path(name)} is empty")
    return text.strip()


def from_raw_binary(store: ArtifactStore, target_dir: str) -> Optional[str]:
    name = f"{target_dir}/{RAW_ARTIFACT}"
    if not store.exists(name):
        return None
    data = store.read_bytes(name)
    if not data:
        return None
    return format_field_elements(data)


ExtractionStrategy = Callable[[ArtifactStore, str], Optional[str]]

EXTRACTION_STRATEGIES: list[tuple[str, ExtractionStrategy]] = [
    ("fields_json", from_fields_json),
    ("raw_text", from_raw_text),
    ("raw_binary", from_raw_binary),
]


def extract_public_inputs(
    store: ArtifactStore,
    target_dir: str = "target",
    strategies: Optional[list[tuple[str, ExtractionStrategy]]] = None,
) -> str:
    """
    Locate and render the public inputs of a finished proof.

    Args:
        store: Artifact store of the run's working directory
        target_dir: Directory the proving backend wrote its output to
        strategies: Override of the ordered strategy list

    Returns:
        str: Public inputs as text or a JSON-style array of field elements

    Raises:
        MissingArtifactError: No public-input artifact exists or none yields a value
        ArtifactIOError: A present artifact cannot be read
    """
    fields_name = f"{target_dir}/{FIELDS_JSON_ARTIFACT}"
    raw_name = f"{target_dir}/{RAW_ARTIFACT}"
    if not store.exists(fields_name) and not store.exists(raw_name):
        raise MissingArtifactError(
            f"Neither {FIELDS_JSON_ARTIFACT} nor {RAW_ARTIFACT} file was generated "
            f"at {store.path(target_dir)}"
        )

    for strategy_name, strategy in strategies or EXTRACTION_STRATEGIES:
        value = strategy(store, target_dir)
        if value:
            logger.info(f"Public inputs extracted with strategy '{strategy_name}'")
            return value

    raise MissingArtifactError(
        f"Public input artifacts at {store.path(target_dir)} are empty"
    )
