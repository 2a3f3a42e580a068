"""
Structured-payload readers.

Locate and decode machine-readable blobs embedded in a page (JSON script
blocks, JSON-LD, Next.js application state). Malformed payloads are
logged and treated as absent; nothing here raises on bad input.
"""
import json
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from bookscout.parsing.document import PageDocument
from bookscout.utils.logger import LayerLogger

_default_logger = LayerLogger("payload_reader")


def decode_json(raw: Optional[str], logger: Optional[LayerLogger] = None, origin: str = "payload") -> Any:
    """Decode ``raw`` as JSON, returning None when it is missing or malformed."""
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        (logger or _default_logger).log_error(
            f"Failed to decode {origin}: {str(e)}",
            error_type="malformed_payload",
            origin=origin,
        )
        return None


def read_json_scripts(
    document: PageDocument,
    selector: str,
    logger: Optional[LayerLogger] = None,
) -> List[Any]:
    """Every successfully decoded payload matched by ``selector``, in document order."""
    payloads = []
    for script in document.select(selector):
        data = decode_json(script.string or script.get_text(), logger, origin=selector)
        if data is not None:
            payloads.append(data)
    return payloads


# =========================================================================
# JSON-LD
# =========================================================================

def flatten_json_ld(data: Any) -> List[Dict[str, Any]]:
    """
    Flatten JSON-LD structure into a list of schema nodes.

    Handles:
    - Single object with @type
    - @graph containers
    - Arrays of objects
    """
    nodes = []

    if isinstance(data, dict):
        if "@graph" in data:
            nodes.extend(flatten_json_ld(data["@graph"]))
        if "@type" in data:
            nodes.append(data)

    elif isinstance(data, list):
        for item in data:
            nodes.extend(flatten_json_ld(item))

    return nodes


def read_json_ld(
    document: PageDocument,
    types: Tuple[str, ...],
    logger: Optional[LayerLogger] = None,
) -> List[Dict[str, Any]]:
    """JSON-LD nodes whose ``@type`` (string or list) intersects ``types``."""
    wanted = set(types)
    matches = []
    for payload in read_json_scripts(document, 'script[type="application/ld+json"]', logger):
        for node in flatten_json_ld(payload):
            node_type = node.get("@type")
            node_types = node_type if isinstance(node_type, list) else [node_type]
            if wanted.intersection(t for t in node_types if isinstance(t, str)):
                matches.append(node)
    return matches


def merge_objects(payloads: List[Any]) -> Dict[str, Any]:
    """Shallow union of dict payloads; the first block to define a key wins."""
    merged: Dict[str, Any] = {}
    for payload in payloads:
        if not isinstance(payload, dict):
            continue
        for key, value in payload.items():
            if key not in merged and value not in (None, "", [], {}):
                merged[key] = value
    return merged


def dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a step is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def names_of(value: Any) -> List[str]:
    """
    Person/organisation names from the shapes JSON payloads use:
    a string, ``{"name": ...}``, or a list of either.
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        name = value.get("name")
        return [name] if isinstance(name, str) else []
    if isinstance(value, list):
        names = []
        for item in value:
            names.extend(names_of(item))
        return names
    return []


# =========================================================================
# APOLLO STATE GRAPH
# =========================================================================

class ApolloGraph:
    """
    Read-only arena of normalized Apollo cache nodes keyed by reference.

    Nodes point at each other through ``{"__ref": "Type:id"}`` objects;
    :meth:`resolve` follows one such reference. Missing references
    resolve to None.
    """

    def __init__(self, nodes: Mapping[str, Any]):
        self._nodes = MappingProxyType(dict(nodes))

    @classmethod
    def from_next_data(cls, payload: Any) -> Optional["ApolloGraph"]:
        state = dig(payload, "props", "pageProps", "apolloState")
        if not isinstance(state, dict) or not state:
            return None
        return cls(state)

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        node = self._nodes.get(key)
        return node if isinstance(node, dict) else None

    def resolve(self, ref: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(ref, dict):
            return None
        key = ref.get("__ref")
        if not isinstance(key, str):
            return None
        return self.get(key)

    def nodes_of_type(self, typename: str) -> Iterator[Tuple[str, Dict[str, Any]]]:
        prefix = f"{typename}:"
        for key, node in self._nodes.items():
            if key.startswith(prefix) and isinstance(node, dict):
                yield key, node

    def find_node(self, typename: str, legacy_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        The node for "the current work": the one whose ``legacyId`` matches
        ``legacy_id`` when given and present, otherwise the first of its type.
        """
        candidates = list(self.nodes_of_type(typename))
        if not candidates:
            return None
        if legacy_id:
            for _, node in candidates:
                legacy = node.get("legacyId")
                if legacy is not None and str(legacy) == legacy_id:
                    return node
        return candidates[0][1]
