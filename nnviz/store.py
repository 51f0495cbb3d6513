"""
NetworkStore - single owner of the canonical network.

Every change (structural edit, scalar edit, bulk text replace) goes through one
of the store's command methods, which build a complete new network, validate
it and only then swap it in. Readers only ever see validated snapshots.

After each committed change the store:
- hands encode(network) to the persistence callback,
- notifies subscribers with the new snapshot,
- drops the selection if it no longer resolves in the new network.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from nnviz.codec import DecodeError, decode, encode
from nnviz.config import EditorSettings
from nnviz.editor import StructuralEditor
from nnviz.identifiers import LinkRef, NodeKind, NodeRef, WeightRef, parse_and_resolve
from nnviz.layout import Box, LayoutAdapter
from nnviz.network import (
    NeuralNetwork,
    ValidationError,
    default_network,
    network_from_dict,
    network_to_dict,
    validate_network,
)
from nnviz.propagation import VisualGraph, synthesize

logger = logging.getLogger(__name__)


def load_initial_network(encoded: Optional[str]) -> NeuralNetwork:
    """
    Decode persisted state once at startup; fall back to the default template
    when nothing is stored or the text is corrupt.
    """
    if not encoded:
        logger.info("No persisted network, starting from the default template")
        return default_network()
    try:
        return decode(encoded)
    except DecodeError as e:
        logger.warning(f"Persisted network could not be decoded ({e}), using the default template")
        return default_network()


def read_state_file(path: Path) -> Optional[str]:
    """Return the encoded network stored at `path`, or None if there is none."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip() or None
    except OSError as e:
        logger.warning(f"Failed to read state file {path}: {e}")
        return None


def write_state_file(path: Path, encoded: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(encoded)


class NetworkStore:
    """Holds the canonical network and applies commands one at a time."""

    def __init__(
        self,
        network: Optional[NeuralNetwork] = None,
        settings: Optional[EditorSettings] = None,
        on_commit: Optional[Callable[[str], None]] = None,
    ):
        self._network = validate_network(network or default_network())
        self.settings = settings or EditorSettings()
        self.editor = StructuralEditor(self.settings)
        self.layout_adapter = LayoutAdapter.from_settings(self.settings)
        self._lock = threading.RLock()
        self._on_commit = on_commit
        self._listeners: List[Callable[[NeuralNetwork], None]] = []
        self._selected_id: Optional[str] = None
        self._view_cache: Optional[Tuple[NeuralNetwork, VisualGraph, Dict[str, Box]]] = None

    # --- Read access ---

    @property
    def network(self) -> NeuralNetwork:
        return self._network

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def encoded(self) -> str:
        return encode(self._network)

    def to_text(self) -> str:
        """Current network as an indented JSON document for the bulk editor."""
        return json.dumps(network_to_dict(self._network), indent=2, ensure_ascii=False)

    def view(self) -> Tuple[VisualGraph, Dict[str, Box]]:
        """
        Synthesized graph and layout boxes for the current snapshot.
        Recomputed in full whenever the snapshot changes.
        """
        snapshot = self._network
        cached = self._view_cache
        if cached is not None and cached[0] is snapshot:
            return cached[1], cached[2]
        graph = synthesize(snapshot)
        boxes = self.layout_adapter.layout_graph(graph)
        self._view_cache = (snapshot, graph, boxes)
        return graph, boxes

    # --- Subscriptions ---

    def set_on_commit(self, callback: Optional[Callable[[str], None]]) -> None:
        self._on_commit = callback

    def subscribe(self, callback: Callable[[NeuralNetwork], None]) -> None:
        self._listeners.append(callback)

    def _swap(self, new_network: NeuralNetwork) -> bool:
        if new_network == self._network:
            return False
        self._network = new_network
        if self._selected_id is not None and parse_and_resolve(new_network, self._selected_id) is None:
            self._selected_id = None
        if self._on_commit:
            self._on_commit(encode(new_network))
        for listener in list(self._listeners):
            listener(new_network)
        return True

    # --- Commands ---

    def dispatch(self, action: str, **params: Any) -> bool:
        """
        Apply a StructuralEditor action. Returns True if the network changed.

        Raises ValidationError (canonical network untouched) if the edit would
        produce an invalid network, e.g. a non-finite value.
        """
        with self._lock:
            try:
                new_network = self.editor.apply(self._network, action, **params)
            except ValidationError as e:
                logger.warning(f"Rejected {action}({params}): {e}")
                raise
            changed = self._swap(new_network)
            if not changed:
                logger.debug(f"{action}({params}) left the network unchanged")
            return changed

    def replace(self, network: NeuralNetwork) -> bool:
        with self._lock:
            return self._swap(validate_network(network))

    def replace_from_text(self, text: str) -> bool:
        """
        Bulk replace from a JSON document.

        Raises ValidationError describing the problem; the canonical network is
        kept when the document is not valid JSON or violates an invariant.
        """
        try:
            doc = json.loads(text)
        except (TypeError, ValueError, RecursionError) as e:
            raise ValidationError(f"document is not valid JSON: {e}") from e
        network = network_from_dict(doc)
        with self._lock:
            return self._swap(network)

    def load_encoded(self, encoded: str) -> bool:
        """Replace the network from an encoded string; raises DecodeError."""
        network = decode(encoded)
        with self._lock:
            return self._swap(network)

    # --- Rendering host events ---

    def select(self, element_id: Optional[str]) -> bool:
        """
        Select a node by id, or clear the selection with None.
        Ids that do not resolve are ignored.
        """
        if element_id is None:
            self._selected_id = None
            return True
        if parse_and_resolve(self._network, element_id) is None:
            logger.debug(f"Ignoring selection of unknown id {element_id!r}")
            return False
        self._selected_id = element_id
        return True

    @staticmethod
    def _to_number(value: Any) -> float:
        if isinstance(value, bool):
            raise ValidationError(f"{value!r} is not a number")
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{value!r} is not a number") from e

    def handle_value_edit(self, element_id: str, value: Any) -> bool:
        """
        In-place numeric edit from the host: input node value or weight.
        Unknown ids and elements without an editable scalar are ignored.
        """
        ref = parse_and_resolve(self._network, element_id)
        if isinstance(ref, LinkRef):
            ref = ref.weight
        if isinstance(ref, NodeRef) and ref.kind == NodeKind.INPUT:
            return self.dispatch('update_value', index=ref.index, value=self._to_number(value))
        if isinstance(ref, WeightRef):
            return self.dispatch('update_weight', ref=ref, weight=self._to_number(value))
        logger.debug(f"Ignoring value edit for {element_id!r}")
        return False

    def handle_label_edit(self, element_id: str, label: str) -> bool:
        ref = parse_and_resolve(self._network, element_id)
        if not isinstance(ref, NodeRef) or ref.kind == NodeKind.HIDDEN:
            logger.debug(f"Ignoring label edit for {element_id!r}")
            return False
        return self.dispatch('update_label', ref=ref, label=str(label))
