"""
Atom Store - The in-memory AtomSpace.

Owns every Atom in the system. Callers only ever receive copies, so all
mutation goes through add/update/remove.

Export format is a flat JSON array of atom records:
    id, type, name, truthValue, attentionValue, outgoing, incoming, metadata
"""

import copy
import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from ..errors import AtomSpaceImportError
from .models import Atom, AtomPattern, AttentionValue, TruthValue

logger = logging.getLogger(__name__)

EXPORT_FIELDS = {
    "id", "type", "name", "truthValue", "attentionValue",
    "outgoing", "incoming", "metadata",
}

# Partial-update keys accepted by update(), wire name -> attribute
_UPDATE_FIELDS = {
    "type": "type",
    "name": "name",
    "truthValue": "truth_value",
    "truth_value": "truth_value",
    "attentionValue": "attention_value",
    "attention_value": "attention_value",
    "outgoing": "outgoing",
    "incoming": "incoming",
    "metadata": "metadata",
}

_GENERATED_ID = re.compile(r"^atom_(\d+)$")


class AtomStore:
    """
    In-memory AtomSpace.

    Example:
        store = AtomStore()

        atom_id = store.add(Atom(type="ConceptNode", name="fatigue"))
        concepts = store.query(AtomPattern(type="ConceptNode"))

        store.update(atom_id, {"truthValue": {"strength": 0.9, "confidence": 0.8}})

        blob = store.export_all()
        store.clear()
        store.import_all(blob)
    """

    def __init__(self):
        self._atoms: Dict[str, Atom] = {}
        self._next_id = 1

    def add(self, atom: Union[Atom, Dict[str, Any]]) -> str:
        """
        Add an atom, upserting when its id is already present.

        Args:
            atom: Atom or atom record; an id is generated if absent

        Returns:
            The atom's id
        """
        if isinstance(atom, dict):
            atom = Atom.from_dict(atom)

        stored = copy.deepcopy(atom)
        if not stored.id:
            stored.id = self._generate_id()
        elif stored.id in self._atoms:
            logger.debug(f"Overwriting atom {stored.id}")

        self._atoms[stored.id] = stored
        return stored.id

    def get(self, atom_id: str) -> Optional[Atom]:
        atom = self._atoms.get(atom_id)
        return copy.deepcopy(atom) if atom else None

    def query(self, pattern: Union[AtomPattern, Dict[str, Any], None] = None) -> List[Atom]:
        """
        Find atoms matching a pattern, in insertion order.

        Args:
            pattern: AtomPattern or dict of its fields; None matches everything

        Returns:
            Copies of the matching atoms
        """
        if pattern is None:
            pattern = AtomPattern()
        elif isinstance(pattern, dict):
            pattern = AtomPattern.from_dict(pattern)

        return [
            copy.deepcopy(atom)
            for atom in self._atoms.values()
            if pattern.matches(atom)
        ]

    def all(self) -> List[Atom]:
        return self.query(None)

    def remove(self, atom_id: str) -> bool:
        return self._atoms.pop(atom_id, None) is not None

    def update(self, atom_id: str, updates: Dict[str, Any]) -> bool:
        """
        Merge partial fields into an existing atom. The id never changes.

        Fields not named in updates (attention values included) are kept
        as they are.

        Returns:
            False if no atom has this id
        """
        existing = self._atoms.get(atom_id)
        if existing is None:
            return False

        unknown = set(updates) - set(_UPDATE_FIELDS) - {"id"}
        if unknown:
            raise ValueError(f"Unknown atom fields: {sorted(unknown)}")

        updated = copy.deepcopy(existing)
        for key, value in updates.items():
            if key == "id":
                continue
            attr = _UPDATE_FIELDS[key]
            setattr(updated, attr, self._coerce_field(attr, value))

        updated.id = atom_id
        self._atoms[atom_id] = updated
        return True

    def size(self) -> int:
        return len(self._atoms)

    def clear(self) -> None:
        self._atoms.clear()
        self._next_id = 1

    def export_all(self) -> str:
        """Serialize every atom to a JSON array."""
        return json.dumps([a.to_dict() for a in self._atoms.values()], indent=2)

    def import_all(self, data: str) -> int:
        """
        Replace the store contents with an exported blob.

        The whole payload is parsed and validated before anything is
        touched, so a bad payload leaves the store as it was.

        Returns:
            Number of atoms imported

        Raises:
            AtomSpaceImportError: if the payload is not a valid atom array
        """
        try:
            records = json.loads(data)
        except (TypeError, ValueError) as e:
            raise AtomSpaceImportError(f"Invalid JSON: {e}") from e

        if not isinstance(records, list):
            raise AtomSpaceImportError("Expected a JSON array of atoms")

        parsed: Dict[str, Atom] = {}
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise AtomSpaceImportError(f"Record {index} is not an object")
            extra = set(record) - EXPORT_FIELDS
            if extra:
                raise AtomSpaceImportError(
                    f"Record {index} has unexpected fields: {sorted(extra)}"
                )
            if not isinstance(record.get("id"), str) or not record["id"]:
                raise AtomSpaceImportError(f"Record {index} has no id")
            try:
                atom = Atom.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                raise AtomSpaceImportError(f"Record {index} is malformed: {e}") from e
            parsed[atom.id] = atom

        self._atoms = parsed
        self._next_id = 1 + max(
            (int(m.group(1)) for m in (_GENERATED_ID.match(k) for k in parsed) if m),
            default=0,
        )
        logger.info(f"Imported {len(parsed)} atoms")
        return len(parsed)

    def _coerce_field(self, attr: str, value: Any) -> Any:
        if attr == "truth_value" and isinstance(value, dict):
            return TruthValue.from_dict(value)
        if attr == "attention_value" and isinstance(value, dict):
            return AttentionValue.from_dict(value)
        if attr in ("outgoing", "incoming"):
            return [Atom.from_dict(a) if isinstance(a, dict) else a for a in value or []]
        if attr == "metadata":
            return dict(value or {})
        return copy.deepcopy(value)

    def _generate_id(self) -> str:
        while f"atom_{self._next_id}" in self._atoms:
            self._next_id += 1
        atom_id = f"atom_{self._next_id}"
        self._next_id += 1
        return atom_id
