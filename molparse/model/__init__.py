"""In-memory structure hierarchy and the records attached to it."""

from molparse.model.base import FrozenStructureError
from molparse.model.components import (
    DEFAULT_LOOKUP,
    UNKNOWN_GROUP_LABEL,
    ComponentLookup,
    GroupKind,
)
from molparse.model.header import (
    Author,
    Compound,
    Connection,
    DBRef,
    JournalArticle,
    SecondaryStructureElement,
    SSBond,
    StructureMetadata,
)
from molparse.model.hierarchy import Address, Atom, Chain, Group, Model, Structure

__all__ = [
    "Address",
    "Atom",
    "Author",
    "Chain",
    "ComponentLookup",
    "Compound",
    "Connection",
    "DBRef",
    "DEFAULT_LOOKUP",
    "FrozenStructureError",
    "Group",
    "GroupKind",
    "JournalArticle",
    "Model",
    "SecondaryStructureElement",
    "SSBond",
    "Structure",
    "StructureMetadata",
    "UNKNOWN_GROUP_LABEL",
]
