"""Per-build state shared by the tree walker and the table splitter.

A `BuildSession` exclusively owns the naming placeholder set, the in-progress
element list and the primary-key counters of one schema build. It is passed
explicitly to every phase and discarded when the build finishes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .constants import AuxType
from .models import ModelElement
from .naming import NamingSet


@dataclass
class BuildSession:
    """State of a single schema build.

    Attributes:
        schema_root_key: Key that top-level elements use as their parent
        schema_name: Database schema every backing table lives in
        naming: Placeholder set for table and column names
        elements: Model elements emitted so far, in emission order
        element_count: Counter behind anchor element keys
        phantom_count: Counter behind phantom element keys
        created_tables: (schema, table) pairs created in the store by this build
    """

    schema_root_key: str
    schema_name: str
    naming: NamingSet = field(default_factory=NamingSet)
    elements: list[ModelElement] = field(default_factory=list)
    element_count: int = 0
    phantom_count: int = 0
    created_tables: list[tuple[str, str]] = field(default_factory=list)

    def next_element_key(self, aux: AuxType = AuxType.NONE) -> str:
        """Return the key for the next element.

        Anchor elements advance the element counter; auxiliary elements share
        the number of the anchor they belong to and carry an aux tag instead.
        """
        if aux is AuxType.NONE:
            self.element_count += 1
            return f"elem+{self.schema_root_key}({self.element_count:08d})"
        return f"elem+{self.schema_root_key}({self.element_count:08d}-{aux.value})"

    def next_phantom_key(self) -> str:
        self.phantom_count += 1
        return (
            f"elem+{self.schema_root_key}"
            f"({self.element_count:08d}-phantom:{self.phantom_count:08d})"
        )

    def add(self, element: ModelElement) -> ModelElement:
        self.elements.append(element)
        return element

    def children_of(self, parent_key: str) -> list[ModelElement]:
        return [m for m in self.elements if m.parent_key == parent_key]

    def find(self, primary_key: str) -> ModelElement | None:
        for m in self.elements:
            if m.primary_key == primary_key:
                return m
        return None
