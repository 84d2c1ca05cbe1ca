"""
Page-scoped storage for text elements, annotations and form field values.
"""
import dataclasses
import itertools
from typing import Dict, Iterable, List, Optional

from ..colors import normalize_hex
from ..errors import NotFoundError, ValidationError
from .history import HistorySnapshot
from .models import Annotation, Element, FormField, TextElement


class ElementStore:
    """
    Holds every placed element, grouped by page in insertion order.

    Insertion order is z-order: later elements are drawn and exported on top
    of earlier ones. Elements are immutable; updates replace them.
    """

    def __init__(self):
        self._pages: Dict[int, Dict[str, Element]] = {}
        self._page_of: Dict[str, int] = {}
        self._form_fields: Dict[str, FormField] = {}
        self._counter = itertools.count(1)

    # Element CRUD

    def add(self, element: Element, keep_id: bool = False) -> Element:
        """
        Validate an element, give it a fresh id and append it to its page.

        Args:
            element: TextElement or Annotation
            keep_id: Keep the element's own id if it is set and not taken,
                as when loading saved elements

        Returns:
            The stored element carrying its assigned id

        Raises:
            ValidationError: If the element is malformed; nothing is added
        """
        element = self._validated(element)
        if not (keep_id and element.id and element.id not in self._page_of):
            element = dataclasses.replace(element, id=self._next_id(element))
        self._insert(element)
        return element

    def update(self, element_id: str, **patch) -> Element:
        """
        Replace an element with a copy that has ``patch`` applied.

        Raises:
            NotFoundError: If no element has this id
            ValidationError: If the patched element is malformed
        """
        current = self.get(element_id)
        if "id" in patch:
            raise ValidationError("Element ids cannot be changed")
        try:
            updated = dataclasses.replace(current, **patch)
        except TypeError as e:
            raise ValidationError(str(e)) from None
        updated = self._validated(updated)

        old_page = self._page_of[element_id]
        if updated.page_index == old_page:
            self._pages[old_page][element_id] = updated
        else:
            # Moving to another page puts the element on top there
            del self._pages[old_page][element_id]
            self._insert(updated)
        return updated

    def remove(self, element_id: str) -> bool:
        """
        Remove an element. Unknown ids are ignored.

        Returns:
            True if an element was removed
        """
        page = self._page_of.pop(element_id, None)
        if page is None:
            return False
        del self._pages[page][element_id]
        return True

    def remove_many(self, element_ids: Iterable[str]) -> List[str]:
        """Remove several elements, returning the ids actually removed."""
        return [element_id for element_id in element_ids if self.remove(element_id)]

    def get(self, element_id: str) -> Element:
        page = self._page_of.get(element_id)
        if page is None:
            raise NotFoundError(f"No element with id {element_id!r}")
        return self._pages[page][element_id]

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._page_of

    def __len__(self) -> int:
        return len(self._page_of)

    def query(self, page_index: int) -> List[Element]:
        """Return all elements on a page in insertion order."""
        return list(self._pages.get(page_index, {}).values())

    def annotations(self, page_index: Optional[int] = None) -> List[Annotation]:
        return [e for e in self._iter(page_index) if isinstance(e, Annotation)]

    def text_elements(self, page_index: Optional[int] = None) -> List[TextElement]:
        return [e for e in self._iter(page_index) if isinstance(e, TextElement)]

    def clear(self) -> None:
        """Remove all elements and bound form fields."""
        self._pages.clear()
        self._page_of.clear()
        self._form_fields.clear()

    # Snapshots

    def snapshot(self) -> HistorySnapshot:
        """Capture the current annotations and text elements."""
        return HistorySnapshot(
            annotations=tuple(self.annotations()),
            text_elements=tuple(self.text_elements()),
            order=tuple(e.id for e in self._iter(None)),
        )

    def restore(self, snapshot: HistorySnapshot) -> None:
        """Replace all elements with the contents of a snapshot, in its z-order."""
        by_id = {e.id: e for e in (*snapshot.annotations, *snapshot.text_elements)}
        elements = [by_id[element_id] for element_id in snapshot.order if element_id in by_id]
        if len(elements) != len(by_id):
            # Snapshots built without an order append the rest by category
            placed = set(snapshot.order)
            elements.extend(e for e in by_id.values() if e.id not in placed)

        self._pages.clear()
        self._page_of.clear()
        for element in elements:
            self._insert(element)

    # Form fields

    def bind_form_fields(self, fields: Iterable[FormField]) -> None:
        """Bind the fields detected in the base document."""
        self._form_fields = {f.name: f for f in fields}

    def set_form_field_value(self, name: str, value: str) -> FormField:
        """
        Set the value of a bound form field.

        Raises:
            NotFoundError: If no field with this name was detected
        """
        current = self._form_fields.get(name)
        if current is None:
            raise NotFoundError(f"No form field named {name!r}")
        updated = dataclasses.replace(current, value=str(value))
        self._form_fields[name] = updated
        return updated

    def form_fields(self, page_index: Optional[int] = None) -> List[FormField]:
        return [
            f for f in self._form_fields.values()
            if page_index is None or f.page_index == page_index
        ]

    # Internals

    def _iter(self, page_index: Optional[int]):
        if page_index is not None:
            yield from self._pages.get(page_index, {}).values()
            return
        for page in sorted(self._pages):
            yield from self._pages[page].values()

    def _insert(self, element: Element) -> None:
        self._pages.setdefault(element.page_index, {})[element.id] = element
        self._page_of[element.id] = element.page_index

    def _validated(self, element: Element) -> Element:
        if not isinstance(element, (Annotation, TextElement)):
            raise ValidationError(f"Unsupported element: {type(element).__name__}")
        element.validate()
        color = normalize_hex(element.color)
        if color != element.color:
            element = dataclasses.replace(element, color=color)
        return element

    def _next_id(self, element: Element) -> str:
        if isinstance(element, Annotation):
            prefix = element.annotation_type.value
        else:
            prefix = "text"
        element_id = f"{prefix}-{next(self._counter)}"
        while element_id in self._page_of:
            element_id = f"{prefix}-{next(self._counter)}"
        return element_id
