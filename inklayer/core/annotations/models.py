"""
Element data model: text elements, annotations and form fields.

Annotations are a tagged union. ``annotation_type`` is the tag and
``payload`` carries the kind-specific data, so a rectangle can never hold
points and a freeform path can never hold an image.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from ..colors import is_valid_hex
from ..errors import ValidationError


class AnnotationType(Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    HIGHLIGHT = "highlight"
    FREEFORM = "freeform"
    SIGNATURE = "signature"
    TEXT = "text"
    CHECKMARK = "checkmark"
    X_MARK = "x-mark"
    IMAGE = "image"


class FormFieldType(Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"


# ==============================================================================
# Annotation payloads
# ==============================================================================


@dataclass(frozen=True)
class PathPayload:
    """Flat point sequence x0, y0, x1, y1, ... in document space."""

    points: Tuple[float, ...]

    def __post_init__(self):
        points = tuple(float(p) for p in self.points)
        if len(points) < 4 or len(points) % 2:
            raise ValidationError(
                f"A path needs an even number of at least 4 coordinates, got {len(points)}"
            )
        object.__setattr__(self, "points", points)

    def pairs(self) -> List[Tuple[float, float]]:
        """Return the points as (x, y) tuples."""
        return list(zip(self.points[0::2], self.points[1::2]))

    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounding box of the path as (x, y, width, height)."""
        xs = self.points[0::2]
        ys = self.points[1::2]
        return min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys)


@dataclass(frozen=True)
class TextPayload:
    text: str
    font_size: float = 16.0

    def __post_init__(self):
        if not self.font_size or self.font_size <= 0:
            raise ValidationError(f"Font size must be positive, got {self.font_size}")


@dataclass(frozen=True)
class ImagePayload:
    """Reference to an image blob: a data URL or plain base64 string."""

    src: str

    def __post_init__(self):
        if not self.src:
            raise ValidationError("Image payload requires a source")


Payload = Union[PathPayload, TextPayload, ImagePayload]

_ALLOWED_PAYLOADS = {
    AnnotationType.RECTANGLE: (type(None),),
    AnnotationType.CIRCLE: (type(None),),
    AnnotationType.LINE: (type(None),),
    AnnotationType.HIGHLIGHT: (type(None),),
    AnnotationType.CHECKMARK: (type(None),),
    AnnotationType.X_MARK: (type(None),),
    AnnotationType.FREEFORM: (PathPayload,),
    AnnotationType.SIGNATURE: (PathPayload, ImagePayload),
    AnnotationType.TEXT: (TextPayload,),
    AnnotationType.IMAGE: (ImagePayload,),
}


def _check_number(name: str, value, allow_negative: bool = True) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    if not allow_negative and value < 0:
        raise ValidationError(f"{name} must not be negative, got {value!r}")


def _check_common(element, signed_extent: bool = False) -> None:
    if isinstance(element.page_index, bool) or not isinstance(element.page_index, int):
        raise ValidationError(f"page_index must be an integer, got {element.page_index!r}")
    if element.page_index < 0:
        raise ValidationError(f"page_index must not be negative, got {element.page_index}")
    _check_number("x", element.x)
    _check_number("y", element.y)
    _check_number("width", element.width, allow_negative=signed_extent)
    _check_number("height", element.height, allow_negative=signed_extent)
    if not is_valid_hex(element.color):
        raise ValidationError(f"Malformed color: {element.color!r}")


# ==============================================================================
# Elements
# ==============================================================================


@dataclass(frozen=True)
class Annotation:
    """A single shape, path, mark, text or image placed on a page."""

    page_index: int  # 0-based page index
    annotation_type: AnnotationType
    x: float
    y: float
    width: float
    height: float
    color: str = "#ff0000"
    stroke_width: float = 2.0
    payload: Optional[Payload] = None
    id: str = ""

    def __post_init__(self):
        if not isinstance(self.annotation_type, AnnotationType):
            raise ValidationError(f"Unknown annotation type: {self.annotation_type!r}")
        allowed = _ALLOWED_PAYLOADS[self.annotation_type]
        if not isinstance(self.payload, allowed):
            raise ValidationError(
                f"{self.annotation_type.value} annotation cannot carry "
                f"{type(self.payload).__name__}"
            )

    def validate(self) -> None:
        """Check geometry and color; raises ValidationError."""
        # A line runs from (x, y) to (x + width, y + height) in any direction
        _check_common(self, signed_extent=self.annotation_type == AnnotationType.LINE)
        _check_number("stroke_width", self.stroke_width, allow_negative=False)

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def points(self) -> Optional[Tuple[float, ...]]:
        if isinstance(self.payload, PathPayload):
            return self.payload.points
        return None

    @property
    def is_image(self) -> bool:
        """True for image annotations and signatures placed as a bitmap."""
        return isinstance(self.payload, ImagePayload)

    def to_dict(self) -> Dict:
        """Convert annotation to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "page_index": self.page_index,
            "type": self.annotation_type.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "color": self.color,
            "stroke_width": self.stroke_width,
        }

        if self.annotation_type in (AnnotationType.FREEFORM, AnnotationType.SIGNATURE):
            data["points"] = list(self.points) if self.points else []
        if self.annotation_type in (AnnotationType.SIGNATURE, AnnotationType.IMAGE):
            data["src"] = self.payload.src if self.is_image else None
        if self.annotation_type == AnnotationType.TEXT:
            data["text"] = self.payload.text
            data["font_size"] = self.payload.font_size

        return data

    @staticmethod
    def from_dict(data: Dict) -> "Annotation":
        """Create annotation from a canonical dictionary."""
        try:
            annotation_type = AnnotationType(data["type"])
        except (KeyError, ValueError):
            raise ValidationError(f"Unknown annotation type: {data.get('type')!r}") from None

        payload: Optional[Payload] = None
        if annotation_type == AnnotationType.TEXT:
            payload = TextPayload(str(data.get("text", "")), float(data.get("font_size", 16.0)))
        elif annotation_type == AnnotationType.IMAGE:
            payload = ImagePayload(data.get("src") or "")
        elif annotation_type == AnnotationType.FREEFORM:
            payload = PathPayload(tuple(data.get("points") or ()))
        elif annotation_type == AnnotationType.SIGNATURE:
            if data.get("src"):
                payload = ImagePayload(data["src"])
            else:
                payload = PathPayload(tuple(data.get("points") or ()))

        missing = [key for key in ("page_index", "x", "y", "width", "height") if key not in data]
        if missing:
            raise ValidationError(f"Annotation is missing {', '.join(missing)}")

        return Annotation(
            page_index=data["page_index"],
            annotation_type=annotation_type,
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
            color=data.get("color", "#ff0000"),
            stroke_width=data.get("stroke_width", 2.0),
            payload=payload,
            id=data.get("id", ""),
        )


@dataclass(frozen=True)
class TextElement:
    """A run of literal text placed on a page."""

    page_index: int
    x: float
    y: float
    text: str
    width: float = 0.0
    height: float = 0.0
    font_family: str = "Helvetica"
    font_size: float = 16.0
    color: str = "#000000"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    id: str = ""

    def validate(self) -> None:
        _check_common(self)
        _check_number("font_size", self.font_size, allow_negative=False)
        if self.font_size == 0:
            raise ValidationError("font_size must be positive")
        if not isinstance(self.text, str):
            raise ValidationError(f"text must be a string, got {self.text!r}")

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "page_index": self.page_index,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "text": self.text,
            "font_family": self.font_family,
            "font_size": self.font_size,
            "color": self.color,
            "bold": self.bold,
            "italic": self.italic,
            "underline": self.underline,
        }

    @staticmethod
    def from_dict(data: Dict) -> "TextElement":
        missing = [key for key in ("page_index", "x", "y") if key not in data]
        if missing:
            raise ValidationError(f"Text element is missing {', '.join(missing)}")
        return TextElement(
            page_index=data["page_index"],
            x=data["x"],
            y=data["y"],
            text=str(data.get("text", "")),
            width=data.get("width", 0.0),
            height=data.get("height", 0.0),
            font_family=data.get("font_family", "Helvetica"),
            font_size=data.get("font_size", 16.0),
            color=data.get("color", "#000000"),
            bold=bool(data.get("bold", False)),
            italic=bool(data.get("italic", False)),
            underline=bool(data.get("underline", False)),
            id=data.get("id", ""),
        )


@dataclass(frozen=True)
class FormField:
    """A form field that already exists in the base document."""

    name: str
    field_type: FormFieldType
    value: str
    rect: Tuple[float, float, float, float]  # x0, y0, x1, y1
    page_index: int
    options: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "type": self.field_type.value,
            "value": self.value,
            "rect": list(self.rect),
            "page_index": self.page_index,
            "options": list(self.options),
        }

    @staticmethod
    def from_dict(data: Dict) -> "FormField":
        try:
            field_type = FormFieldType(data["type"])
        except (KeyError, ValueError):
            raise ValidationError(f"Unknown form field type: {data.get('type')!r}") from None
        return FormField(
            name=data["name"],
            field_type=field_type,
            value=str(data.get("value", "")),
            rect=tuple(data.get("rect", (0.0, 0.0, 0.0, 0.0))),
            page_index=data.get("page_index", 0),
            options=tuple(data.get("options", ())),
        )


@dataclass(frozen=True)
class OcrResult:
    """One recognized word or line returned by an OCR engine."""

    text: str
    confidence: float  # 0-100
    bbox: Tuple[float, float, float, float]  # x0, y0, x1, y1


Element = Union[TextElement, Annotation]
