"""
I/O utilities for the table reconstruction harness.

Handles:
- Zone and OCR text loading from JSON
- Image loading and saving for debug overlays
- JSON serialization
- Directory management
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .geometry import BoundingBox, Line, Orientation, Zone
from .text_binding import TextFragment

logger = logging.getLogger(__name__)


# ============================================================================
# Input Parsing
# ============================================================================

def parse_line(data: Dict[str, Any]) -> Line:
    """
    Build a Line from its JSON form.

    Raises:
        ValueError: If the orientation is unknown or a coordinate is missing
    """
    try:
        orientation = Orientation(str(data["orientation"]).lower())
    except (KeyError, ValueError):
        raise ValueError(f"Invalid line orientation in {data!r}") from None

    try:
        return Line(
            orientation=orientation,
            x1=float(data["x1"]),
            y1=float(data["y1"]),
            x2=float(data["x2"]),
            y2=float(data["y2"]),
            confidence=float(data.get("confidence", 1.0))
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid line {data!r}: {e}") from None


def parse_zone(data: Dict[str, Any]) -> Zone:
    """Build a Zone, with its rulings, from its JSON form."""
    try:
        return Zone(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            kind=str(data.get("kind", "table")),
            lines=tuple(parse_line(l) for l in data.get("lines", []))
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid zone {data!r}: {e}") from None


def parse_fragment(data: Dict[str, Any]) -> TextFragment:
    """Build a TextFragment; ``bbox`` is ``[x1, y1, x2, y2]``."""
    try:
        x1, y1, x2, y2 = (float(v) for v in data["bbox"])
        return TextFragment(
            text=str(data["text"]),
            bbox=BoundingBox(x1, y1, x2, y2),
            confidence=float(data.get("confidence", 0.8))
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid text fragment {data!r}: {e}") from None


def load_zones(data: Union[Dict[str, Any], str, Path]) -> List[Zone]:
    """
    Load zones from a parsed document or a JSON file path.

    Args:
        data: Dict with a ``zones`` list, or path to such a JSON file

    Returns:
        Zones in file order
    """
    if isinstance(data, (str, Path)):
        data = load_json(data)
    if not isinstance(data, dict) or not isinstance(data.get("zones"), list):
        raise ValueError("Input must be an object with a 'zones' list")

    zones = [parse_zone(z) for z in data["zones"]]
    logger.debug(f"Loaded {len(zones)} zone(s)")
    return zones


def load_text(data: Union[Dict[str, Any], str, Path]) -> Union[None, str, List[TextFragment]]:
    """
    Load OCR text from a parsed document or a JSON file path.

    Returns:
        None when absent, the blob when ``text`` is a string, otherwise a
        list of fragments
    """
    if isinstance(data, (str, Path)):
        data = load_json(data)
    if not isinstance(data, dict):
        raise ValueError("Input must be a JSON object")

    text = data.get("text")
    if text is None or isinstance(text, str):
        return text
    if isinstance(text, list):
        return [parse_fragment(f) for f in text]
    raise ValueError(f"Unsupported 'text' value of type {type(text).__name__}")


# ============================================================================
# Image Loading
# ============================================================================

def load_image(
    image_path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from file.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be decoded
    """
    import cv2

    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    img = cv2.imread(str(image_path), flag)

    if img is None:
        raise ValueError(f"Could not decode image: {image_path}")

    logger.debug(f"Loaded image: {image_path}, shape: {img.shape}")
    return img


def save_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    quality: int = 95
) -> Path:
    """Save an image to file, creating parent directories."""
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() in ('.jpg', '.jpeg'):
        cv2.imwrite(str(output_path), image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    else:
        cv2.imwrite(str(output_path), image)

    logger.debug(f"Saved image: {output_path}")
    return output_path


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, Table, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {json_path}: {e}") from e


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def output_stem(input_path: Union[str, Path], suffix: Optional[str] = None) -> str:
    """File stem for outputs derived from ``input_path``."""
    stem = Path(input_path).stem
    return f"{stem}_{suffix}" if suffix else stem
