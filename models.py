from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
from enum import Enum

class StampStrategy(str, Enum):
    FIXED = "fixed"
    RELATIVE = "relative"

@dataclass(frozen=True)
class PageSize:
    """Unrotated content-box size in PDF points."""
    width: float
    height: float

@dataclass(frozen=True)
class PageGeometry:
    """
    Physical layout of one PDF page, independent of any signature.
    `original` is the unrotated box, already rounded to whole points.
    `rotation` is clockwise degrees, one of 0/90/180/270 once built by geometry_context.
    """
    page_number: int                           # 1-based
    original: PageSize
    rotation: int = 0
    origin: Tuple[float, float] = (0.0, 0.0)   # lower-left of the active box
    declared_rotation: int = 0                 # raw /Rotate before normalization/correction
    scanned_document: bool = False
    orientation_corrected: bool = False

@dataclass(frozen=True)
class RelativeBox:
    """Top-left corner and size as fractions (0..1) of the viewer viewport."""
    rx: float
    ry: float
    rw: float
    rh: float

@dataclass(frozen=True)
class StampSize:
    w: float
    h: float

@dataclass(frozen=True)
class StampConfig:
    strategy: Union[StampStrategy, str] = StampStrategy.RELATIVE
    fixed_size: Optional[StampSize] = None

@dataclass(frozen=True)
class ViewportSize:
    width: float   # Wv
    height: float  # Hv

@dataclass(frozen=True)
class OverlayResult:
    """Viewer-space rectangle, top-left origin, y grows downward."""
    viewport: ViewportSize
    x_v: float
    y_v: float
    w_v: float
    h_v: float

@dataclass(frozen=True)
class MergeResult:
    """PDF-space placement, bottom-left origin. (cx, cy) is the rotation pivot."""
    cx: float
    cy: float
    x: float
    y: float
    w: float
    h: float

@dataclass(frozen=True)
class PlacementResult:
    overlay: OverlayResult
    merge: MergeResult
    log: str

@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None

@dataclass
class SignatureStampRequest:
    """
    One signature to burn into a page.
    `image` holds encoded PNG/JPEG bytes.
    """
    page_number: int
    box: RelativeBox
    image: bytes
    stamp_config: StampConfig = field(default_factory=StampConfig)
    preserve_aspect: bool = True
    request_id: Optional[str] = None

@dataclass
class StampResult:
    """
    Represents the result of stamping signatures into a single PDF.
    """
    input: str                                  # Input PDF file path
    output: Optional[str] = None                # Output PDF file path
    success: bool = True
    error: Optional[str] = None
    applied: List[PlacementResult] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (request id or index, reason)
