"""Resize geometry for the four object modes.

Pure integer arithmetic: given the source size, the target size and an
ObjectMode, plan_geometry() returns the output size and (for cover) the
centered crop. No Pillow, no I/O.
"""

from dataclasses import dataclass
from enum import Enum

from resizer_py.errors import InvalidDimensions, InvalidRequest


class ObjectMode(str, Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    SCALE_DOWN = "scale-down"

    @classmethod
    def parse(cls, value) -> "ObjectMode":
        """Parse a request value, accepting 'scaledown' and 'scale_down' too."""
        if value is None:
            return cls.COVER
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidRequest(f"Invalid object_mode: {value!r}")
        normalized = value.strip().lower().replace("_", "-")
        if normalized == "scaledown":
            normalized = cls.SCALE_DOWN.value
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise InvalidRequest(f"Invalid object_mode {value!r}, expected one of: {allowed}") from None


@dataclass(frozen=True)
class Crop:
    """Rectangle in scaled-image pixels."""

    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height


@dataclass(frozen=True)
class GeometryPlan:
    output_size: tuple[int, int]
    scaled_size: tuple[int, int] | None = None
    crop: Crop | None = None

    def source_box(self, source_size: tuple[int, int]) -> tuple[float, float, float, float] | None:
        """Map the crop back onto the source image, clamped to its bounds.

        Lets the transformer crop and resample in a single Image.resize(box=...) call.
        """
        if self.crop is None or self.scaled_size is None:
            return None
        sw, sh = source_size
        scaled_w, scaled_h = self.scaled_size
        fx = sw / scaled_w
        fy = sh / scaled_h
        left = min(max(self.crop.left * fx, 0.0), sw)
        top = min(max(self.crop.top * fy, 0.0), sh)
        right = min(max(self.crop.right * fx, left), sw)
        bottom = min(max(self.crop.bottom * fy, top), sh)
        return left, top, right, bottom


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _round_div(a: int, b: int) -> int:
    """a / b rounded half up, for non-negative ints."""
    return (2 * a + b) // (2 * b)


def _fill(sw, sh, tw, th) -> GeometryPlan:
    return GeometryPlan(output_size=(tw, th))


def _contain(sw, sh, tw, th) -> GeometryPlan:
    # tw/sw <= th/sh means width is the constraining axis
    if tw * sh <= th * sw:
        w = tw
        h = min(max(_round_div(sh * tw, sw), 1), th)
    else:
        h = th
        w = min(max(_round_div(sw * th, sh), 1), tw)
    return GeometryPlan(output_size=(w, h))


def _cover(sw, sh, tw, th) -> GeometryPlan:
    # Ceiling so the scaled image is never smaller than the target
    if tw * sh >= th * sw:
        scaled_w = tw
        scaled_h = max(_ceil_div(sh * tw, sw), th)
    else:
        scaled_h = th
        scaled_w = max(_ceil_div(sw * th, sh), tw)

    left = min(max((scaled_w - tw) // 2, 0), scaled_w - tw)
    top = min(max((scaled_h - th) // 2, 0), scaled_h - th)
    return GeometryPlan(
        output_size=(tw, th),
        scaled_size=(scaled_w, scaled_h),
        crop=Crop(left=left, top=top, width=tw, height=th),
    )


def _scale_down(sw, sh, tw, th) -> GeometryPlan:
    if sw <= tw and sh <= th:
        return GeometryPlan(output_size=(sw, sh))
    return _contain(sw, sh, tw, th)


_PLANNERS = {
    ObjectMode.COVER: _cover,
    ObjectMode.CONTAIN: _contain,
    ObjectMode.FILL: _fill,
    ObjectMode.SCALE_DOWN: _scale_down,
}


def plan_geometry(
    source_size: tuple[int, int],
    target_size: tuple[int, int],
    mode: ObjectMode = ObjectMode.COVER,
) -> GeometryPlan:
    """Compute how a source of source_size is turned into target_size under mode."""
    sw, sh = source_size
    tw, th = target_size
    if sw <= 0 or sh <= 0:
        raise InvalidDimensions(f"Source image has no area: {sw}x{sh}")
    if tw <= 0 or th <= 0:
        raise InvalidDimensions(f"Width and height must be greater than 0, got {tw}x{th}")
    return _PLANNERS[ObjectMode(mode)](sw, sh, tw, th)
