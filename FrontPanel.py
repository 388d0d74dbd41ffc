#!/usr/bin/env python3

"""
Front Panel Generator
Panel formats: eurorack intellijel pulplogic

Table of Contents
   1. Setup
   2. Geometry
   3. Panel Formats
   4. Features
   5. Layout Generation
   6. Classification
   7. Rendering
   8. Panel Jobs
   9. Commands
"""

# ----------------------1. Setup----------------------------

import logging
import math
import os
import random
import re
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cache
from typing import Iterable, Optional, Union

import toml
from PIL import Image, ImageFont, ImageDraw
import drawsvg as svg

log = logging.getLogger('FrontPanel')

INCH = 25.4
"""millimetres per inch"""
POINT = INCH / 72
"""millimetres per typographic point"""


class PanelInputError(ValueError):
    """Caller-supplied parameters that cannot describe a panel."""


class InvalidWidthError(PanelInputError):
    pass


class UnknownFormatError(PanelInputError):
    pass


# ----------------------2. Geometry----------------------------


@dataclass(frozen=True)
class Point:
    """A location on a panel, in millimetres. Y increases upwards from the bottom edge."""
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y


# ----------------------3. Panel Formats----------------------------


class FormatName(Enum):
    EURORACK, INTELLIJEL, PULPLOGIC = 'eurorack', 'intellijel', 'pulplogic'

    @classmethod
    def from_str(cls, name):
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            valid = ' '.join(f.value for f in cls)
            raise UnknownFormatError(f'Unrecognized panel format: {name!r} (valid values: {valid})') from None


HP = 5.08
"""horizontal pitch of a Eurorack frame, in millimetres"""


@dataclass(frozen=True)
class FormatSpec:
    """Physical constants of a panel standard. All distances in millimetres."""
    name: FormatName
    height: float
    """total panel height, without tolerance adjustment"""
    pitch: float = HP
    """width of one panel unit"""
    extra_holes_threshold: int = 8
    """panels wider than this many units get a second pair of mounting holes"""
    holes_left_offset: float = 7.5
    """distance of the first pair of mounting holes from the left edge"""
    holes_right_offset: Optional[float] = None
    """distance of the extra holes from the right edge; None places them (units - 3) pitches right of the first pair"""
    hole_edge_y: float = 3.0
    """distance of the mounting hole centres from the top and bottom edges"""
    mounting_hole_diameter: float = 3.2
    horizontal_fit: float = 0.25
    """outline tolerance, taken off the left and right edges only"""
    corner_radius: float = 0.0
    rail_height_from_mounting_hole: float = 5.0
    """how far the mounting rail extends past the hole centre, towards the middle of the panel"""
    narrow_width: float = 5.0
    """physical width of a single-unit panel"""

    @property
    def hole_top_y(self):
        return self.height - self.hole_edge_y

    @property
    def hole_bottom_y(self):
        return self.hole_edge_y


class Formats:
    # Doepfer A-100. Lipped rails, so this is NOT the Eurocard height.
    Eurorack = FormatSpec(FormatName.EURORACK, height=128.5, extra_holes_threshold=8)
    # https://intellijel.com/support/1u-technical-specifications/
    Intellijel = FormatSpec(FormatName.INTELLIJEL, height=39.65, extra_holes_threshold=6)
    # http://pulplogic.com/1u_tiles/
    # Rail height is half a Vector T-strut, so the recommended 1.130" PCB fits between the keep-outs.
    Pulplogic = FormatSpec(FormatName.PULPLOGIC, height=1.70 * INCH, extra_holes_threshold=6,
                           holes_left_offset=0.2 * INCH, holes_right_offset=0.2 * INCH,
                           hole_edge_y=0.118 * INCH, mounting_hole_diameter=0.125 * INCH,
                           rail_height_from_mounting_hole=(0.291 / 2) * INCH)

    @classmethod
    def all(cls) -> tuple[FormatSpec, ...]:
        return cls.Eurorack, cls.Intellijel, cls.Pulplogic

    @classmethod
    def named(cls, name) -> FormatSpec:
        fmt = FormatName.from_str(name)
        return next(spec for spec in cls.all() if spec.name == fmt)


@dataclass(frozen=True)
class Panel:
    """
    Physical characteristics of one panel: a format and a width in that format's units.
    All coordinates, distances and sizes are in millimetres, origin at the bottom-left corner.
    """
    spec: FormatSpec
    units: int

    def __post_init__(self):
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise InvalidWidthError(f'width must be a whole number of units: {self.units!r}')
        if self.units < 1:
            raise InvalidWidthError(f'width must be greater than 0: {self.units}')

    @classmethod
    def make(cls, fmt, width: int):
        spec = fmt if isinstance(fmt, FormatSpec) else Formats.named(fmt)
        return cls(spec, width)

    def __str__(self):
        return f'{self.spec.name.value} {self.units}HP'

    @property
    def is_single_unit(self):
        # There's not a lot of meat left either side of an M3 screw hole on a 5mm panel.
        return self.units == 1

    @property
    def width(self) -> float:
        if self.is_single_unit:
            return self.spec.narrow_width
        return self.spec.pitch * self.units

    @property
    def height(self) -> float:
        return self.spec.height

    @property
    def mounting_hole_diameter(self) -> float:
        return self.spec.mounting_hole_diameter

    @property
    def horizontal_fit(self) -> float:
        """
        Tolerance taken off the outline's left and right edges, half on each side.
        Never applied to the holes or any other feature.
        """
        if self.is_single_unit:
            return 0.0
        return self.spec.horizontal_fit

    @property
    def corner_radius(self) -> float:
        return self.spec.corner_radius

    @property
    def rail_height_from_mounting_hole(self) -> float:
        return self.spec.rail_height_from_mounting_hole

    @property
    def mounting_hole_top_y(self) -> float:
        return self.spec.hole_top_y

    @property
    def mounting_hole_bottom_y(self) -> float:
        return self.spec.hole_bottom_y

    @property
    def header_location(self) -> Point:
        return Point(self.width / 2, self.mounting_hole_top_y)

    @property
    def footer_location(self) -> Point:
        return Point(self.width / 2, self.mounting_hole_bottom_y)

    @property
    def holes_left_x(self) -> float:
        if self.is_single_unit:
            return self.width / 2
        return self.spec.holes_left_offset

    @property
    def holes_right_x(self) -> float:
        s = self.spec
        if s.holes_right_offset is None:
            return s.holes_left_offset + s.pitch * (self.units - 3)
        return self.width - s.holes_right_offset

    @property
    def has_extra_holes(self):
        return self.units > self.spec.extra_holes_threshold

    @property
    def mounting_holes(self) -> list[Point]:
        columns = [self.holes_left_x]
        if self.has_extra_holes:
            columns.append(self.holes_right_x)
        return [Point(x, y) for x in columns for y in (self.mounting_hole_bottom_y, self.mounting_hole_top_y)]

    # Outline corners, adjusted for horizontal fit:

    @property
    def left_x(self):
        return self.horizontal_fit / 2

    @property
    def right_x(self):
        return self.width - self.horizontal_fit / 2

    @property
    def top_y(self):
        return self.height

    @property
    def bottom_y(self):
        return 0.0

    @property
    def top_left(self):
        return Point(self.left_x, self.top_y)

    @property
    def top_right(self):
        return Point(self.right_x, self.top_y)

    @property
    def bottom_left(self):
        return Point(self.left_x, self.bottom_y)

    @property
    def bottom_right(self):
        return Point(self.right_x, self.bottom_y)

    @property
    def rail_clearance_bounds(self) -> tuple[float, float, float, float]:
        """Area between the mounting rails as: (left, bottom, right, top)"""
        rail = self.rail_height_from_mounting_hole
        return (self.left_x, self.mounting_hole_bottom_y + rail,
                self.right_x, self.mounting_hole_top_y - rail)

    @property
    def interior_bounds(self) -> tuple[float, float, float, float]:
        """Safe area for cosmetic markings as: (left, bottom, right, top)"""
        x_inset = self.horizontal_fit * 2
        end_h = self.rail_height_from_mounting_hole + self.mounting_hole_bottom_y
        return x_inset, end_h, self.width - x_inset, self.height - end_h


# ----------------------4. Features----------------------------


class Purpose(Enum):
    """What a feature is for: visual legend, or material removed from the panel."""
    MARKING, CUTOUT = 'marking', 'cutout'


class HAlign(Enum): L, C, R = 'left', 'centre', 'right'


class VAlign(Enum): T, C, B = 'top', 'centre', 'bottom'


class Alignment(Enum):
    """Where a feature's origin sits on its bounding box."""
    TOP_LEFT = 'top-left'
    TOP_CENTRE = 'top-centre'
    TOP_RIGHT = 'top-right'
    CENTRE_LEFT = 'centre-left'
    CENTRE = 'centre'
    CENTRE_RIGHT = 'centre-right'
    BOTTOM_LEFT = 'bottom-left'
    BOTTOM_CENTRE = 'bottom-centre'
    BOTTOM_RIGHT = 'bottom-right'

    @property
    def h_align(self) -> HAlign:
        return HAlign(self.value.split('-')[-1])

    @property
    def v_align(self) -> VAlign:
        return VAlign(self.value.split('-')[0])


class FeatureBase:
    def with_purpose(self, purpose: Purpose):
        return replace(self, purpose=purpose)

    @property
    def is_cutout(self):
        return self.purpose == Purpose.CUTOUT


@dataclass(frozen=True)
class Line(FeatureBase):
    start: Point
    end: Point
    thickness: float = 0.0
    purpose: Purpose = Purpose.MARKING

    def __post_init__(self):
        if self.thickness < 0:
            raise ValueError(f'line thickness must not be negative: {self.thickness}')

    def __str__(self):
        return (f'Line(x1={self.start.x:.2f}, y1={self.start.y:.2f}, x2={self.end.x:.2f}, y2={self.end.y:.2f},'
                f' thickness={self.thickness:.2f}, purpose={self.purpose.value})')


@dataclass(frozen=True)
class Circle(FeatureBase):
    origin: Point
    radius: float
    purpose: Purpose = Purpose.MARKING

    def __post_init__(self):
        if self.radius < 0:
            raise ValueError(f'circle radius must not be negative: {self.radius}')

    def __str__(self):
        return f'Circle(x={self.origin.x:.2f}, y={self.origin.y:.2f}, r={self.radius:.2f}, purpose={self.purpose.value})'


DEFAULT_TEXT_SIZE = 14.0  # points, so about 4.93mm


@dataclass(frozen=True)
class TextOptions:
    alignment: Alignment = Alignment.TOP_LEFT
    size: float = DEFAULT_TEXT_SIZE
    """points"""
    rotation: float = 0.0
    """radians, counter-clockwise. 0 for normal orientation."""

    def __post_init__(self):
        if self.size < 0:
            raise ValueError(f'text size must not be negative: {self.size}')


@dataclass(frozen=True)
class Text(FeatureBase):
    origin: Point
    text: str
    options: TextOptions = TextOptions()
    purpose: Purpose = Purpose.MARKING

    @property
    def alignment(self):
        return self.options.alignment

    @property
    def size(self):
        return self.options.size

    @property
    def rotation(self):
        return self.options.rotation

    def __str__(self):
        return (f'Text(x={self.origin.x:.2f}, y={self.origin.y:.2f}, size={self.size:.2f},'
                f' align={self.alignment.value}, purpose={self.purpose.value}, text={self.text!r})')


Feature = Union[Line, Circle, Text]


# ----------------------5. Layout Generation----------------------------

OUTLINE_THICKNESS = 0.1
HEADER_FOOTER_SIZE = 16.0  # points, regardless of format
DEFAULT_DECORATION_COUNT = 100
DEFAULT_DECORATION_THICKNESSES = (0.0, 0.1, 0.2)


def panel_outline(p: Panel) -> list[Feature]:
    """The features of a blank panel: outline and mounting holes, all cutouts."""
    cut = Purpose.CUTOUT
    features: list[Feature] = [
        Line(p.top_left, p.top_right, OUTLINE_THICKNESS, cut),  # top
        Line(p.bottom_left, p.bottom_right, OUTLINE_THICKNESS, cut),  # bottom
        Line(p.top_left, p.bottom_left, OUTLINE_THICKNESS, cut),  # left
        Line(p.top_right, p.bottom_right, OUTLINE_THICKNESS, cut),  # right
    ]
    hole_r = p.mounting_hole_diameter / 2
    features.extend(Circle(centre, hole_r, cut) for centre in p.mounting_holes)
    return features


def panel_header_footer(p: Panel, header: str = '', footer: str = '') -> list[Feature]:
    # TODO: narrow panels (under about 6HP) clip a 16pt legend; consider centre-right alignment for those.
    opts = TextOptions(alignment=Alignment.CENTRE, size=HEADER_FOOTER_SIZE)
    features: list[Feature] = []
    if header:
        features.append(Text(p.header_location, header, opts))
    if footer:
        features.append(Text(p.footer_location, footer, opts))
    return features


def check_decoration(count: int, thicknesses: Iterable[float]) -> tuple[float, ...]:
    """Validates decoration parameters, returning the thickness choices as a tuple"""
    if isinstance(count, bool) or not isinstance(count, int):
        raise PanelInputError(f'decoration count must be a whole number: {count!r}')
    if count < 0:
        raise PanelInputError(f'decoration count must not be negative: {count}')
    try:
        thicknesses = tuple(float(t) for t in thicknesses)
    except (TypeError, ValueError):
        raise PanelInputError(f'decoration thicknesses must be numbers: {thicknesses!r}') from None
    if not thicknesses or min(thicknesses) < 0:
        raise PanelInputError(f'decoration thicknesses must be non-negative and non-empty: {thicknesses}')
    return thicknesses


def decorative_fill(p: Panel, count: int = DEFAULT_DECORATION_COUNT, rng: Optional[random.Random] = None,
                    thicknesses: Iterable[float] = DEFAULT_DECORATION_THICKNESSES) -> list[Feature]:
    """
    Random lines between the rails, for looks only.
    :param count: number of lines
    :param rng: source of randomness; pass a seeded one for repeatable output
    :param thicknesses: line thickness choices, each equally likely
    """
    thicknesses = check_decoration(count, thicknesses)
    if rng is None:
        rng = random.Random()
    (x0, y0, x1, y1) = p.interior_bounds

    def rxy():
        return Point(rng.uniform(x0, x1), rng.uniform(y0, y1))

    return [Line(rxy(), rxy(), rng.choice(thicknesses)) for _ in range(count)]


# ----------------------6. Classification----------------------------


@dataclass(frozen=True)
class Diagnostic:
    message: str
    feature: object = None


@dataclass
class Buckets:
    """Features grouped by the fabrication layer they end up in."""
    outlines: list[Feature] = field(default_factory=list)
    """board edge cuts"""
    drills: list[Circle] = field(default_factory=list)
    decorations: list[Feature] = field(default_factory=list)
    """silkscreen/etch markings"""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def warn(self, message: str, feature=None):
        log.warning(message)
        self.diagnostics.append(Diagnostic(message, feature))


def classify(features: Iterable[Feature]) -> Buckets:
    result = Buckets()
    for f in features:
        if isinstance(f, Line):
            (result.outlines if f.is_cutout else result.decorations).append(f)
        elif isinstance(f, Circle):
            # FIXME: fabs limit drill sizes (6.3mm at JLCPCB), larger cutout circles may belong in the outline.
            (result.drills if f.is_cutout else result.decorations).append(f)
        elif isinstance(f, Text):
            if f.is_cutout:
                result.warn(f'text feature in outline layer is probably an error: {f}', f)
                result.outlines.append(f)
            else:
                result.decorations.append(f)
        else:
            result.warn(f'unsupported feature type dropped: {type(f).__name__}', f)
    return result


# ----------------------7. Rendering----------------------------

FF = 255


class Color(Enum):
    WHITE, BLACK = (FF, FF, FF), (0, 0, 0)
    RED, GREEN, BLUE = (FF, 0, 0), (0, FF, 0), (0, 0, FF)
    CYAN, MAGENTA = (0, FF, FF), (FF, 0, FF)
    GREY = (127, 127, 127)
    COPPER = (218, 165, 112)

    @staticmethod
    def to_pil(col_spec):
        return col_spec.value if isinstance(col_spec, Color) else col_spec

    @classmethod
    def to_str(cls, col_spec):
        col = cls.to_pil(col_spec)
        if isinstance(col, tuple):
            return f'rgb({col[0]},{col[1]},{col[2]})'
        return col

    @classmethod
    def from_str(cls, color: str):
        return getattr(cls, color.upper(), color)


class OutFormat(Enum):
    PNG, SVG = 'png', 'svg'


class Font:
    @classmethod
    @cache
    def get_truetype_font(cls, font_name: str, fs: int):
        if not font_name.endswith('.ttf'): font_name += '.ttf'
        try:
            return ImageFont.truetype(font_name, fs)
        except OSError:
            log.debug('Font %s not found, using the Pillow default', font_name)
            return ImageFont.load_default(fs)


@dataclass(frozen=True)
class Style:
    bg: Color = Color.WHITE
    cut_color: Color = Color.RED
    """board outline"""
    drill_color: Color = Color.CYAN
    etch_color: Color = Color.BLUE
    """markings"""
    copper_color: Color = Color.COPPER
    keepout_color: Color = Color.GREY
    font_family: str = 'DejaVu Sans Mono'
    font_file: str = 'DejaVuSansMono-Bold'
    font_weight: str = 'bold'
    hairline_w: float = 0.05
    """stroke width used for zero-thickness lines and circles, in mm"""

    @classmethod
    def from_dict(cls, style_def: dict):
        style_def = dict(style_def)
        for key in ('bg', 'cut_color', 'drill_color', 'etch_color', 'copper_color', 'keepout_color'):
            if key in style_def:
                style_def[key] = Color.from_str(style_def[key])
        unknown = set(style_def) - set(cls.__dataclass_fields__)
        if unknown:
            raise PanelInputError(f'Unrecognized style keys: {", ".join(sorted(unknown))}')
        return cls(**style_def)


class Out:
    """Drawing surface; coordinates are output units with Y down."""
    def __init__(self, r):
        self.r = r
    def fill_rect(self, x0, y0, dx, dy, col): pass
    def draw_box(self, x0, y0, dx, dy, col, width=1): pass
    def draw_line(self, x0, y0, x1, y1, col, width=1): pass
    def draw_circle(self, xc, yc, r, col, width=1): pass
    def draw_text(self, x, y, text: str, size: float, al: Alignment, rotation: float, col, style: 'Style'): pass


class RasterOut(Out):
    r: Optional[ImageDraw.ImageDraw] = None

    @classmethod
    def for_image(cls, i: Image.Image):
        return cls(ImageDraw.Draw(i))

    def fill_rect(self, x0, y0, dx, dy, col):
        self.r.rectangle((x0, y0, x0 + dx, y0 + dy), fill=Color.to_pil(col))

    def draw_box(self, x0, y0, dx, dy, col, width=1):
        self.r.rectangle((x0, y0, x0 + dx, y0 + dy), outline=Color.to_pil(col), width=max(1, round(width)))

    def draw_line(self, x0, y0, x1, y1, col, width=1):
        self.r.line((x0, y0, x1, y1), fill=Color.to_pil(col), width=max(1, round(width)))

    def draw_circle(self, xc, yc, r, col, width=1):
        self.r.ellipse((xc - r, yc - r, xc + r, yc + r), outline=Color.to_pil(col), width=max(1, round(width)))

    @staticmethod
    def align_offset(w, h, al: Alignment):
        """Offset of the top-left corner of a w x h box from the anchor point"""
        dx = {HAlign.L: 0, HAlign.C: -w / 2, HAlign.R: -w}[al.h_align]
        dy = {VAlign.T: 0, VAlign.C: -h / 2, VAlign.B: -h}[al.v_align]
        return dx, dy

    def draw_text(self, x, y, text: str, size: float, al: Alignment, rotation: float, col, style: 'Style'):
        font = Font.get_truetype_font(style.font_file, max(1, round(size)))
        (x1, y1, x2, y2) = font.getbbox(text)
        w, h = math.ceil(x2 - x1), math.ceil(y2 - y1)
        if not rotation:
            dx, dy = self.align_offset(w, h, al)
            self.r.text((x + dx - x1, y + dy - y1), text, font=font, fill=Color.to_pil(col))
            return
        # Rotated text is drawn on its own layer, then pasted with the rotated box aligned to the anchor.
        layer = Image.new('L', (max(1, w), max(1, h)), 0)
        ImageDraw.Draw(layer).text((-x1, -y1), text, font=font, fill=FF)
        layer = layer.rotate(math.degrees(rotation), expand=True)
        dx, dy = self.align_offset(layer.width, layer.height, al)
        self.r.bitmap((round(x + dx), round(y + dy)), layer, fill=Color.to_pil(col))


class SVGOut(Out):
    r: Optional[svg.Drawing] = None

    text_anchors = {HAlign.L: 'start', HAlign.C: 'middle', HAlign.R: 'end'}
    baselines = {VAlign.T: 'hanging', VAlign.C: 'central', VAlign.B: 'text-after-edge'}

    @classmethod
    def for_drawing(cls, i: svg.Drawing):
        return cls(i)

    def fill_rect(self, x0, y0, dx, dy, col):
        self.r.append(svg.Rectangle(x0, y0, dx, dy, fill=Color.to_str(col)))

    def draw_box(self, x0, y0, dx, dy, col, width=1):
        self.r.append(svg.Rectangle(x0, y0, dx, dy, fill='none', stroke=Color.to_str(col), stroke_width=width))

    def draw_line(self, x0, y0, x1, y1, col, width=1):
        self.r.append(svg.Line(x0, y0, x1, y1, stroke=Color.to_str(col), stroke_width=width, stroke_linecap='round'))

    def draw_circle(self, xc, yc, r, col, width=1):
        self.r.append(svg.Circle(xc, yc, r, fill='none', stroke=Color.to_str(col), stroke_width=width))

    def draw_text(self, x, y, text: str, size: float, al: Alignment, rotation: float, col, style: 'Style'):
        kwargs = {}
        if rotation:
            # SVG rotates clockwise with Y down
            kwargs['transform'] = f'rotate({-math.degrees(rotation):.3f} {x:.3f} {y:.3f})'
        self.r.append(svg.Text(text, size, x, y, font_family=style.font_family, font_weight=style.font_weight,
                               fill=Color.to_str(col), text_anchor=self.text_anchors[al.h_align],
                               dominant_baseline=self.baselines[al.v_align], **kwargs))


@dataclass(frozen=True)
class Renderer:
    """Draws panel features (millimetres, Y up) onto an output surface."""
    r: Optional[Out] = None
    panel: Optional[Panel] = None
    style: Optional[Style] = None
    px_per_mm: float = 1
    margin: float = 2.0
    """mm of empty space around the panel"""

    PixelsPerMM = 10

    @classmethod
    def to_image(cls, i, p: Panel, s: Style):
        if isinstance(i, Image.Image):
            return cls(RasterOut.for_image(i), p, s, px_per_mm=cls.PixelsPerMM)
        elif isinstance(i, svg.Drawing):
            return cls(SVGOut.for_drawing(i), p, s)
        raise TypeError(f'Unsupported image type: {type(i).__name__}')

    @classmethod
    def canvas_wh(cls, p: Panel, out_format: OutFormat, margin: float = margin):
        scale = cls.PixelsPerMM if out_format == OutFormat.PNG else 1
        return (p.width + 2 * margin) * scale, (p.height + 2 * margin) * scale

    def xy(self, pt: Point) -> tuple[float, float]:
        return (self.margin + pt.x) * self.px_per_mm, (self.margin + self.panel.height - pt.y) * self.px_per_mm

    def stroke_w(self, mm: float):
        return max(mm, self.style.hairline_w) * self.px_per_mm

    def draw_feature(self, f: Feature, col):
        if isinstance(f, Line):
            (x0, y0), (x1, y1) = self.xy(f.start), self.xy(f.end)
            self.r.draw_line(x0, y0, x1, y1, col, self.stroke_w(f.thickness))
        elif isinstance(f, Circle):
            (xc, yc) = self.xy(f.origin)
            self.r.draw_circle(xc, yc, f.radius * self.px_per_mm, col, self.stroke_w(0))
        elif isinstance(f, Text):
            (x, y) = self.xy(f.origin)
            self.r.draw_text(x, y, f.text, f.size * POINT * self.px_per_mm, f.alignment, f.rotation, col, self.style)
        else:
            raise TypeError(f'Cannot render unknown feature type: {type(f).__name__}')

    def draw_area(self, bounds: tuple[float, float, float, float], col, filled=True):
        (left, bottom, right, top) = bounds
        (x0, y0), (x1, y1) = self.xy(Point(left, top)), self.xy(Point(right, bottom))
        if filled:
            self.r.fill_rect(x0, y0, x1 - x0, y1 - y0, col)
        else:
            self.r.draw_box(x0, y0, x1 - x0, y1 - y0, col, self.stroke_w(0))

    def draw_copper(self):
        """Fill the area between the rails; PCB shops get confused without a copper layer."""
        self.draw_area(self.panel.rail_clearance_bounds, self.style.copper_color)

    def draw_keepouts(self):
        """Outline the bands covered by the mounting rails"""
        p = self.panel
        (left, bottom, right, top) = p.rail_clearance_bounds
        for band in ((left, p.bottom_y, right, bottom), (left, top, right, p.top_y)):
            self.draw_area(band, self.style.keepout_color, filled=False)


def image_for_rendering(p: Panel, out_format: OutFormat, style: Style = Style()):
    (w, h) = Renderer.canvas_wh(p, out_format)
    if out_format == OutFormat.PNG:
        return Image.new('RGB', (round(w), round(h)), Color.to_pil(style.bg))
    elif out_format == OutFormat.SVG:
        drawing = svg.Drawing(w, h, id_prefix='def_')
        drawing.set_render_size(f'{w:g}mm', f'{h:g}mm')
        drawing.append(svg.Rectangle(0, 0, w, h, fill=Color.to_str(style.bg)))
        return drawing


def render_panel(p: Panel, buckets: Buckets, out_format: OutFormat, style: Style = Style(),
                 copper: bool = False, debug: bool = False):
    """Draw classified features: etch first, then drills, then the outline on top."""
    img = image_for_rendering(p, out_format, style)
    r = Renderer.to_image(img, p, style)
    if copper:
        r.draw_copper()
    if debug:
        r.draw_keepouts()
    for f in buckets.decorations:
        r.draw_feature(f, style.etch_color)
    for f in buckets.drills:
        r.draw_feature(f, style.drill_color)
    for f in buckets.outlines:
        r.draw_feature(f, style.cut_color)
    return img


def save_image(img_to_save, basename: str, output_suffix=None):
    output_filename = f"{basename}{'.' + output_suffix if output_suffix else ''}"
    output_full_path = os.path.abspath(output_filename)
    if isinstance(img_to_save, Image.Image):
        output_full_path += '.png'
        img_to_save.save(output_full_path, 'PNG')
    elif isinstance(img_to_save, svg.Drawing):
        output_full_path += '.svg'
        img_to_save.save_svg(output_full_path)
    print(f'Result saved to: file://{output_full_path}')
    return output_full_path


# --------------------------8. Panel Jobs----------------------------


@dataclass(frozen=True)
class PanelJob:
    """Everything needed to lay out one panel."""
    name: str
    panel: Panel
    header: str = ''
    footer: str = ''
    decoration_count: int = 0
    decoration_seed: Optional[int] = None
    """None draws a different pattern every run"""
    decoration_thicknesses: tuple[float, ...] = DEFAULT_DECORATION_THICKNESSES
    style: Style = Style()

    @classmethod
    def make(cls, fmt='eurorack', width: int = 8, name: Optional[str] = None, header: str = '', footer: str = '',
             decoration_count: int = 0, decoration_seed: Optional[int] = None,
             decoration_thicknesses=DEFAULT_DECORATION_THICKNESSES, style: Style = Style()):
        p = Panel.make(fmt, width)
        decoration_thicknesses = check_decoration(decoration_count, decoration_thicknesses)
        return cls(name=name or f'{p.spec.name.value}-{p.units}', panel=p, header=header or '',
                   footer=footer or '', decoration_count=decoration_count, decoration_seed=decoration_seed,
                   decoration_thicknesses=decoration_thicknesses, style=style)

    @classmethod
    def from_dict(cls, job_def: dict):
        decoration = job_def.get('decoration', {})
        return cls.make(fmt=job_def.get('format', FormatName.EURORACK.value), width=job_def.get('width', 8),
                        name=job_def.get('name'), header=job_def.get('header', ''), footer=job_def.get('footer', ''),
                        decoration_count=decoration.get('count', 0), decoration_seed=decoration.get('seed'),
                        decoration_thicknesses=decoration.get('thicknesses', DEFAULT_DECORATION_THICKNESSES),
                        style=Style.from_dict(job_def.get('style', {})))

    @classmethod
    def from_toml_file(cls, toml_filename: str):
        return cls.from_dict(toml.load(toml_filename))

    example_dir_path = os.path.join(os.path.dirname(os.path.realpath(__file__)), 'examples')

    @classmethod
    def from_example(cls, example_name: str):
        path = os.path.join(cls.example_dir_path, f'Panel-{example_name}.toml')
        if not os.path.exists(path):
            raise PanelInputError(f'No panel file or example named: {example_name}')
        return cls.from_toml_file(path)

    @classmethod
    def load(cls, panel_name):
        return cls.from_toml_file(panel_name) if os.path.exists(panel_name) else cls.from_example(panel_name)

    @classmethod
    def example_names(cls):
        for fn in sorted(os.listdir(cls.example_dir_path)):
            if match := re.match(r'Panel-(.*)\.toml$', fn):
                yield match.group(1)


def panel_features(job: PanelJob) -> list[Feature]:
    """Outline, legends, then decoration, in that order."""
    p = job.panel
    features = panel_outline(p) + panel_header_footer(p, job.header, job.footer)
    if job.decoration_count:
        features += decorative_fill(p, job.decoration_count, random.Random(job.decoration_seed),
                                    job.decoration_thicknesses)
    log.info('%s: %d features on %s (%.2fmm x %.2fmm)', job.name, len(features), p, p.width, p.height)
    return features


# ----------------------9. Commands------------------------------------------


def main(argv=None):
    """CLI processor for laying out and rendering a panel."""
    import argparse
    args_parser = argparse.ArgumentParser(description='Generate a modular synthesizer front panel')
    args_parser.add_argument('--format',
                             default=FormatName.EURORACK.value,
                             choices=[f.value for f in FormatName],
                             help='Panel format to generate')
    args_parser.add_argument('--width',
                             type=int,
                             default=8,
                             help='Panel width, in units appropriate for the format')
    args_parser.add_argument('--name',
                             help='Basename for output files (defaults to format-width)')
    args_parser.add_argument('--header', default='', help='Header text for the panel')
    args_parser.add_argument('--footer', default='', help='Footer text for the panel')
    args_parser.add_argument('--decorations',
                             type=int,
                             default=0,
                             help='Number of random decorative lines between the rails')
    args_parser.add_argument('--seed',
                             type=int,
                             help='Random seed for repeatable decorations')
    args_parser.add_argument('--panel',
                             help='Panel TOML file or example name; replaces the options above')
    args_parser.add_argument('--out-format',
                             default=OutFormat.SVG.value,
                             choices=[f.value for f in OutFormat],
                             help='Output format (SVG for laser/CAD tooling, PNG for preview)')
    args_parser.add_argument('--suffix',
                             help='Output filename suffix for variations')
    args_parser.add_argument('--copper',
                             action='store_true',
                             help='Fill the area between the rails')
    args_parser.add_argument('--debug',
                             action='store_true',
                             help='Render debug indications (rail keep-out bands)')
    args_parser.add_argument('--verbose',
                             action='store_true',
                             help='Log layout details')
    cli_args = args_parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if cli_args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    out_format: OutFormat = OutFormat(cli_args.out_format)

    try:
        if cli_args.panel:
            job = PanelJob.load(cli_args.panel)
        else:
            job = PanelJob.make(cli_args.format, cli_args.width, name=cli_args.name,
                                header=cli_args.header, footer=cli_args.footer,
                                decoration_count=cli_args.decorations, decoration_seed=cli_args.seed)
    except (PanelInputError, toml.TomlDecodeError) as e:
        args_parser.error(str(e))

    start_time = time.process_time()
    buckets = classify(panel_features(job))
    print(f'Panel layout: {len(buckets.outlines)} outline, {len(buckets.drills)} drill,'
          f' {len(buckets.decorations)} decoration features')
    if buckets.diagnostics:
        print(f'{len(buckets.diagnostics)} feature(s) flagged for review')
    img = render_panel(job.panel, buckets, out_format, job.style, copper=cli_args.copper, debug=cli_args.debug)
    print(f'Panel render finished at: {round(time.process_time() - start_time, 3)} seconds')
    save_image(img, f'{job.name}.Panel', cli_args.suffix)


if __name__ == '__main__':
    main()
