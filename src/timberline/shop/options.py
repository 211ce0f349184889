"""
Option schemas for the configurable product categories.

Each category exposes an ordered list of ``ProductConfigurationOption``.
A ConfigurationState is a plain ``dict`` mapping option id to the chosen
value; ``default_configuration`` builds one and ``validate_configuration``
checks that one is complete before it is priced or added to a basket.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any, Dict, List, Optional, Tuple

from timberline.utils.errors import NotFoundError, ValidationError


class OptionKind(StrEnum):
    SELECT = "select"  # single-choice
    RADIO = "radio"  # single-choice
    SLIDER = "slider"  # numeric-range
    CHECKBOX = "checkbox"  # boolean-toggle
    DIMENSIONS = "dimensions"  # fixed-dimensions
    AREA = "area"  # area-with-computed-or-direct-value


CHOICE_KINDS = (OptionKind.SELECT, OptionKind.RADIO)
DIMENSION_KEYS = ("length", "width", "thickness")


@dataclass(frozen=True)
class OptionChoice:
    value: str
    label: str


@dataclass(frozen=True)
class ProductConfigurationOption:
    id: str
    label: str
    kind: OptionKind
    default: Any
    choices: Tuple[OptionChoice, ...] = ()
    min: Optional[int] = None
    max: Optional[int] = None
    step: Optional[int] = None
    unit: Optional[str] = None

    def choice_label(self, value: str) -> str:
        for choice in self.choices:
            if choice.value == value:
                return choice.label
        return str(value)


@dataclass(frozen=True)
class CategorySchema:
    key: str
    title: str
    description: str
    options: Tuple[ProductConfigurationOption, ...]


def _choices(*pairs: Tuple[str, str]) -> Tuple[OptionChoice, ...]:
    return tuple(OptionChoice(value, label) for value, label in pairs)


_TRUSS = _choices(("curved", "Curved"), ("straight", "Straight"))

GARAGES = CategorySchema(
    key="garages",
    title="Configure Your Garage",
    description="Customise your oak frame garage with the options below.",
    options=(
        ProductConfigurationOption(
            "bays", "Number of Bays (Added from Left)", OptionKind.SLIDER, 2, min=1, max=4, step=1
        ),
        ProductConfigurationOption(
            "beamSize",
            "Structural Beam Sizes",
            OptionKind.SELECT,
            "6x6",
            _choices(("6x6", "6 inch x 6 inch"), ("7x7", "7 inch x 7 inch"), ("8x8", "8 inch x 8 inch")),
        ),
        ProductConfigurationOption("trussType", "Truss Type", OptionKind.RADIO, "curved", _TRUSS),
        ProductConfigurationOption(
            "baySize",
            "Size Per Bay",
            OptionKind.SELECT,
            "standard",
            _choices(("standard", "Standard (e.g., 3m wide)"), ("large", "Large (e.g., 3.5m wide)")),
        ),
        ProductConfigurationOption(
            "catSlide", "Include Cat Slide Roof? (Applies to all bays)", OptionKind.CHECKBOX, False
        ),
    ),
)

GAZEBOS = CategorySchema(
    key="gazebos",
    title="Configure Your Gazebo",
    description="Customise your oak frame gazebo with the options below.",
    options=(
        ProductConfigurationOption(
            "size",
            "Gazebo Size",
            OptionKind.SELECT,
            "medium",
            _choices(("small", "Small (2m x 2m)"), ("medium", "Medium (3m x 3m)"), ("large", "Large (4m x 4m)")),
        ),
        ProductConfigurationOption(
            "roofStyle",
            "Roof Style",
            OptionKind.RADIO,
            "pitched",
            _choices(("pitched", "Pitched"), ("hipped", "Hipped")),
        ),
        ProductConfigurationOption(
            "sides", "Number of Enclosed Sides", OptionKind.SLIDER, 0, min=0, max=4, step=1
        ),
        ProductConfigurationOption("floor", "Include Floor", OptionKind.CHECKBOX, False),
    ),
)

PORCHES = CategorySchema(
    key="porches",
    title="Configure Your Porch",
    description="Customise your oak frame porch with the options below.",
    options=(
        ProductConfigurationOption("trussType", "Truss Type", OptionKind.RADIO, "curved", _TRUSS),
        ProductConfigurationOption(
            "legType",
            "Leg Type",
            OptionKind.SELECT,
            "floor",
            _choices(("floor", "Legs to Floor"), ("wall", "Legs to Wall")),
        ),
        ProductConfigurationOption(
            "sizeType",
            "Size Type",
            OptionKind.SELECT,
            "standard",
            _choices(
                ("narrow", "Narrow (e.g., 1.5m Wide)"),
                ("standard", "Standard (e.g., 2m Wide)"),
                ("wide", "Wide (e.g., 2.5m Wide)"),
            ),
        ),
    ),
)

OAK_BEAMS = CategorySchema(
    key="oak-beams",
    title="Configure Your Oak Beams",
    description="Choose the oak type and cut dimensions of your beam.",
    options=(
        ProductConfigurationOption(
            "oakType",
            "Oak Type",
            OptionKind.SELECT,
            "green",
            _choices(("reclaimed", "Reclaimed Oak"), ("kilned", "Kiln Dried Oak"), ("green", "Green Oak")),
        ),
        ProductConfigurationOption(
            "dimensions",
            "Dimensions (cm)",
            OptionKind.DIMENSIONS,
            {"length": 200, "width": 15, "thickness": 15},
            max=2000,
            unit="cm",
        ),
    ),
)

OAK_FLOORING = CategorySchema(
    key="oak-flooring",
    title="Configure Your Oak Flooring",
    description="Enter the floor area directly or as length x width.",
    options=(
        ProductConfigurationOption(
            "flooringType",
            "Flooring Type",
            OptionKind.SELECT,
            "engineered",
            _choices(("solid", "Solid Oak"), ("engineered", "Engineered Oak")),
        ),
        ProductConfigurationOption(
            "finish",
            "Finish",
            OptionKind.SELECT,
            "natural",
            _choices(("natural", "Natural"), ("lacquered", "Lacquered"), ("oiled", "Oiled")),
        ),
        ProductConfigurationOption(
            "area",
            "Area (m²)",
            OptionKind.AREA,
            {"area": 25, "length": None, "width": None},
            max=1000,
            unit="m²",
        ),
    ),
)

CATEGORY_SCHEMAS: Dict[str, CategorySchema] = {
    schema.key: schema for schema in (GARAGES, GAZEBOS, PORCHES, OAK_BEAMS, OAK_FLOORING)
}


def categories() -> List[str]:
    return list(CATEGORY_SCHEMAS)


def get_schema(category: str) -> CategorySchema:
    try:
        return CATEGORY_SCHEMAS[category]
    except KeyError:
        raise NotFoundError("category", category) from None


def get_options(category: str) -> List[ProductConfigurationOption]:
    """Ordered option list for a category; NotFoundError for unknown categories."""
    return list(get_schema(category).options)


def category_title(category: str) -> str:
    return get_schema(category).title


def default_configuration(category: str) -> Dict[str, Any]:
    return {opt.id: copy.deepcopy(opt.default) for opt in get_options(category)}


# ---------------------------
# Validation
# ---------------------------


def _number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None or value == "":
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _plain(number: Decimal) -> Any:
    return int(number) if number == number.to_integral_value() else float(number)


def _in_range(number: Optional[Decimal], limit: int) -> Optional[Decimal]:
    return number if number is not None and 0 < number <= limit else None


def _check_option(
    opt: ProductConfigurationOption, value: Any, errors: Dict[str, List[str]]
) -> Any:
    if opt.kind in CHOICE_KINDS:
        allowed = [c.value for c in opt.choices]
        if value not in allowed:
            errors.setdefault(opt.id, []).append(f"Choose one of: {', '.join(allowed)}.")
        return value

    if opt.kind == OptionKind.CHECKBOX:
        if not isinstance(value, bool):
            errors.setdefault(opt.id, []).append("Must be true or false.")
        return value

    if opt.kind == OptionKind.SLIDER:
        # sliders in the storefront report a one-element list
        if isinstance(value, (list, tuple)) and len(value) == 1:
            value = value[0]
        number = _number(value)
        if number is None or number != number.to_integral_value():
            errors.setdefault(opt.id, []).append("Must be a whole number.")
            return value
        if not opt.min <= number <= opt.max:
            errors.setdefault(opt.id, []).append(f"Must be between {opt.min} and {opt.max}.")
        elif (number - opt.min) % opt.step:
            errors.setdefault(opt.id, []).append(f"Must be in steps of {opt.step}.")
        return int(number)

    if opt.kind == OptionKind.DIMENSIONS:
        if not isinstance(value, dict):
            errors.setdefault(opt.id, []).append("Length, width and thickness are required.")
            return value
        result = {}
        for key in DIMENSION_KEYS:
            number = _number(value.get(key))
            if number is None or number <= 0:
                errors.setdefault(f"{opt.id}.{key}", []).append("Must be a positive number.")
                continue
            if number > opt.max:
                errors.setdefault(f"{opt.id}.{key}", []).append(f"Must be at most {opt.max} {opt.unit}.")
                continue
            result[key] = _plain(number)
        return result

    # OptionKind.AREA: a direct area wins, otherwise length x width (in metres)
    if not isinstance(value, dict):
        errors.setdefault(opt.id, []).append("Enter an area or a length and width.")
        return value
    area = _number(value.get("area"))
    length = _in_range(_number(value.get("length")), opt.max)
    width = _in_range(_number(value.get("width")), opt.max)
    if area is not None and area > 0:
        if area > opt.max:
            errors.setdefault(opt.id, []).append(f"Must be at most {opt.max} {opt.unit}.")
            return value
        return {
            "area": _plain(area),
            "length": None if length is None else _plain(length),
            "width": None if width is None else _plain(width),
        }
    if length is not None and width is not None:
        computed = (length * width).quantize(Decimal("0.01"))
        if computed > opt.max:
            errors.setdefault(opt.id, []).append(f"Must be at most {opt.max} {opt.unit}.")
            return value
        return {"area": _plain(computed), "length": _plain(length), "width": _plain(width)}
    errors.setdefault(opt.id, []).append("Enter a positive area or a positive length and width.")
    return value


def validate_configuration(category: str, configuration: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a normalised copy of ``configuration``.

    Raises ValidationError listing every missing or illegal option, and
    NotFoundError for an unknown category.
    """
    options = get_options(category)
    if not isinstance(configuration, dict):
        raise ValidationError.single("configuration", "Configuration must be a mapping.")

    errors: Dict[str, List[str]] = {}
    normalised: Dict[str, Any] = {}
    for opt in options:
        if opt.id not in configuration:
            errors.setdefault(opt.id, []).append("This option is required.")
            continue
        normalised[opt.id] = _check_option(opt, configuration[opt.id], errors)

    unknown = sorted(set(configuration) - {opt.id for opt in options})
    for key in unknown:
        errors.setdefault(key, []).append("Unknown option for this product.")

    if errors:
        raise ValidationError(errors, "This configuration is incomplete or invalid.")
    return normalised
