"""
Price calculator.

One declarative ``PriceRule`` per category, evaluated by ``price``:

    base
    + sum(amount * (value - offset))            per_unit
    + surcharges[option][choice] (* scale_by)   surcharges
    + measure * (rate[choice] + extras)         rate
    then * multipliers[option][choice]
    floored at zero and rounded half-up (pence, or whole pounds for rates)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from timberline.shop.options import get_options, get_schema, validate_configuration
from timberline.utils.pure import PENNY, format_money

ZERO = Decimal("0")
POUND = Decimal("1")
CM3_PER_M3 = Decimal("1000000")


@dataclass(frozen=True)
class RateRule:
    """measure * (rates[rate_option] + sum of extras), measure in m³ or m²."""

    measure: str  # "volume" | "area"
    option_id: str  # option holding the dimensions/area
    rate_option: str
    rates: Mapping[str, Decimal]
    extras: Mapping[str, Mapping[str, Decimal]] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceRule:
    base: Decimal = ZERO
    per_unit: Tuple[Tuple[str, Decimal, int], ...] = ()
    surcharges: Mapping[str, Mapping[Any, Decimal]] = field(default_factory=dict)
    scale_by: Mapping[str, str] = field(default_factory=dict)
    rate: Optional[RateRule] = None
    multipliers: Mapping[str, Mapping[Any, Decimal]] = field(default_factory=dict)
    quantum: Decimal = PENNY


D = Decimal

PRICE_RULES: Dict[str, PriceRule] = {
    "garages": PriceRule(
        base=D("8000"),
        per_unit=(("bays", D("1500"), 0),),
        surcharges={
            "beamSize": {"6x6": D("0"), "7x7": D("200"), "8x8": D("450")},
            "catSlide": {True: D("150")},
        },
        scale_by={"catSlide": "bays"},
        multipliers={"baySize": {"standard": D("1.00"), "large": D("1.15")}},
    ),
    "gazebos": PriceRule(
        base=D("5000"),
        per_unit=(("sides", D("250"), 0),),
        surcharges={
            "size": {"small": D("-500"), "medium": D("0"), "large": D("800")},
            "roofStyle": {"hipped": D("300")},
            "floor": {True: D("450")},
        },
    ),
    "porches": PriceRule(
        base=D("3500"),
        surcharges={
            "legType": {"floor": D("150")},
            "sizeType": {"narrow": D("-200"), "standard": D("0"), "wide": D("400")},
        },
    ),
    "oak-beams": PriceRule(
        rate=RateRule(
            measure="volume",
            option_id="dimensions",
            rate_option="oakType",
            rates={"reclaimed": D("1200"), "kilned": D("1000"), "green": D("800")},
        ),
        quantum=POUND,
    ),
    "oak-flooring": PriceRule(
        rate=RateRule(
            measure="area",
            option_id="area",
            rate_option="flooringType",
            rates={"solid": D("75"), "engineered": D("65")},
            extras={"finish": {"natural": D("0"), "lacquered": D("5"), "oiled": D("7")}},
        ),
        quantum=POUND,
    ),
}


def _measure(rule: RateRule, config: Mapping[str, Any]) -> Decimal:
    value = config[rule.option_id]
    if rule.measure == "volume":
        cm3 = D(str(value["length"])) * D(str(value["width"])) * D(str(value["thickness"]))
        return cm3 / CM3_PER_M3
    return D(str(value["area"]))


def evaluate(rule: PriceRule, config: Mapping[str, Any]) -> Decimal:
    """Apply ``rule`` to an already validated configuration."""
    total = rule.base

    for option_id, amount, offset in rule.per_unit:
        total += amount * (D(str(config[option_id])) - offset)

    for option_id, table in rule.surcharges.items():
        amount = table.get(config.get(option_id), ZERO)
        scale = rule.scale_by.get(option_id)
        if scale is not None:
            amount *= D(str(config[scale]))
        total += amount

    if rule.rate is not None:
        unit = rule.rate.rates.get(config.get(rule.rate.rate_option), ZERO)
        for option_id, table in rule.rate.extras.items():
            unit += table.get(config.get(option_id), ZERO)
        total += _measure(rule.rate, config) * unit

    for option_id, table in rule.multipliers.items():
        total *= table.get(config.get(option_id), D("1"))

    total = max(total, ZERO)
    return total.quantize(rule.quantum, rounding=ROUND_HALF_UP).quantize(PENNY)


def price(category: str, configuration: Mapping[str, Any]) -> Decimal:
    """
    Price a configuration of ``category``.

    Raises NotFoundError for an unknown category and ValidationError for an
    incomplete or illegal configuration.
    """
    config = validate_configuration(category, dict(configuration))
    return evaluate(PRICE_RULES[category], config)


# ---------------------------
# Descriptions
# ---------------------------


def _title(value: Any) -> str:
    text = str(value)
    return text[:1].upper() + text[1:]


def _num(value: Any) -> str:
    number = D(str(value))
    return str(int(number)) if number == number.to_integral_value() else str(number.normalize())


def describe(category: str, configuration: Mapping[str, Any]) -> str:
    """Human readable summary stored on line items and orders."""
    config = validate_configuration(category, dict(configuration))

    if category == "garages":
        return (
            f"{_title(config['trussType'])} Truss, "
            f"{'Cat Slide' if config['catSlide'] else 'No Cat Slide'}, "
            f"Bays: {config['bays']}, Beam Size: {config['beamSize']}, "
            f"Bay Size: {config['baySize']}"
        )
    if category == "gazebos":
        return (
            f"{_title(config['size'])} Gazebo, {_title(config['roofStyle'])} Roof, "
            f"Enclosed Sides: {config['sides']}, "
            f"{'With Floor' if config['floor'] else 'No Floor'}"
        )
    if category == "porches":
        legs = {opt.id: opt for opt in get_options(category)}["legType"]
        return (
            f"{_title(config['trussType'])} Truss, {legs.choice_label(config['legType'])}, "
            f"Size: {config['sizeType']}"
        )
    if category == "oak-beams":
        dims = config["dimensions"]
        return (
            f"{_title(config['oakType'])} Oak Beam: {_num(dims['length'])}cm L x "
            f"{_num(dims['width'])}cm W x {_num(dims['thickness'])}cm T"
        )
    # oak-flooring
    area = D(str(config["area"]["area"])).quantize(PENNY)
    return (
        f"{_title(config['flooringType'])} Oak Flooring ({_title(config['finish'])}): {area}m²"
    )


def product_name(category: str) -> str:
    return get_schema(category).title.removeprefix("Configure Your ")


# ---------------------------
# Read only price table listing
# ---------------------------


def price_table_rows(category: str, symbol: str = "£") -> List[List[str]]:
    """Flatten a category's rule into (component, option, amount) rows."""
    get_schema(category)
    rule = PRICE_RULES[category]
    rows: List[List[str]] = []
    if rule.base:
        rows.append(["Base", "", format_money(rule.base, symbol)])
    for option_id, amount, offset in rule.per_unit:
        label = f"per unit over {offset}" if offset else "per unit"
        rows.append([option_id, label, format_money(amount, symbol)])
    for option_id, table in rule.surcharges.items():
        scale = rule.scale_by.get(option_id)
        for choice, amount in table.items():
            suffix = f" per {scale}" if scale else ""
            rows.append([option_id, f"{choice}{suffix}", format_money(amount, symbol)])
    if rule.rate is not None:
        unit = "m³" if rule.rate.measure == "volume" else "m²"
        for choice, amount in rule.rate.rates.items():
            rows.append([rule.rate.rate_option, f"{choice} per {unit}", format_money(amount, symbol)])
        for option_id, table in rule.rate.extras.items():
            for choice, amount in table.items():
                rows.append([option_id, f"{choice} per {unit}", format_money(amount, symbol)])
    for option_id, table in rule.multipliers.items():
        for choice, factor in table.items():
            rows.append([option_id, choice, f"x{factor}"])
    return rows
