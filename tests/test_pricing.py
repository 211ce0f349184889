import itertools
import unittest
from decimal import Decimal

from timberline.shop import options, pricing
from timberline.utils.errors import NotFoundError, ValidationError


def config(category, **changes):
    cfg = options.default_configuration(category)
    cfg.update(changes)
    return cfg


class OptionsTestCase(unittest.TestCase):
    def test_categories_and_titles(self):
        self.assertEqual(
            options.categories(), ["garages", "gazebos", "porches", "oak-beams", "oak-flooring"]
        )
        self.assertEqual(options.category_title("garages"), "Configure Your Garage")
        self.assertEqual(pricing.product_name("oak-beams"), "Oak Beams")
        with self.assertRaises(NotFoundError):
            options.get_options("sheds")

    def test_defaults_validate(self):
        for category in options.categories():
            cfg = options.default_configuration(category)
            self.assertEqual(set(options.validate_configuration(category, cfg)), set(cfg))

    def test_default_configuration_is_a_copy(self):
        cfg = options.default_configuration("oak-beams")
        cfg["dimensions"]["length"] = 1
        self.assertEqual(options.default_configuration("oak-beams")["dimensions"]["length"], 200)

    def test_invalid_configuration_reports_every_field(self):
        with self.assertRaises(ValidationError) as ctx:
            options.validate_configuration("garages", {"bays": 9, "beamSize": "9x9", "colour": "red"})
        fields = set(ctx.exception.fields)
        self.assertEqual(fields, {"bays", "beamSize", "trussType", "baySize", "catSlide", "colour"})

    def test_slider_accepts_single_element_list(self):
        cfg = options.validate_configuration("garages", config("garages", bays=[3]))
        self.assertEqual(cfg["bays"], 3)

    def test_slider_rejects_fractions(self):
        with self.assertRaises(ValidationError) as ctx:
            options.validate_configuration("gazebos", config("gazebos", sides=1.5))
        self.assertIn("sides", ctx.exception.field_errors)

    def test_dimension_errors_are_keyed_per_dimension(self):
        cfg = config("oak-beams", dimensions={"length": 0, "width": 15, "thickness": "abc"})
        with self.assertRaises(ValidationError) as ctx:
            options.validate_configuration("oak-beams", cfg)
        self.assertEqual(set(ctx.exception.fields), {"dimensions.length", "dimensions.thickness"})

    def test_area_from_length_and_width(self):
        cfg = config("oak-flooring", area={"area": None, "length": 4, "width": 2.5})
        self.assertEqual(options.validate_configuration("oak-flooring", cfg)["area"]["area"], 10)

        with self.assertRaises(ValidationError):
            options.validate_configuration(
                "oak-flooring", config("oak-flooring", area={"area": "", "length": 4, "width": None})
            )

    def test_dimensions_have_an_upper_bound(self):
        cfg = config("oak-beams", dimensions={"length": "1e30", "width": 15, "thickness": 2001})
        with self.assertRaises(ValidationError) as ctx:
            options.validate_configuration("oak-beams", cfg)
        self.assertEqual(set(ctx.exception.fields), {"dimensions.length", "dimensions.thickness"})

        cfg = config("oak-beams", dimensions={"length": 2000, "width": 2000, "thickness": 2000})
        self.assertGreater(pricing.price("oak-beams", cfg), 0)

    def test_area_has_an_upper_bound(self):
        for area in ({"area": 1001}, {"area": None, "length": 100, "width": 20}):
            with self.assertRaises(ValidationError) as ctx:
                options.validate_configuration("oak-flooring", config("oak-flooring", area=area))
            self.assertIn("area", ctx.exception.field_errors)

    def test_direct_area_normalises_length_and_width(self):
        cfg = config("oak-flooring", area={"area": 10, "length": "abc", "width": {"x": 1}})
        self.assertEqual(
            options.validate_configuration("oak-flooring", cfg)["area"],
            {"area": 10, "length": None, "width": None},
        )
        cfg = config("oak-flooring", area={"area": 10, "length": "5", "width": 2})
        self.assertEqual(
            options.validate_configuration("oak-flooring", cfg)["area"],
            {"area": 10, "length": 5, "width": 2},
        )


class PricingTestCase(unittest.TestCase):
    def test_garage_prices(self):
        self.assertEqual(pricing.price("garages", config("garages")), Decimal("11000.00"))
        self.assertEqual(pricing.price("garages", config("garages", bays=3)), Decimal("12500.00"))
        self.assertEqual(
            pricing.price("garages", config("garages", baySize="large")), Decimal("12650.00")
        )
        self.assertEqual(
            pricing.price("garages", config("garages", catSlide=True, beamSize="8x8")),
            Decimal("11750.00"),
        )

    def test_gazebo_and_porch_prices(self):
        self.assertEqual(pricing.price("gazebos", config("gazebos")), Decimal("5000.00"))
        self.assertEqual(
            pricing.price(
                "gazebos", config("gazebos", size="large", roofStyle="hipped", sides=4, floor=True)
            ),
            Decimal("7550.00"),
        )
        self.assertEqual(pricing.price("porches", config("porches")), Decimal("3650.00"))
        self.assertEqual(
            pricing.price("porches", config("porches", legType="wall", sizeType="narrow")),
            Decimal("3300.00"),
        )

    def test_beam_price_by_volume(self):
        self.assertEqual(pricing.price("oak-beams", config("oak-beams")), Decimal("36.00"))
        cfg = config("oak-beams", oakType="reclaimed", dimensions={"length": 300, "width": 20, "thickness": 20})
        self.assertEqual(pricing.price("oak-beams", cfg), Decimal("144.00"))

    def test_beam_price_rounds_to_whole_pounds(self):
        # 0.0123 m³ of green oak is 9.84
        cfg = config("oak-beams", dimensions={"length": 123, "width": 10, "thickness": 10})
        self.assertEqual(pricing.price("oak-beams", cfg), Decimal("10.00"))

    def test_flooring_price_by_area(self):
        self.assertEqual(pricing.price("oak-flooring", config("oak-flooring")), Decimal("1625.00"))
        cfg = config("oak-flooring", flooringType="solid", finish="oiled", area={"area": 10})
        self.assertEqual(pricing.price("oak-flooring", cfg), Decimal("820.00"))

    def test_every_default_price_is_positive(self):
        for category in options.categories():
            self.assertGreater(pricing.price(category, options.default_configuration(category)), 0)

    def test_every_configuration_has_a_non_negative_price(self):
        sizes = {
            "dimensions": [
                {"length": 0.1, "width": 0.1, "thickness": 0.1},
                {"length": 2000, "width": 2000, "thickness": 2000},
            ],
            "area": [{"area": 0.01}, {"area": 1000}, {"area": None, "length": 0.1, "width": 0.1}],
        }
        for category in options.categories():
            choices = []
            for opt in options.get_options(category):
                if opt.kind in options.CHOICE_KINDS:
                    choices.append([c.value for c in opt.choices])
                elif opt.kind == options.OptionKind.CHECKBOX:
                    choices.append([False, True])
                elif opt.kind == options.OptionKind.SLIDER:
                    choices.append(list(range(opt.min, opt.max + 1, opt.step)))
                else:
                    choices.append(sizes[opt.id])
            ids = [opt.id for opt in options.get_options(category)]
            for values in itertools.product(*choices):
                cfg = dict(zip(ids, values))
                with self.subTest(category=category, configuration=cfg):
                    self.assertGreaterEqual(pricing.price(category, cfg), 0)

    def test_price_rejects_bad_input(self):
        with self.assertRaises(NotFoundError):
            pricing.price("sheds", {})
        with self.assertRaises(ValidationError):
            pricing.price("garages", {"bays": 2})

    def test_descriptions(self):
        self.assertEqual(
            pricing.describe("garages", config("garages")),
            "Curved Truss, No Cat Slide, Bays: 2, Beam Size: 6x6, Bay Size: standard",
        )
        self.assertEqual(
            pricing.describe("oak-beams", config("oak-beams")),
            "Green Oak Beam: 200cm L x 15cm W x 15cm T",
        )
        self.assertEqual(
            pricing.describe("oak-flooring", config("oak-flooring")),
            "Engineered Oak Flooring (Natural): 25.00m²",
        )
        self.assertEqual(
            pricing.describe("gazebos", config("gazebos", floor=True)),
            "Medium Gazebo, Pitched Roof, Enclosed Sides: 0, With Floor",
        )
        self.assertEqual(
            pricing.describe("porches", config("porches", legType="wall")),
            "Curved Truss, Legs to Wall, Size: standard",
        )

    def test_price_table_rows(self):
        rows = pricing.price_table_rows("garages")
        self.assertEqual(rows[0], ["Base", "", "£8,000.00"])
        self.assertIn(["catSlide", "True per bays", "£150.00"], rows)
        self.assertIn(["baySize", "large", "x1.15"], rows)


if __name__ == "__main__":
    unittest.main()
