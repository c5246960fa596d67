import copy
import unittest
from types import SimpleNamespace

from schema_validator import utils
from schema_validator.utils import UNDEFINED


class UtilsTests(unittest.TestCase):
    def setUp(self):
        self.user = {
            "name": "Martin",
            "email": "tin@devtin.io",
            "address": {"city": "Miami", "zip": 33129, "line1": "Brickell Ave"},
        }

    def test_obj2dot_flattens_nested_mappings(self):
        self.assertEqual(
            utils.obj2dot(self.user),
            ["name", "email", "address.city", "address.zip", "address.line1"],
        )

    def test_obj2dot_treats_lists_as_leaves_and_skips_empty_mappings(self):
        self.assertEqual(utils.obj2dot({"tags": [1, 2], "meta": {}}), ["tags"])

    def test_find_by_dotted_path(self):
        obj = {"prop1": {"prop2": {"prop3": "Martin"}, "firstName": "Sandy"}}
        self.assertEqual(utils.find(obj, "prop1.prop2.prop3"), "Martin")
        self.assertEqual(utils.find(obj, "prop1.firstName"), "Sandy")
        self.assertIs(utils.find(obj, "prop1.nope"), UNDEFINED)
        self.assertIsNone(utils.find(obj, "prop1.nope.deeper", None))

    def test_find_reads_attributes_but_not_private_ones(self):
        obj = {"field": SimpleNamespace(full_path="a.b", _secret=1)}
        self.assertEqual(utils.find(obj, "field.full_path"), "a.b")
        self.assertIs(utils.find(obj, "field._secret"), UNDEFINED)

    def test_render_interpolates_and_leaves_unknown_placeholders(self):
        obj = {"address": {"line1": "Brickell Ave"}, "value": 3}
        self.assertEqual(utils.render("{ address.line1 }", obj), "Brickell Ave")
        self.assertEqual(utils.render("got {value}, {  value }", obj), "got 3, 3")
        self.assertEqual(utils.render("{ nope } stays", obj), "{ nope } stays")

    def test_get_sub_properties(self):
        props = ["name", "address.city", "address.zip", "addressee"]
        self.assertEqual(utils.get_sub_properties(props, "address"), ["city", "zip"])

    def test_properties_restricted_non_strict(self):
        self.assertFalse(utils.properties_restricted(self.user, ["name"]))
        self.assertTrue(utils.properties_restricted(self.user, ["name", "email", "address"]))
        self.assertTrue(utils.properties_restricted(
            self.user,
            ["name", "email", "address.city", "address.zip", "address.line1", "address.line2"],
        ))
        self.assertFalse(utils.properties_restricted(
            self.user, ["name", "email", "address.city"],
        ))

    def test_properties_restricted_strict_requires_every_property(self):
        allowed = ["name", "email", "address.city", "address.zip", "address.line1", "address.line2"]
        self.assertFalse(utils.properties_restricted(self.user, allowed, strict=True))
        self.assertTrue(utils.properties_restricted(self.user, allowed[:-1], strict=True))
        self.assertFalse(utils.properties_restricted({"name": "x"}, ["name", "email"], strict=True))

    def test_properties_restricted_rejects_non_mappings(self):
        self.assertFalse(utils.properties_restricted("abc", ["name"]))
        self.assertFalse(utils.properties_restricted(None, []))

    def test_properties_restricted_allows_unlisted_empty_mapping(self):
        # an unknown key holding only (empty) mappings has no leaf to reject
        self.assertTrue(utils.properties_restricted({"name": "x", "extra": {}}, ["name"]))
        self.assertTrue(utils.properties_restricted({"name": "x", "extra": {"a": {}}}, ["name"]))
        self.assertFalse(utils.properties_restricted({"name": "x", "extra": {"a": 1}}, ["name"]))

    def test_cast_helpers(self):
        self.assertEqual(utils.cast_array("x"), ["x"])
        self.assertEqual(utils.cast_array(("x", "y")), ["x", "y"])
        self.assertEqual(utils.cast_throwable((3, "too short"), "default"), (3, "too short"))
        self.assertEqual(utils.cast_throwable(3, "default"), (3, "default"))

    def test_undefined_is_a_falsy_singleton(self):
        self.assertFalse(UNDEFINED)
        self.assertEqual(repr(UNDEFINED), "UNDEFINED")
        self.assertIs(copy.deepcopy(UNDEFINED), UNDEFINED)
        self.assertIs(type(UNDEFINED)(), UNDEFINED)
