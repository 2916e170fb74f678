"""Tests for object class descriptors and value coercion."""

import pytest

from objschema.convert.descriptor import (
    AttrSpec,
    ClassDescriptor,
    RefSpec,
    coerce,
    coerce_value,
    validate_class,
)
from objschema.exceptions import ConversionError, UnknownTypeError
from objschema.schema.types import Category, resolve

Point = ClassDescriptor("Point", attrs={"x": "int32", "y": "int32"})
Order = ClassDescriptor(
    "Order",
    attrs={"OrderID": "uint32", "Price": "double", "Note": "string?"},
)
OrderList = ClassDescriptor(
    "OrderList",
    attrs={"Immediate": "bool?"},
    refs={"Order": RefSpec(Order, is_container=True), "Owner": Point},
)


def describe_class_descriptor():
    def accepts_type_expressions(expect):
        expect(Order.attrs["OrderID"].type) == resolve("uint32")
        expect(Order.attrs["OrderID"].optional) == False
        expect(Order.attrs["Note"].optional) == True

    def accepts_other_attribute_specs(expect):
        cls = ClassDescriptor(
            "A",
            attrs={
                "a": resolve("int8"),
                "b": AttrSpec(resolve("bool"), optional=True),
                "c": {"type": "float", "optional": True},
            },
        )
        expect(cls.attrs["a"].type.size) == 1
        expect(cls.attrs["b"].optional) == True
        expect(cls.attrs["c"].type.category) == Category.NUMERIC

    def accepts_reference_specs(expect):
        cls = ClassDescriptor(
            "A",
            refs={
                "p": Point,
                "any": None,
                "ps": {"ref_class": Point, "is_container": True},
            },
        )
        expect(cls.ref_class("p")) == Point
        expect(cls.refs["any"].ref_class) == None
        expect(cls.is_container("ps")) == True
        expect(cls.is_container("p")) == False

    def rejects_invalid_specs(expect):
        with pytest.raises(ConversionError):
            ClassDescriptor("A", attrs={"x": 5})
        with pytest.raises(ConversionError):
            ClassDescriptor("A", refs={"x": "Point"})
        with pytest.raises(ConversionError):
            ClassDescriptor("A", attrs=["x"])

    def rejects_unknown_types(expect):
        with pytest.raises(UnknownTypeError):
            ClassDescriptor("A", attrs={"x": "int128"})

    def returns_an_empty_class_for_undeclared_references(expect):
        cls = OrderList.ref_class("Other")
        expect(cls.name) == "Other"
        expect(cls.attrs) == {}
        expect(OrderList.is_container("Other")) == False

    def compares_by_identity(expect):
        expect(ClassDescriptor("A") == ClassDescriptor("A")) == False


def describe_validate_class():
    def returns_valid_classes(expect):
        expect(validate_class(Point)) == Point

    def rejects_everything_else(expect):
        for cls in [None, {"_name": "Point"}, ClassDescriptor(None), ClassDescriptor("")]:
            with pytest.raises(ConversionError) as exc:
                validate_class(cls)
            expect(exc.value.reason) == "invalid class"


def describe_coerce():
    def converts_the_point_scenario(expect):
        expect(coerce(Point, {"x": "1", "y": "-2"})) == {"x": 1, "y": -2}

    def converts_each_category(expect):
        obj = coerce(Order, {"OrderID": "7", "Price": "2", "Note": 5})
        expect(obj) == {"OrderID": 7, "Price": 2.0, "Note": "5"}
        expect(isinstance(obj["Price"], float)) == True
        expect(coerce_value(resolve("bool"), "yes")) == True

    def converts_fixed_arrays(expect):
        expect(coerce_value(resolve("int16[2]"), ["1", "2"])) == [1, 2]
        with pytest.raises(ConversionError) as exc:
            coerce_value(resolve("int16[2]"), "1")
        expect(exc.value.reason) == "invalid value"

    def rejects_missing_attributes(expect):
        with pytest.raises(ConversionError) as exc:
            coerce(Point, {"x": "1"})
        expect(exc.value.reason) == "missing attribute"
        expect("'y'" in str(exc.value)) == True

    def drops_missing_optional_attributes(expect):
        obj = coerce(Order, {"OrderID": 1, "Price": 1.5, "Note": None})
        expect("Note" in obj) == False

    def rejects_invalid_values(expect):
        with pytest.raises(ConversionError) as exc:
            coerce(Point, {"x": "1.5", "y": "0"})
        expect(exc.value.reason) == "invalid value"
        with pytest.raises(ConversionError):
            coerce(Order, {"OrderID": 1, "Price": "cheap"})

    def keeps_undeclared_fields(expect):
        expect(coerce(Point, {"x": 0, "y": 0, "label": "origin"})["label"]) == "origin"

    def makes_containers_lists(expect):
        obj = coerce(
            OrderList,
            {"Order": {"OrderID": "1", "Price": "3.5"}, "Owner": {"x": "1", "y": "2"}},
        )
        expect(obj["Order"]) == [{"OrderID": 1, "Price": 3.5}]
        expect(obj["Owner"]) == {"x": 1, "y": 2}
        expect(coerce(OrderList, {})) == {"Order": []}

    def requires_an_object(expect):
        with pytest.raises(ConversionError):
            coerce(Point, [1, 2])
