"""Tests for the XML converter."""

import pytest

from objschema.convert import xml as xml_format
from objschema.convert.descriptor import ClassDescriptor, RefSpec, coerce
from objschema.exceptions import ConversionError

Point = ClassDescriptor("Point", attrs={"x": "int32", "y": "int32"})
Order = ClassDescriptor("Order", attrs={"OrderID": "uint32", "Resting": "bool?"})
OrderList = ClassDescriptor(
    "OrderList",
    attrs={"Immediate": "bool?"},
    refs={"Order": RefSpec(Order, is_container=True), "Owner": Point},
)

ORDER_LIST_XML = """\
<OrderList Immediate="true">
    <Order OrderID="1" Resting="false" />
    <Order OrderID="2" />
    <Owner x="3" y="4" />
</OrderList>
"""


def describe_from_obj():
    def writes_scalars_as_attributes(expect):
        expect(xml_format.from_obj({"x": 1, "y": 2}, Point)) == '<Point x="1" y="2" />\n'

    def writes_references_as_indented_children(expect):
        obj = {
            "Immediate": True,
            "Order": [{"OrderID": 1, "Resting": False}, {"OrderID": 2}],
            "Owner": {"x": 3, "y": 4},
        }
        expect(xml_format.from_obj(obj, OrderList)) == ORDER_LIST_XML

    def writes_undeclared_lists_and_objects_as_children(expect):
        text = xml_format.from_obj({"tags": ["a", "b"], "meta": {"k": "v"}}, Point)
        expect(text) == (
            "<Point>\n"
            "    <tags>a</tags>\n"
            "    <tags>b</tags>\n"
            '    <meta k="v" />\n'
            "</Point>\n"
        )

    def skips_missing_values(expect):
        expect(xml_format.from_obj({"x": 1, "y": None}, Point)) == '<Point x="1" />\n'

    def writes_text(expect):
        note = ClassDescriptor("Note")
        text = xml_format.from_obj({"lang": "en", "_": "hello"}, note)
        expect(text) == '<Note lang="en">hello</Note>\n'

    def requires_an_object(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.from_obj([1, 2], Point)
        expect(exc.value.reason) == "invalid object"

    def rejects_invalid_classes(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.from_obj({}, ClassDescriptor(None))
        expect(exc.value.reason) == "invalid class"


def describe_to_obj():
    def reads_attributes(expect):
        expect(xml_format.to_obj('<Point x="1" y="2"/>', Point)) == {"x": "1", "y": "2"}

    def reads_declared_references(expect):
        expect(xml_format.to_obj(ORDER_LIST_XML, OrderList)) == {
            "Immediate": "true",
            "Order": [{"OrderID": "1", "Resting": "false"}, {"OrderID": "2"}],
            "Owner": {"x": "3", "y": "4"},
        }

    def keeps_single_container_children_in_a_list(expect):
        obj = xml_format.to_obj('<OrderList><Order OrderID="1"/></OrderList>', OrderList)
        expect(obj) == {"Order": [{"OrderID": "1"}]}

    def groups_repeated_children(expect):
        obj = xml_format.to_obj("<Doc><Tag>a</Tag><Tag>b</Tag><Title>t</Title></Doc>")
        expect(obj) == {"Tag": ["a", "b"], "Title": "t"}

    def keeps_text(expect):
        expect(xml_format.to_obj("<Note>hi</Note>")) == {"_": "hi"}
        expect(xml_format.to_obj('<Note lang="en">hello</Note>')) == {"lang": "en", "_": "hello"}
        expect(xml_format.to_obj("<Note/>")) == {}

    def accepts_any_root_without_a_class(expect):
        expect(xml_format.to_obj('<Anything a="1"/>')) == {"a": "1"}

    def rejects_the_wrong_root(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.to_obj('<Line x="1"/>', Point)
        expect(exc.value.reason) == "wrong root"

    def reports_malformed_xml(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.to_obj("<Point", Point)
        expect(exc.value.reason) == "malformed xml"

    def rejects_ambiguous_fields(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.to_obj('<Point x="1"><x/></Point>', Point)
        expect(exc.value.reason) == "ambiguous field"

    def rejects_invalid_classes(expect):
        with pytest.raises(ConversionError) as exc:
            xml_format.to_obj("<Point/>", "Point")
        expect(exc.value.reason) == "invalid class"


def describe_round_trip():
    def is_stable_for_typed_objects(expect):
        obj = coerce(OrderList, xml_format.to_obj(ORDER_LIST_XML, OrderList))
        expect(obj["Order"][0]) == {"OrderID": 1, "Resting": False}

        text = xml_format.from_obj(obj, OrderList)
        expect(text) == ORDER_LIST_XML
        expect(coerce(OrderList, xml_format.to_obj(text, OrderList))) == obj

    def keeps_fixed_arrays_in_a_list(expect):
        bytes_class = ClassDescriptor("A", attrs={"b": "uint8[1]"})
        text = xml_format.from_obj({"b": [5]}, bytes_class)
        expect(text) == "<A>\n    <b>5</b>\n</A>\n"

        obj = coerce(bytes_class, xml_format.to_obj(text, bytes_class))
        expect(obj) == {"b": [5]}
        expect(xml_format.from_obj(obj, bytes_class)) == text

    def reads_empty_objects(expect):
        text = xml_format.from_obj({"Immediate": True, "Owner": {}}, OrderList)
        expect(text) == '<OrderList Immediate="true">\n    <Owner />\n</OrderList>\n'
        expect(xml_format.to_obj(text, OrderList)) == {"Immediate": "true", "Owner": {}}
        expect(xml_format.to_obj("<Doc><Owner/></Doc>")) == {"Owner": ""}
