"""Tests for C++ header generation."""

import os

import pytest

from objschema.exceptions import SchemaError
from objschema.schema.registry import SchemaRegistry
from objschema.schema.render import Generator, header_name, map_type, render, size_postfix

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
DATA_DIR = os.path.join(FILE_DIR, "data")
TEMPLATE_DIR = os.path.join(DATA_DIR, "templates")


@pytest.fixture
def messages():
    registry = SchemaRegistry()
    registry.load(f"{DATA_DIR}/messages.json")
    return registry


def describe_helpers():
    def maps_primitive_types(expect):
        expect(map_type("uint64")) == "uint64_t"
        expect(map_type("word")) == "uint16_t"
        expect(map_type("string")) == "std::string"
        expect(map_type(None)) == "void"

    def maps_fixed_width_types(expect):
        expect(map_type("int16[4]")) == "std::array<int16_t, 4>"
        expect(map_type("string[8]")) == "char"
        expect(size_postfix("string[8]")) == "[9]"
        expect(size_postfix("int32")) == ""

    def passes_user_types_through(expect):
        expect(map_type("Side")) == "Side"

    def names_headers_after_documents(expect):
        expect(header_name("messages.json")) == "messages.h"
        expect(header_name("deps/common.json")) == "deps/common.h"


def describe_render():
    def renders_the_document_header(expect, messages):
        text = render(messages.root)

        expect(text.startswith("// Generated by objschema from messages.json. Do not edit.\n")) == True
        expect("#pragma once" in text) == True
        expect('#include "deps/common.h"' in text) == True
        expect('#include "deps/types.h"' in text) == False
        expect("// Messages exchanged between the trading platform\n" in text) == True
        expect("namespace msgs {" in text) == True
        expect("namespace trading {" in text) == True
        expect(text.endswith("}  // namespace msgs\n")) == True

    def renders_enums(expect, messages):
        text = render(messages.root)

        expect("enum class Side : uint8_t {\n    // Bid side\n    Buy = 1,\n" in text) == True
        expect("    Sell = 2,\n};" in text) == True

    def renders_structs_and_unions(expect, messages):
        text = render(messages.root)

        order = (
            "// A new order\n"
            "struct Order {\n"
            "    uint64_t order_id;\n"
            "    double price;\n"
            "    char symbol[9];\n"
            "    Side side;\n"
            "    union {\n"
            "        int32_t quantity;\n"
            "        float notional;\n"
            "    };\n"
            "};"
        )
        expect(order in text) == True

    def renders_arrays(expect, messages):
        text = render(messages.root)

        expect("struct fills_item {\n    double fill_price;\n    int32_t fill_qty;\n};" in text) == True
        expect("std::vector<fills_item> fills;" in text) == True

    def renders_interfaces(expect, messages):
        text = render(messages.root)

        expect("class OrderSink {\npublic:\n    virtual ~OrderSink() = default;\n" in text) == True
        expect("    virtual bool submit(Order order) = 0;\n" in text) == True
        expect("    virtual bool submit(Order order, bool urgent) = 0;\n" in text) == True

    def renders_dependencies_on_their_own(expect, messages):
        text = render(messages.get("deps/common.json"))

        expect('#include "deps/types.h"' in text) == True
        expect("namespace" in text) == False
        expect("enum class Status : int32_t {" in text) == True


def describe_templates():
    @pytest.fixture
    def templated():
        registry = SchemaRegistry()
        return registry.load(f"{DATA_DIR}/templated.json")

    def uses_document_and_member_templates(expect, templated):
        text = Generator([TEMPLATE_DIR]).render(templated)

        expect("// outer namespace outer\nnamespace outer {\nint32_t inner;\n}" in text) == True
        expect("#pragma pack(push, 1)\nstruct Packed {\n    uint8_t a;\n" in text) == True
        expect("enum class Color : int32_t {\n    Red = 0,\n};" in text) == True

    def reports_missing_templates(expect, templated):
        with pytest.raises(SchemaError) as exc:
            Generator().render(templated)

        expect(exc.value.reason) == "missing template"
        expect(exc.value.member) == "outer"


def describe_write():
    def writes_a_header_per_document(expect, messages, tmp_path):
        generator = Generator()
        paths = [generator.write(doc, tmp_path) for doc in messages]

        expect(sorted(p.relative_to(tmp_path).as_posix() for p in paths)) == [
            "deps/common.h",
            "deps/types.h",
            "messages.h",
        ]
        expect("struct Header {" in (tmp_path / "deps" / "types.h").read_text()) == True
