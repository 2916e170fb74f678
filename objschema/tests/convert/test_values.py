"""Tests for raw value parsers."""

from objschema.convert.values import MISSING, parse_bool, parse_list, parse_number, parse_string


def describe_parse_list():
    def returns_the_first_entry(expect):
        expect(parse_list([3, 4])) == 3

    def falls_back_to_the_default(expect):
        expect(parse_list([])) == []
        expect(parse_list("x", default=0)) == 0
        expect(parse_list(None)) == []


def describe_parse_string():
    def converts_values(expect):
        expect(parse_string("abc")) == "abc"
        expect(parse_string(5)) == "5"

    def marks_missing_values(expect):
        expect(parse_string(None)) == MISSING
        expect(parse_string(None, default="")) == ""


def describe_parse_number():
    def parses_integers(expect):
        expect(parse_number("12")) == 12
        expect(isinstance(parse_number(" -7 "), int)) == True

    def parses_floats(expect):
        expect(parse_number("1.5")) == 1.5
        expect(parse_number("1e3")) == 1000.0
        expect(parse_number(2.5)) == 2.5

    def rejects_non_numbers(expect):
        expect(parse_number("abc")) == None
        expect(parse_number("nan")) == None
        expect(parse_number(True)) == None
        expect(parse_number([1])) == None
        expect(parse_number(None, default=0)) == 0


def describe_parse_bool():
    def accepts_words(expect):
        for word in ["true", "True", "t", "yes", "Y"]:
            expect(parse_bool(word)) == True
        for word in ["false", "no", "off", ""]:
            expect(parse_bool(word)) == False

    def accepts_numbers(expect):
        expect(parse_bool("1")) == True
        expect(parse_bool("0")) == False
        expect(parse_bool(2)) == True

    def passes_booleans_through(expect):
        expect(parse_bool(False)) == False
        expect(parse_bool(None)) == False
