"""Tests for document version handling."""

import pytest

from objschema.exceptions import VersionError
from objschema.schema.version import (
    SemanticVersion,
    check_version,
    is_valid_version,
    parse_version,
)


def describe_is_valid_version():
    @pytest.mark.parametrize(
        "version, valid",
        [
            ("1.0.0", True),
            ("1.1.0", False),
            ("2.0.0", False),
            ("1.0.99", True),
            ("0.9.0", False),
            ([1, 0, 0], True),
            ([1, 0], True),
            ("1.0", True),
            ("one", False),
            (None, False),
        ],
    )
    def follows_compatibility_rule(expect, version, valid):
        expect(is_valid_version(version, SemanticVersion(1, 0))) == valid

    def accepts_older_minor_versions(expect):
        expect(is_valid_version("1.0.0", SemanticVersion(1, 2))) == True
        expect(is_valid_version("1.2.7", SemanticVersion(1, 2))) == True
        expect(is_valid_version("1.3.0", SemanticVersion(1, 2))) == False


def describe_parse_version():
    def parses_strings(expect):
        expect(parse_version("3.4.5")) == SemanticVersion(3, 4, 5)
        expect(parse_version(" 1 . 2 ")) == SemanticVersion(1, 2, 0)

    def parses_lists(expect):
        expect(parse_version([2, 1, 9])) == SemanticVersion(2, 1, 9)

    def rejects_bad_lists(expect):
        with pytest.raises(VersionError):
            parse_version([1])
        with pytest.raises(VersionError):
            parse_version([1, -1, 0])
        with pytest.raises(VersionError):
            parse_version([True, 0, 0])

    def formats_as_a_dotted_string(expect):
        expect(str(SemanticVersion(1, 2))) == "1.2.0"


def describe_check_version():
    def returns_the_parsed_version(expect):
        expect(check_version("1.0.3")) == SemanticVersion(1, 0, 3)

    def reports_missing_versions(expect):
        with pytest.raises(VersionError) as exc:
            check_version(None)
        expect(exc.value.reason) == "missing version"

    def reports_unsupported_versions(expect):
        with pytest.raises(VersionError) as exc:
            check_version("1.1.0")
        expect(exc.value.reason) == "unsupported version"
        expect("1.1.0" in str(exc.value)) == True
