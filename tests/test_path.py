"""Tests for facet.props.path: the property path grammar."""

from facet.props.path import Segment, format_path, parse_path, top_level_key, unpluck


class TestParsePath:
    def test_single_key(self) -> None:
        assert parse_path("name") == (Segment("name"),)

    def test_dotted(self) -> None:
        assert parse_path("owner.name") == (Segment("owner"), Segment("name"))

    def test_pluck(self) -> None:
        assert parse_path("items@name") == (Segment("items"), Segment("name", pluck=True))

    def test_leading_pluck(self) -> None:
        assert parse_path("@name") == (Segment("name", pluck=True),)

    def test_mixed(self) -> None:
        assert parse_path("a@b.c@d") == (
            Segment("a"),
            Segment("b", pluck=True),
            Segment("c"),
            Segment("d", pluck=True),
        )

    def test_empty(self) -> None:
        assert parse_path("") == ()

    def test_doubled_separators_dropped(self) -> None:
        assert parse_path("a..b") == (Segment("a"), Segment("b"))


class TestFormatPath:
    def test_inverse_of_parse(self) -> None:
        for path in ("name", "owner.name", "items@name", "@name", "a@b.c@d"):
            assert format_path(parse_path(path)) == path

    def test_segment_str(self) -> None:
        assert str(Segment("x", pluck=True)) == "@x"
        assert str(Segment("x")) == "x"


class TestHelpers:
    def test_unpluck_leading(self) -> None:
        assert unpluck(parse_path("@name.first")) == parse_path("name.first")

    def test_unpluck_noop(self) -> None:
        assert unpluck(parse_path("name")) == parse_path("name")

    def test_top_level_key(self) -> None:
        assert top_level_key("items@foo") == "items"
        assert top_level_key("owner.name") == "owner"
        assert top_level_key("@name") == "name"
        assert top_level_key("") == ""
