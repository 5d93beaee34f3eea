import pytest

from sheetpics.naming import (
    HeaderColumns,
    NameRegistry,
    cell_default_name,
    embedded_default_name,
    find_header_columns,
    row_label,
    sanitize_name,
    split_name,
)


def test_duplicate_names_are_suffixed_in_submission_order():
    registry = NameRegistry()
    names = [registry.register("x.jpg") for _ in range(5)]
    assert names == ["x.jpg", "x_2.jpg", "x_3.jpg", "x_4.jpg", "x_5.jpg"]


def test_distinct_names_are_unchanged():
    registry = NameRegistry()
    assert registry.register("alice.jpg") == "alice.jpg"
    assert registry.register("bob.jpg") == "bob.jpg"
    assert registry.register("alice.jpg") == "alice_2.jpg"


def test_stem_is_shared_across_extensions():
    registry = NameRegistry()
    assert registry.register("bob.png") == "bob.png"
    assert registry.register("bob.jpg") == "bob_2.jpg"
    assert registry.register("bob") == "bob_3"


def test_literal_suffix_does_not_collide():
    registry = NameRegistry()
    names = [registry.register(n) for n in ("x.jpg", "x.jpg", "x_2.jpg")]
    assert names == ["x.jpg", "x_2.jpg", "x_2_2.jpg"]
    assert len(set(names)) == 3


def test_registries_are_independent():
    first, second = NameRegistry(), NameRegistry()
    first.register("a.jpg")
    assert second.register("a.jpg") == "a.jpg"


@pytest.mark.parametrize("name,expected", [
    ("photo.jpg", ("photo", ".jpg")),
    ("archive.tar.gz", ("archive.tar", ".gz")),
    ("noext", ("noext", "")),
    (".png", ("", ".png")),
])
def test_split_name(name, expected):
    assert split_name(name) == expected


def test_find_header_columns():
    columns = find_header_columns(["Name", "Photo", "EMP NAME", None, "Profile Image"])
    assert columns.name_col == 1
    assert columns.emp_name_col == 3
    assert columns.is_image_column(2)
    assert columns.is_image_column(5)
    assert not columns.is_image_column(1)
    assert not columns.is_image_column(4)


def test_header_match_is_exact():
    columns = find_header_columns(["Full Name", " name", "Employee Name"])
    assert columns.name_col is None
    assert columns.emp_name_col is None


def test_row_label_prefers_emp_name():
    columns = find_header_columns(["Name", "Emp Name"])
    assert row_label(["Alice", "A. Smith"], columns, 2) == "A. Smith"
    assert row_label(["Alice", "   "], columns, 2) == "Alice"
    assert row_label([None, None], columns, 2) is None


def test_row_label_skips_header_row():
    columns = find_header_columns(["Name"])
    assert row_label(["Name"], columns, 1) is None
    assert row_label(["Alice"], columns, None) is None


def test_row_label_ignores_column_zero():
    columns = HeaderColumns(emp_name_col=0, name_col=None, headers={})
    assert row_label(["Alice"], columns, 2) is None


def test_row_label_formats_numbers():
    columns = find_header_columns(["Name"])
    assert row_label([1042.0], columns, 3) == "1042"


def test_row_label_treats_zero_and_false_as_blank():
    columns = find_header_columns(["Name", "Emp Name"])
    assert row_label(["Alice", 0], columns, 2) == "Alice"
    assert row_label([False, 0.0], columns, 2) is None
    assert row_label(["0", None], columns, 2) == "0"


def test_embedded_default_name():
    assert embedded_default_name("Alice", 2) == "Alice.jpg"
    assert embedded_default_name(None, 7) == "row_7.jpg"
    assert embedded_default_name(None, None) == "row_x.jpg"


def test_mapping_takes_precedence_over_row_value():
    name = cell_default_name("Carol", 2, 3, "image/png", {"cell_2_3.png": "bob.png"})
    assert name == "bob.png"


def test_blank_mapping_value_falls_back_to_row_value():
    name = cell_default_name("Carol", 2, 3, "image/png", {"cell_2_3.png": "   "})
    assert name == "Carol.png"


def test_mapping_is_keyed_by_raw_cell_name():
    name = cell_default_name("Carol", 2, 3, "image/png", {"Carol.png": "bob.png"})
    assert name == "Carol.png"


def test_cell_default_name_without_label():
    assert cell_default_name(None, 4, 2, "image/jpeg") == "cell_4_2.jpeg"


def test_sanitize_name_keeps_archive_flat():
    assert sanitize_name("../team/alice?") == "..teamalice"
    assert sanitize_name("  Bob  ") == "Bob"
