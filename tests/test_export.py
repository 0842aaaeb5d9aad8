import pytest

from stack_aligner.core import Correction
from stack_aligner.export import export_order, format_transformation_file, source_points, write_transformation_file


def test_export_order():
    assert export_order(3, 5) == [2, 1, 4, 5]
    assert export_order(1, 3) == [2, 3]
    assert export_order(3, 3) == [2, 1]


def test_source_points_use_step_to_neighbour():
    corrections = [Correction(4, 1), Correction(1, -2), Correction(0, 0)]

    points = source_points(corrections, 3, (100, 50))

    assert list(points) == [2, 1]
    assert points[2] == (49, 27)
    assert points[1] == (47, 22)


def test_source_points_above_reference():
    corrections = [Correction(0, 0), Correction(2, 0), Correction(5, -1)]
    points = source_points(corrections, 1, (11, 9))
    assert points == {2: (3, 4), 3: (2, 5)}


def test_format_transformation_file():
    text = format_transformation_file([Correction(0, 0), Correction(3, -1)], 1, (20, 10))

    assert text == (
        "MultiStackReg Transformation File\n"
        "File Version 1.0\n"
        "0\n"
        "TRANSLATION\n"
        "Source img: 2 Target img: 1\n"
        "7\t6\n"
        "0.0\t0.0\n"
        "0.0\t0.0\n"
        "\n"
        "10\t5\n"
        "0.0\t0.0\n"
        "0.0\t0.0\n"
        "\n"
    )


def test_single_slice_has_header_only():
    text = format_transformation_file([Correction(0, 0)], 1, (4, 4))
    assert text.splitlines() == ["MultiStackReg Transformation File", "File Version 1.0", "0"]


def test_write_transformation_file(tmp_path):
    path = tmp_path / "translations.txt"
    corrections = [Correction(1, 1), Correction(0, 0), Correction(-2, 3)]

    write_transformation_file(str(path), corrections, 2, (64, 32))

    lines = path.read_text().splitlines()
    assert lines[4] == "Source img: 1 Target img: 2"
    assert lines[5] == "31\t15"
    assert lines[14] == "Source img: 3 Target img: 2"
    assert lines[15] == "34\t13"


def test_write_transformation_file_missing_directory(tmp_path):
    with pytest.raises(OSError):
        write_transformation_file(str(tmp_path / "missing" / "t.txt"), [Correction(0, 0)] * 2, 1, (4, 4))
