from __future__ import annotations

import allure
import pytest

from snfs_defrag.errors import CandidateListingError, ParseFailure
from snfs_defrag.tool.parsers import (
    CandidateRecord,
    parse_candidate_listing,
    parse_extent_listing,
    parse_verbose_candidates,
)

pytestmark = [
    allure.epic("Defrag Automation"),
    allure.feature("Output Parsing"),
]

_TWO_FILES = """

/a/file.mov:
#      group  frbase           fsbase         fsend          kbytes       depth
0      5      0x0              0x3718cd32e    0x3718cd334    28           2
1      5      0x7000           0x3718cd901    0x3718cd906    24           2

/b/other file.mov:
#   group  frbase  fsbase  fsend  kbytes  depth
0   3      0x0     0x10    0x11   8       4


"""


def test_parse_extent_listing_single_block() -> None:
    raw = (
        "/a/file.mov:\n"
        "#   group  frbase  fsbase  fsend  kbytes  depth\n"
        "0   5      0x0     0x371   0x372  28      2\n"
    )

    assert parse_extent_listing(raw) == {
        "/a/file.mov": [
            {
                "#": "0",
                "group": "5",
                "frbase": "0x0",
                "fsbase": "0x371",
                "fsend": "0x372",
                "kbytes": "28",
                "depth": "2",
            },
        ],
    }


def test_parse_extent_listing_multiple_blocks_keep_row_order() -> None:
    parsed = parse_extent_listing(_TWO_FILES)

    assert list(parsed) == ["/a/file.mov", "/b/other file.mov"]
    assert [extent["frbase"] for extent in parsed["/a/file.mov"]] == ["0x0", "0x7000"]
    assert parsed["/b/other file.mov"][0]["depth"] == "4"


def test_parse_extent_listing_skips_blocks_without_rows() -> None:
    raw = (
        "/a/empty.mov:\n"
        "#   group  frbase  fsbase  fsend  kbytes  depth\n"
        "\n"
        "/a/no-header.mov:\n"
        "\n"
        "/a/full.mov:\n"
        "#   group\n"
        "0   1\n"
    )

    assert parse_extent_listing(raw) == {"/a/full.mov": [{"#": "0", "group": "1"}]}


def test_parse_extent_listing_empty_input() -> None:
    assert parse_extent_listing("") == {}
    assert parse_extent_listing("\n\n   \n") == {}


def test_parse_candidate_listing_bare_paths() -> None:
    raw = "/a/one.mov\n\n  /a/two.mov  \n"

    assert parse_candidate_listing(raw) == ["/a/one.mov", "/a/two.mov"]


def test_parse_candidate_listing_surfaces_error_response() -> None:
    with pytest.raises(CandidateListingError, match="permission denied") as excinfo:
        parse_candidate_listing("Error: permission denied")

    assert isinstance(excinfo.value, ParseFailure)
    assert excinfo.value.raw_response == "Error: permission denied"


def test_parse_verbose_candidates() -> None:
    records = parse_verbose_candidates(
        [
            "/a/file.mov: 3 extents: fragmented",
            "/a/single.mov: 1 extent: ok",
            "totals: nothing to see",
        ],
    )

    assert records == [
        CandidateRecord(path="/a/file.mov", extent_count="3", message="fragmented"),
        CandidateRecord(path="/a/single.mov", extent_count="1", message="ok"),
    ]
    assert records[0].as_dict() == {
        "path": "/a/file.mov",
        "extent_count": "3",
        "message": "fragmented",
    }
