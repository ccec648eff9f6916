from __future__ import annotations

import re
from datetime import datetime

from pictura_mcp.utils.slug import filename_to_ratio, generate_slug, generate_timestamp, ratio_to_filename


def test_slug_from_prompt():
    assert generate_slug("A Red Fox, sitting in the Snow!") == "a-red-fox-sitting-in-the-snow"


def test_slug_collapses_separators():
    assert generate_slug("  cyber -- punk   city  ") == "cyber-punk-city"


def test_slug_truncates_without_trailing_hyphen():
    slug = generate_slug("word " * 30)

    assert len(slug) <= 50
    assert not slug.endswith("-")


def test_slug_fallback():
    assert generate_slug("") == "untitled"
    assert generate_slug("!!! ???") == "untitled"
    assert generate_slug(None) == "untitled"


def test_timestamp_format():
    assert generate_timestamp(datetime(2026, 3, 9, 7, 5, 2)) == "2026-03-09-070502"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}-\d{6}", generate_timestamp())


def test_ratio_filename_conversion():
    assert ratio_to_filename("16:9") == "16x9"
    assert filename_to_ratio("16x9.png") == "16:9"
    assert filename_to_ratio("21x9") == "21:9"
