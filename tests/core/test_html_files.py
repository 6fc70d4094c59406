# tests/core/test_html_files.py
from pathlib import Path

import pytest

from scriptsrc.controllers.script_src_controller import script_src_from_html_file

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


@pytest.mark.parametrize("html_file", sorted(FIXTURES_DIR.glob("*.html")), ids=lambda p: p.name)
def test_html_files(html_file):
    """Each fixture has a sibling '<name>-script-src' holding the expected directive value."""
    expected = Path(f"{html_file}-script-src").read_text(encoding="utf-8").strip()
    assert script_src_from_html_file(str(html_file)).format() == expected
