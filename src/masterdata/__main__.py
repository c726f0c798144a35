from __future__ import annotations

from masterdata.ui.cli import run

run()
