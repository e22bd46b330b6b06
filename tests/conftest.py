"""
Pytest bootstrap for src/ layout.

Ensures ./src is on sys.path for any pytest invocation, so that
`import interactsim` resolves to the working tree without an install.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
src = repo_root / "src"
if src.is_dir():
    src_str = str(src)
    if src_str not in sys.path:
        # Put first so local src wins over any installed `interactsim`.
        sys.path.insert(0, src_str)

# Headless figure tests; the CLI selects Agg itself.
os.environ.setdefault("MPLBACKEND", "Agg")
