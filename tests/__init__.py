"""Test package initialisation.

Adds the repository root to ``sys.path`` so ``import hospital_admin``
works when the tests run from a checkout without an editable install.
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))
