import os
import sys
from pathlib import Path

HERE = Path(__file__).resolve().parent
ROOT = HERE.parent
SRC = ROOT / "src"

# Allow running the suite from a source checkout without installing.
for path in (SRC, HERE):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Qt tests run headless.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
