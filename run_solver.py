# run_solver.py (at repo root)
#!/usr/bin/env python3
from pathlib import Path
import sys

repo = Path(__file__).resolve().parent
if str(repo) not in sys.path:
    sys.path.insert(0, str(repo))

from edgematch.driver import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
