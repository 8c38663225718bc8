"""Entry point for ``python -m payroll_governance``."""

import sys

from payroll_governance.cli import main

if __name__ == "__main__":
    sys.exit(main())
