"""Allow ``python -m fso_tables``."""

import sys

from fso_tables.cli import main

sys.exit(main())
