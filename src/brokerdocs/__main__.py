"""Allow ``python -m brokerdocs``."""

import sys

from brokerdocs.cli import main

sys.exit(main())
