"""Allow ``python -m wavetrace``."""

import sys

from wavetrace.cli import main

sys.exit(main())
