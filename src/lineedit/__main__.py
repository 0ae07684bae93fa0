"""Run the lineedit demo with ``python -m lineedit``."""

import sys

from lineedit.cli import main

sys.exit(main())
