"""Allow ``python -m marky``."""

import sys

from marky.cli.main import main

sys.exit(main())
