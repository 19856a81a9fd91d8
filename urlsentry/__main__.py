"""Allow running as ``python -m urlsentry``."""

import sys

from .main import main

sys.exit(main())
