"""Allow ``python -m course_admin.cli``."""

import sys

from course_admin.cli import main

sys.exit(main())
