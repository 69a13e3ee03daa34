"""Allow ``python -m stagelineage.cli`` execution."""

import sys

from stagelineage.cli.sync import main

sys.exit(main())
