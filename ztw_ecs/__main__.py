import sys

from ztw_ecs.cli import main

sys.exit(main())
