import sys

from defense_in_depth.cli import main

sys.exit(main())
