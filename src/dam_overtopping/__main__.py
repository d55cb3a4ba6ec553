import sys

from dam_overtopping.cli import main

sys.exit(main())
