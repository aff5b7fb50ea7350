import sys

from RoadTSP.cli import main

sys.exit(main())
