import sys

from orphan_finder.cli import main


sys.exit(main())
