import sys

from sandpile.cli import main

sys.exit(main())
