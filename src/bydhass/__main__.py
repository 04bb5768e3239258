import sys

from bydhass.cli import main

sys.exit(main())
