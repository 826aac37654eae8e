import sys

from marketplace_check.cli import main

sys.exit(main())
