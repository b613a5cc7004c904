import sys

from vaxcov.cli import main

sys.exit(main())
