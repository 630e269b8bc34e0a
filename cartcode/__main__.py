import sys

from cartcode.cli import main

sys.exit(main())
