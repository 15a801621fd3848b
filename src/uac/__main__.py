import sys

from uac.cli import main

sys.exit(main())
