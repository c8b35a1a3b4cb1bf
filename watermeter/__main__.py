import sys

from watermeter.cli import main

sys.exit(main())
