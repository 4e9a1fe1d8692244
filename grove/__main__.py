import sys

from grove.cli.main import main

sys.exit(main())
