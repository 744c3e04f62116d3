import sys

from cfpflow.cli import main

sys.exit(main())
