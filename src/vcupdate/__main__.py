import sys

from vcupdate.cli import main

sys.exit(main())
