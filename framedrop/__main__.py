import sys

from framedrop.cli import main

sys.exit(main())
