import sys

from stickdial.cli import main

sys.exit(main())
