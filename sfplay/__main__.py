import sys

from sfplay.main import main

sys.exit(main())
