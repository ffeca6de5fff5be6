import sys

from wanderlust.main import main

sys.exit(main())
