import sys

from prreview.action import main

sys.exit(main())
