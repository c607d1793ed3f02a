import sys

from isbncheck.cli import main

sys.exit(main())
