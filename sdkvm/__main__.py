import sys

from sdkvm.cli.main import main

sys.exit(main())
