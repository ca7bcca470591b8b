import sys

from apex_gateway.cli import main

sys.exit(main())
